"""Tests for goods receipts and the stock they post."""

import pytest
from sqlalchemy import func, select

from buildtrack.core.errors import NotFoundError, RuleViolation, StockConflictError
from buildtrack.crud import receipts as receipts_crud
from buildtrack.crud.inventory import history_chain
from buildtrack.crud.purchase_orders import approve_purchase_order, create_purchase_order
from buildtrack.crud.receipts import (
    complete_receipt,
    create_receipt,
    list_receipts,
    receipt_stats,
    receipts_by_po,
    receive_receipt,
    verify_receipt,
)
from buildtrack.models.catalog import Item
from buildtrack.models.material import InventoryHistory, Material
from buildtrack.models.purchase_order import PurchaseOrder


def _approved_po(db_session, user, supplier, project, items, *, approve=True):
    po = create_purchase_order(
        db_session,
        {
            "supplier_id": supplier.id,
            "project_id": project.id,
            "items": [
                {"item_id": i.id, "quantity_ordered": qty, "unit_price": price, "cgst_rate": 9, "sgst_rate": 9}
                for i, qty, price in items
            ],
        },
        user_id=user.id,
    )
    if approve:
        po = approve_purchase_order(db_session, po, user_id=user.id)
    return po


def _second_item(db_session):
    steel = Item(code="TMT-12", name="TMT Bar 12mm", unit="kg", category="Steel")
    db_session.add(steel)
    db_session.commit()
    return steel


def _open_receipt(db_session, user, po, warehouse, quantities):
    return create_receipt(
        db_session,
        {
            "po_id": po.id,
            "warehouse_id": warehouse.id,
            "received_date": "2026-05-09",
            "items": [
                {"po_item_id": line.id, "quantity_received": qty} for line, qty in zip(po.items, quantities)
            ],
        },
        user_id=user.id,
    )


def test_create_receipt_defaults_taxes_from_po(db_session, user, supplier, project, warehouse, item):
    po = _approved_po(db_session, user, supplier, project, [(item, 100, 10.0)])

    receipt = _open_receipt(db_session, user, po, warehouse, [60])

    assert receipt.receipt_number == "GRN000001"
    assert receipt.status == "PENDING"
    assert receipt.project_id == project.id
    assert receipt.total_items == 1
    line = receipt.items[0]
    assert line.item_id == item.id
    assert line.unit_price == pytest.approx(10.0)
    assert line.total_price == pytest.approx(600.0)
    assert line.cgst_rate == pytest.approx(9.0)
    assert line.cgst_amount == pytest.approx(54.0)
    assert line.igst_amount == pytest.approx(0.0)
    assert receipt.po_number == po.po_number


def test_create_receipt_rules(db_session, user, supplier, project, warehouse, item):
    draft = _approved_po(db_session, user, supplier, project, [(item, 10, 5.0)], approve=False)
    with pytest.raises(RuleViolation, match="approved or placed"):
        _open_receipt(db_session, user, draft, warehouse, [5])

    with pytest.raises(NotFoundError):
        create_receipt(db_session, {"po_id": 404, "items": [{"po_item_id": 1, "quantity_received": 1}]}, user_id=user.id)

    po = _approved_po(db_session, user, supplier, project, [(item, 10, 5.0)])
    with pytest.raises(RuleViolation, match="does not belong"):
        create_receipt(
            db_session,
            {"po_id": po.id, "items": [{"po_item_id": draft.items[0].id, "quantity_received": 1}]},
            user_id=user.id,
        )

    _open_receipt(db_session, user, po, warehouse, [10])
    with pytest.raises(RuleViolation, match="already exists"):
        _open_receipt(db_session, user, po, warehouse, [10])


def test_receive_then_complete_posts_purchase_entries(db_session, user, supplier, project, warehouse, item):
    po = _approved_po(db_session, user, supplier, project, [(item, 100, 10.0)])
    receipt = _open_receipt(db_session, user, po, warehouse, [60])

    receipt = receive_receipt(
        db_session,
        receipt,
        {
            "items": [
                {"receipt_item_id": receipt.items[0].id, "quantity_actually_received": 60, "received_condition": "good"}
            ]
        },
    )
    assert receipt.status == "RECEIVED"
    assert receipt.items[0].received_condition == "GOOD"
    assert db_session.execute(select(func.count(InventoryHistory.id))).scalar_one() == 0

    receipt = complete_receipt(db_session, receipt, user_id=user.id, completion_notes="Unloaded at bay 2")

    assert receipt.status == "COMPLETED"
    assert receipt.notes == "Unloaded at bay 2"
    material = db_session.execute(select(Material).where(Material.item_id == item.id)).scalars().one()
    assert material.warehouse_id == warehouse.id
    assert material.project_id == project.id
    assert material.stock_qty == 60
    assert material.cost_per_unit == pytest.approx(10.0)
    (entry,) = history_chain(db_session, material.id)
    assert entry.transaction_type == "PURCHASE"
    assert entry.reference_number == receipt.receipt_number
    assert (entry.quantity_before, entry.quantity_after) == (0, 60)
    assert po.po_number in entry.description

    db_session.refresh(po)
    assert po.items[0].quantity_received == 60
    assert po.status == "PARTIALLY_RECEIVED"


def test_complete_adds_to_existing_stock_record(db_session, user, supplier, project, warehouse, item):
    existing = Material(
        item_id=item.id, name=item.name, project_id=project.id, warehouse_id=warehouse.id, stock_qty=15
    )
    db_session.add(existing)
    db_session.commit()
    po = _approved_po(db_session, user, supplier, project, [(item, 20, 12.5)])
    receipt = _open_receipt(db_session, user, po, warehouse, [20])
    receipt = receive_receipt(
        db_session, receipt, {"items": [{"receipt_item_id": receipt.items[0].id, "quantity_actually_received": 20}]}
    )

    complete_receipt(db_session, receipt, user_id=user.id)

    db_session.refresh(existing)
    assert existing.stock_qty == 35
    assert db_session.execute(select(func.count(Material.id))).scalar_one() == 1
    db_session.refresh(po)
    assert po.status == "FULLY_RECEIVED"


def test_complete_requires_received_status(db_session, user, supplier, project, warehouse, item):
    po = _approved_po(db_session, user, supplier, project, [(item, 5, 1.0)])
    receipt = _open_receipt(db_session, user, po, warehouse, [5])

    with pytest.raises(RuleViolation, match="received before completion"):
        complete_receipt(db_session, receipt, user_id=user.id)


def test_complete_is_all_or_nothing(db_session, user, supplier, project, warehouse, item, monkeypatch):
    steel = _second_item(db_session)
    po = _approved_po(db_session, user, supplier, project, [(item, 10, 5.0), (steel, 50, 60.0)])
    receipt = _open_receipt(db_session, user, po, warehouse, [10, 50])
    receipt = receive_receipt(
        db_session,
        receipt,
        {
            "items": [
                {"receipt_item_id": receipt.items[0].id, "quantity_actually_received": 10},
                {"receipt_item_id": receipt.items[1].id, "quantity_actually_received": 50},
            ]
        },
    )

    real_record = receipts_crud.record_transaction
    calls = []

    def flaky_record(db, **kwargs):
        calls.append(kwargs["quantity_change"])
        if len(calls) == 2:
            raise StockConflictError("stock moved")
        return real_record(db, **kwargs)

    monkeypatch.setattr(receipts_crud, "record_transaction", flaky_record)
    with pytest.raises(StockConflictError):
        complete_receipt(db_session, receipt, user_id=user.id)

    db_session.expire_all()
    assert db_session.execute(select(func.count(InventoryHistory.id))).scalar_one() == 0
    assert db_session.execute(select(func.coalesce(func.sum(Material.stock_qty), 0))).scalar_one() == 0
    reloaded = receipts_crud.get_receipt(db_session, receipt.id)
    assert reloaded.status == "RECEIVED"
    assert [line.quantity_received for line in db_session.get(PurchaseOrder, po.id).items] == [0, 0]


def test_verify_posts_verified_quantities(db_session, user, supplier, project, warehouse, item):
    steel = _second_item(db_session)
    po = _approved_po(db_session, user, supplier, project, [(item, 10, 5.0), (steel, 50, 60.0)])
    receipt = _open_receipt(db_session, user, po, warehouse, [10, 50])

    receipt = verify_receipt(
        db_session,
        receipt,
        {
            "verification_notes": "Checked against challan",
            "items": [
                {"receipt_item_id": receipt.items[0].id, "verified_quantity": 10},
                {"receipt_item_id": receipt.items[1].id, "verified_quantity": 0},
            ],
        },
        user_id=user.id,
    )

    assert receipt.status == "APPROVED"
    assert receipt.verified_by_user_id == user.id
    assert receipt.verified_at.endswith("Z")
    assert [line.verified_quantity for line in receipt.items] == [10, 0]
    stock = dict(db_session.execute(select(Material.item_id, Material.stock_qty)).all())
    assert stock == {item.id: 10}
    db_session.refresh(po)
    assert po.status == "PARTIALLY_RECEIVED"

    with pytest.raises(RuleViolation, match="Only pending"):
        verify_receipt(
            db_session,
            receipt,
            {"items": [{"receipt_item_id": receipt.items[0].id, "verified_quantity": 1}]},
            user_id=user.id,
        )


def test_receive_rejects_foreign_lines(db_session, user, supplier, project, warehouse, item):
    po = _approved_po(db_session, user, supplier, project, [(item, 5, 1.0)])
    receipt = _open_receipt(db_session, user, po, warehouse, [5])

    with pytest.raises(RuleViolation, match="not found on this receipt"):
        receive_receipt(db_session, receipt, {"items": [{"receipt_item_id": 999, "quantity_actually_received": 1}]})
    with pytest.raises(RuleViolation, match="non-negative"):
        receive_receipt(
            db_session, receipt, {"items": [{"receipt_item_id": receipt.items[0].id, "quantity_actually_received": -1}]}
        )


def test_listing_and_stats(db_session, user, supplier, project, warehouse, item):
    first_po = _approved_po(db_session, user, supplier, project, [(item, 10, 5.0)])
    second_po = _approved_po(db_session, user, supplier, project, [(item, 4, 25.0)])
    first = _open_receipt(db_session, user, first_po, warehouse, [10])
    _open_receipt(db_session, user, second_po, warehouse, [4])
    receive_receipt(
        db_session, first, {"items": [{"receipt_item_id": first.items[0].id, "quantity_actually_received": 10}]}
    )

    assert list_receipts(db_session, status="pending").total == 1
    assert [r.id for r in receipts_by_po(db_session, first_po.id)] == [first.id]

    stats = receipt_stats(db_session, project_id=project.id)
    assert stats["total_receipts"] == 2
    assert stats["total_value"] == pytest.approx(150.0)
    assert sorted((row["status"], row["count"]) for row in stats["status_breakdown"]) == [
        ("PENDING", 1),
        ("RECEIVED", 1),
    ]
