"""Tests for purchase orders, placement and the supplier notification."""

import json

import httpx
import pytest
from sqlalchemy import select

from buildtrack.core.config import settings
from buildtrack.core.errors import NotFoundError, RuleViolation
from buildtrack.crud import purchase_orders as po_crud
from buildtrack.crud.mrr import create_mrr, review_mrr, submit_mrr
from buildtrack.crud.purchase_orders import (
    approve_purchase_order,
    cancel_purchase_order,
    create_from_mrr,
    create_purchase_order,
    place_order,
    update_purchase_order,
)
from buildtrack.crud.supplier_ledger import post_purchase_debit
from buildtrack.models.catalog import Item
from buildtrack.models.supplier import Supplier, SupplierLedgerEntry
from buildtrack.services.notifications import (
    build_purchase_order_message,
    normalize_phone,
    send_purchase_order_notification,
)


@pytest.fixture()
def steel(db_session):
    steel = Item(code="TMT-12", name="TMT Bar 12mm", unit="kg", category="Steel")
    db_session.add(steel)
    db_session.commit()
    return steel


def _po(db_session, user, supplier, project, item, steel):
    return create_purchase_order(
        db_session,
        {
            "supplier_id": supplier.id,
            "project_id": project.id,
            "expected_delivery_date": "2026-05-10",
            "payment_terms": "30 days",
            "items": [
                {"item_id": item.id, "quantity_ordered": 100, "unit_price": 10.0, "cgst_rate": 9, "sgst_rate": 9},
                {"item_id": steel.id, "quantity_ordered": 10, "unit_price": 55.5, "igst_rate": 18},
            ],
        },
        user_id=user.id,
    )


def _ledger(db_session, supplier_id):
    stmt = select(SupplierLedgerEntry).where(SupplierLedgerEntry.supplier_id == supplier_id)
    return list(db_session.execute(stmt.order_by(SupplierLedgerEntry.id)).scalars().all())


def test_create_computes_line_and_order_totals(db_session, user, supplier, project, item, steel):
    po = _po(db_session, user, supplier, project, item, steel)

    assert po.po_number == "PO000001"
    assert po.status == "DRAFT"
    cement, rebar = po.items
    assert cement.total_price == pytest.approx(1000.0)
    assert cement.cgst_amount == pytest.approx(90.0)
    assert cement.sgst_amount == pytest.approx(90.0)
    assert rebar.total_price == pytest.approx(555.0)
    assert rebar.igst_amount == pytest.approx(99.9)
    assert po.subtotal == pytest.approx(1555.0)
    assert po.tax_amount == pytest.approx(279.9)
    assert po.total_amount == pytest.approx(1834.9)
    assert po.supplier_name == supplier.name

    again = _po(db_session, user, supplier, project, item, steel)
    assert again.po_number == "PO000002"


def test_create_validation(db_session, user, supplier, project, item):
    with pytest.raises(NotFoundError):
        create_purchase_order(
            db_session,
            {"supplier_id": 999, "items": [{"item_id": item.id, "quantity_ordered": 1, "unit_price": 1.0}]},
            user_id=user.id,
        )
    with pytest.raises(RuleViolation, match="CGST rate"):
        create_purchase_order(
            db_session,
            {
                "supplier_id": supplier.id,
                "items": [{"item_id": item.id, "quantity_ordered": 1, "unit_price": 1.0, "cgst_rate": 120}],
            },
            user_id=user.id,
        )
    with pytest.raises(RuleViolation, match="At least one item"):
        create_purchase_order(db_session, {"supplier_id": supplier.id, "items": []}, user_id=user.id)


def test_create_from_approved_mrr_uses_supplied_prices(db_session, user, supplier, project, item, steel):
    mrr = create_mrr(
        db_session,
        {
            "project_id": project.id,
            "required_date": "2026-06-01",
            "items": [
                {"item_id": item.id, "quantity_requested": 40, "estimated_cost_per_unit": 380.0},
                {"item_id": steel.id, "quantity_requested": 500, "estimated_cost_per_unit": 62.0},
            ],
        },
        user_id=user.id,
    )
    with pytest.raises(RuleViolation, match="Only approved MRRs"):
        create_from_mrr(db_session, mrr.id, {"supplier_id": supplier.id}, user_id=user.id)

    mrr = review_mrr(db_session, submit_mrr(db_session, mrr), action="approve", user_id=user.id)
    po = create_from_mrr(
        db_session,
        mrr.id,
        {"supplier_id": supplier.id, "unit_prices": {str(steel.id): 58.0}},
        user_id=user.id,
    )

    assert po.mrr_id == mrr.id
    assert po.project_id == project.id
    assert [(line.item_id, line.quantity_ordered, line.unit_price) for line in po.items] == [
        (item.id, 40, 380.0),
        (steel.id, 500, 58.0),
    ]
    assert po.total_amount == pytest.approx(40 * 380.0 + 500 * 58.0)


def test_only_drafts_can_be_updated_or_approved(db_session, user, supplier, project, item, steel):
    po = _po(db_session, user, supplier, project, item, steel)
    po = update_purchase_order(
        db_session,
        po,
        {"notes": "Deliver before monsoon", "items": [{"item_id": item.id, "quantity_ordered": 5, "unit_price": 2.0}]},
    )
    assert po.notes == "Deliver before monsoon"
    assert len(po.items) == 1
    assert po.total_amount == pytest.approx(10.0)

    po = approve_purchase_order(db_session, po, user_id=user.id)
    assert po.status == "APPROVED"
    assert po.approved_by_user_id == user.id
    with pytest.raises(RuleViolation, match="Only draft"):
        update_purchase_order(db_session, po, {"notes": "late change"})
    with pytest.raises(RuleViolation, match="Only draft"):
        approve_purchase_order(db_session, po, user_id=user.id)


def test_place_order_posts_one_ledger_debit(db_session, user, supplier, project, item, steel, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_API_URL", None)
    po = approve_purchase_order(db_session, _po(db_session, user, supplier, project, item, steel), user_id=user.id)

    po, notified = place_order(db_session, po, user_id=user.id)

    assert po.status == "PLACED"
    assert po.placed_at is not None
    assert notified is False
    (entry,) = _ledger(db_session, supplier.id)
    assert entry.transaction_type == "PURCHASE"
    assert entry.po_id == po.id
    assert entry.debit_amount == pytest.approx(1834.9)
    assert entry.balance == pytest.approx(1834.9)
    assert entry.payment_status == "PENDING"
    assert entry.reference_number == po.po_number

    assert post_purchase_debit(db_session, po, user_id=user.id).id == entry.id
    db_session.commit()
    assert len(_ledger(db_session, supplier.id)) == 1

    with pytest.raises(RuleViolation, match="Only approved"):
        place_order(db_session, po, user_id=user.id)


def test_failed_notification_does_not_undo_placement(db_session, user, supplier, project, item, steel, monkeypatch):
    po = approve_purchase_order(db_session, _po(db_session, user, supplier, project, item, steel), user_id=user.id)

    def broken(_po):
        raise httpx.ConnectError("gateway down")

    monkeypatch.setattr(po_crud, "send_purchase_order_notification", broken)
    po, notified = place_order(db_session, po, user_id=user.id)

    assert notified is False
    db_session.expire_all()
    assert po_crud.get_purchase_order(db_session, po.id).status == "PLACED"
    assert len(_ledger(db_session, supplier.id)) == 1


def test_cancel_rules(db_session, user, supplier, project, item, steel):
    po = cancel_purchase_order(db_session, _po(db_session, user, supplier, project, item, steel))
    assert po.status == "CANCELLED"
    with pytest.raises(RuleViolation, match="already cancelled"):
        cancel_purchase_order(db_session, po)


def test_notification_posts_whatsapp_payload(db_session, user, supplier, project, item, steel, monkeypatch):
    po = _po(db_session, user, supplier, project, item, steel)
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    monkeypatch.setattr(settings, "WHATSAPP_API_URL", "https://graph.example.test/v1/messages")
    monkeypatch.setattr(settings, "WHATSAPP_API_TOKEN", "token-123")
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        assert send_purchase_order_notification(po, client=client) is True

    assert seen["url"] == "https://graph.example.test/v1/messages"
    assert seen["auth"] == "Bearer token-123"
    assert seen["body"]["to"] == "919845012345"
    assert po.po_number in seen["body"]["text"]["body"]


def test_notification_http_error_is_raised(db_session, user, supplier, project, item, steel, monkeypatch):
    po = _po(db_session, user, supplier, project, item, steel)
    monkeypatch.setattr(settings, "WHATSAPP_API_URL", "https://graph.example.test/v1/messages")
    transport = httpx.MockTransport(lambda request: httpx.Response(503))

    with httpx.Client(transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            send_purchase_order_notification(po, client=client)


def test_notification_needs_a_phone_number(db_session, user, project, item, steel, monkeypatch):
    silent = Supplier(name="No Phone Traders", is_active=True)
    db_session.add(silent)
    db_session.commit()
    po = _po(db_session, user, silent, project, item, steel)

    with pytest.raises(ValueError, match="phone"):
        send_purchase_order_notification(po)

    monkeypatch.setattr(settings, "WHATSAPP_API_URL", None)
    silent.phone = "+91 99000 11122"
    assert send_purchase_order_notification(po) is False


def test_message_lists_every_line(db_session, user, supplier, project, item, steel):
    po = _po(db_session, user, supplier, project, item, steel)

    message = build_purchase_order_message(po)

    assert "OPC 53 Cement (CEM-53)" in message
    assert "Quantity: 10 kg" in message
    assert "Payment Terms: 30 days" in message
    assert "1,834.90" in message


def test_normalize_phone():
    assert normalize_phone("98450 12345") == "919845012345"
    assert normalize_phone("+91-98450-12345") == "919845012345"
    assert normalize_phone("  ") is None
