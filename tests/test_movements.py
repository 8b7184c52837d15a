"""Tests for site stock movements and material maintenance."""

import pytest
from sqlalchemy import func, select

from buildtrack.core.errors import NotFoundError, RuleViolation
from buildtrack.crud.inventory import history_chain
from buildtrack.crud.materials import create_material, delete_material, list_materials, update_material
from buildtrack.crud.movements import (
    cancel_issue,
    create_consumption,
    create_issue,
    create_return,
    delete_consumption,
    delete_issue,
    delete_return,
    get_issue,
    list_issues,
    restock,
    restock_bulk,
    restock_history,
    update_consumption,
    update_issue,
    update_return,
)
from buildtrack.crud.mrr import create_mrr
from buildtrack.models.catalog import Warehouse
from buildtrack.models.material import InventoryHistory, Material
from buildtrack.models.movement import MaterialIssue, MaterialReturn


def _stocked(db_session, user, warehouse, item, qty, **extra):
    payload = {"item_id": item.id, "warehouse_id": warehouse.id, "stock_qty": qty}
    payload.update(extra)
    return create_material(db_session, payload, user_id=user.id)


def _stock_of(db_session, material_id):
    db_session.expire_all()
    return db_session.get(Material, material_id).stock_qty


def test_create_material_posts_opening_stock(db_session, user, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 25, location="Rack B")

    assert material.name == "OPC 53 Cement"
    assert material.item_code == "CEM-53"
    assert material.unit == "bag"
    assert material.stock_qty == 25
    (entry,) = history_chain(db_session, material.id)
    assert entry.transaction_type == "PURCHASE"
    assert entry.reference_number == f"INITIAL-{material.id}"
    assert (entry.quantity_before, entry.quantity_after) == (0, 25)


def test_material_validation(db_session, user, warehouse):
    with pytest.raises(RuleViolation, match="name is required"):
        create_material(db_session, {"warehouse_id": warehouse.id}, user_id=user.id)
    with pytest.raises(RuleViolation, match="negative"):
        create_material(db_session, {"name": "Sand", "stock_qty": -1}, user_id=user.id)
    with pytest.raises(NotFoundError):
        create_material(db_session, {"name": "Sand", "warehouse_id": 999}, user_id=user.id)
    assert list_materials(db_session).total == 0


def test_stock_edit_becomes_an_adjustment(db_session, user, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 25)

    update_material(
        db_session,
        material,
        {"stock_qty": 18, "reorder_point": 20, "adjustment_reason": "Cycle count"},
        user_id=user.id,
    )

    assert material.stock_qty == 18
    adjustment = history_chain(db_session, material.id)[-1]
    assert adjustment.transaction_type == "ADJUSTMENT"
    assert adjustment.quantity_change == -7
    assert adjustment.description == "Cycle count"
    assert list_materials(db_session, low_stock=True).total == 1
    with pytest.raises(RuleViolation, match="inventory history"):
        delete_material(db_session, material)


def test_material_without_history_can_be_deleted(db_session, user):
    material = create_material(db_session, {"name": "Shuttering ply"}, user_id=user.id)

    delete_material(db_session, material)

    assert list_materials(db_session).total == 0


def test_issue_and_cancel_restore_stock(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 100)

    issue = create_issue(
        db_session,
        {
            "project_id": project.id,
            "material_id": material.id,
            "quantity_issued": 30,
            "location": "Block A, level 2",
            "issue_purpose": "Slab casting",
        },
        user_id=user.id,
    )

    assert issue.status == "ISSUED"
    assert issue.warehouse_id == warehouse.id
    assert _stock_of(db_session, material.id) == 70
    entry = history_chain(db_session, material.id)[-1]
    assert entry.transaction_type == "ISSUE"
    assert entry.reference_number == f"ISSUE-{issue.id}"
    assert entry.location == "Block A, level 2"

    issue = cancel_issue(db_session, issue, user_id=user.id)
    assert issue.status == "CANCELLED"
    assert _stock_of(db_session, material.id) == 100
    assert history_chain(db_session, material.id)[-1].reference_number == f"ISSUE-CANCEL-{issue.id}"
    with pytest.raises(RuleViolation, match="already cancelled"):
        cancel_issue(db_session, issue, user_id=user.id)


def test_issue_checks_stock_and_inputs(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 5)
    base = {"project_id": project.id, "material_id": material.id, "location": "Gate"}

    with pytest.raises(RuleViolation, match="Insufficient stock") as excinfo:
        create_issue(db_session, {**base, "quantity_issued": 6}, user_id=user.id)
    assert excinfo.value.details == {"material_id": material.id, "available": 5, "requested": 6}
    with pytest.raises(RuleViolation, match="location"):
        create_issue(db_session, {**base, "quantity_issued": 1, "location": " "}, user_id=user.id)
    with pytest.raises(NotFoundError, match="users"):
        create_issue(db_session, {**base, "quantity_issued": 1, "received_by_user_id": 999}, user_id=user.id)

    other = Warehouse(name="Site Store", is_active=True)
    db_session.add(other)
    db_session.commit()
    with pytest.raises(NotFoundError, match="specified warehouse"):
        create_issue(db_session, {**base, "quantity_issued": 1, "warehouse_id": other.id}, user_id=user.id)

    assert list_issues(db_session).total == 0
    assert _stock_of(db_session, material.id) == 5


def test_issue_against_unapproved_mrr_is_refused(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 50)
    mrr = create_mrr(
        db_session,
        {"project_id": project.id, "required_date": "2026-06-01", "items": [{"item_id": item.id, "quantity_requested": 5}]},
        user_id=user.id,
    )

    with pytest.raises(RuleViolation, match="Only approved MRRs"):
        create_issue(
            db_session,
            {"project_id": project.id, "material_id": material.id, "quantity_issued": 5, "location": "Gate", "mrr_id": mrr.id},
            user_id=user.id,
        )


def test_return_is_capped_by_issued_quantity(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 40)
    issue = create_issue(
        db_session,
        {"project_id": project.id, "material_id": material.id, "quantity_issued": 10, "location": "Block B"},
        user_id=user.id,
    )

    material_return = create_return(
        db_session,
        {
            "project_id": project.id,
            "material_id": material.id,
            "issue_id": issue.id,
            "quantity": 4,
            "condition_status": "used",
            "warehouse_id": warehouse.id,
        },
        user_id=user.id,
    )

    assert material_return.condition_status == "USED"
    assert _stock_of(db_session, material.id) == 34
    entry = history_chain(db_session, material.id)[-1]
    assert entry.transaction_type == "RETURN"
    assert entry.location == "Central Store"
    with pytest.raises(RuleViolation, match="exceeds issued quantity"):
        create_return(
            db_session,
            {"project_id": project.id, "material_id": material.id, "issue_id": issue.id, "quantity": 7},
            user_id=user.id,
        )
    with pytest.raises(RuleViolation, match="condition_status"):
        create_return(
            db_session,
            {"project_id": project.id, "material_id": material.id, "quantity": 1, "condition_status": "MELTED"},
            user_id=user.id,
        )


def test_return_to_another_warehouse_lands_in_its_own_record(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 10)
    site_store = Warehouse(name="Site Store", is_active=True)
    db_session.add(site_store)
    db_session.commit()

    material_return = create_return(
        db_session,
        {"project_id": project.id, "material_id": material.id, "quantity": 3, "warehouse_id": site_store.id},
        user_id=user.id,
    )

    assert material_return.material_id != material.id
    assert _stock_of(db_session, material.id) == 10
    landed = db_session.get(Material, material_return.material_id)
    assert landed.warehouse_id == site_store.id
    assert landed.stock_qty == 3


def test_consumption_requires_available_stock(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 8)

    consumption = create_consumption(
        db_session,
        {"project_id": project.id, "material_id": material.id, "quantity_consumed": 8, "consumption_purpose": "Plastering"},
        user_id=user.id,
    )

    assert consumption.recorded_by_user_id == user.id
    assert _stock_of(db_session, material.id) == 0
    with pytest.raises(RuleViolation, match="Insufficient stock"):
        create_consumption(
            db_session, {"project_id": project.id, "material_id": material.id, "quantity_consumed": 1}, user_id=user.id
        )


def test_restock_updates_cost_and_stock(db_session, user, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 2)

    restocked = restock(
        db_session,
        {"material_id": material.id, "restock_quantity": 48, "cost_per_unit": 395.0, "supplier": "UltraTech Depot"},
        user_id=user.id,
    )

    assert restocked.stock_qty == 50
    assert restocked.cost_per_unit == pytest.approx(395.0)
    assert restocked.supplier == "UltraTech Depot"
    assert history_chain(db_session, material.id)[-1].reference_number.startswith("RESTOCK-")


def test_bulk_restock_is_all_or_nothing(db_session, user, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 2)
    before = db_session.execute(select(func.count(InventoryHistory.id))).scalar_one()

    with pytest.raises(NotFoundError):
        restock_bulk(
            db_session,
            [
                {"material_id": material.id, "restock_quantity": 10},
                {"material_id": 999, "restock_quantity": 5},
            ],
            user_id=user.id,
        )

    assert db_session.execute(select(func.count(InventoryHistory.id))).scalar_one() == before
    assert _stock_of(db_session, material.id) == 2

    materials = restock_bulk(
        db_session,
        [{"material_id": material.id, "restock_quantity": 10}, {"material_id": material.id, "restock_quantity": 5}],
        user_id=user.id,
    )
    assert [m.stock_qty for m in materials] == [17, 17]
    with pytest.raises(RuleViolation, match="At least one"):
        restock_bulk(db_session, [], user_id=user.id)


def _issue(db_session, user, project, material, qty, location="Block B"):
    return create_issue(
        db_session,
        {"project_id": project.id, "material_id": material.id, "quantity_issued": qty, "location": location},
        user_id=user.id,
    )


def _return(db_session, user, project, material, issue, qty):
    return create_return(
        db_session,
        {"project_id": project.id, "material_id": material.id, "issue_id": issue.id, "quantity": qty},
        user_id=user.id,
    )


def test_issue_with_returns_cannot_be_cancelled(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 40)
    issue = _issue(db_session, user, project, material, 10)
    _return(db_session, user, project, material, issue, 4)
    assert _stock_of(db_session, material.id) == 34

    with pytest.raises(RuleViolation, match="returns against it"):
        cancel_issue(db_session, issue, user_id=user.id)

    assert _stock_of(db_session, material.id) == 34
    assert get_issue(db_session, issue.id).status == "ISSUED"
    with pytest.raises(RuleViolation, match="returns against it"):
        delete_issue(db_session, issue, user_id=user.id)


def test_received_issue_cannot_be_cancelled(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 40)
    issue = _issue(db_session, user, project, material, 10)

    issue = update_issue(db_session, issue, {"status": "received"}, user_id=user.id)

    assert issue.status == "RECEIVED"
    assert issue.updated_by_user_id == user.id
    with pytest.raises(RuleViolation, match="Cannot cancel received"):
        cancel_issue(db_session, issue, user_id=user.id)
    assert _stock_of(db_session, material.id) == 30


def test_issue_rows_default_to_pending(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 5)
    issue = MaterialIssue(
        project_id=project.id,
        material_id=material.id,
        quantity_issued=1,
        issue_date="2026-05-01",
        location="Gate",
        issued_by_user_id=user.id,
        received_by_user_id=user.id,
        created_by_user_id=user.id,
    )
    db_session.add(issue)
    db_session.commit()

    assert issue.status == "PENDING"


def test_issue_edits_post_the_difference(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 40)
    issue = _issue(db_session, user, project, material, 10)

    issue = update_issue(db_session, issue, {"quantity_issued": 15, "issue_purpose": "Columns"}, user_id=user.id)
    assert issue.quantity_issued == 15
    assert _stock_of(db_session, material.id) == 25
    entry = history_chain(db_session, material.id)[-1]
    assert (entry.reference_number, entry.quantity_change) == (f"ISSUE-UPDATE-{issue.id}", -5)

    update_issue(db_session, issue, {"quantity_issued": 8}, user_id=user.id)
    assert _stock_of(db_session, material.id) == 32
    assert history_chain(db_session, material.id)[-1].quantity_change == 7

    with pytest.raises(RuleViolation, match="Insufficient stock"):
        update_issue(db_session, issue, {"quantity_issued": 50}, user_id=user.id)
    _return(db_session, user, project, material, issue, 3)
    with pytest.raises(RuleViolation, match="already returned"):
        update_issue(db_session, issue, {"quantity_issued": 2}, user_id=user.id)
    with pytest.raises(RuleViolation, match="cancel action"):
        update_issue(db_session, issue, {"status": "CANCELLED"}, user_id=user.id)
    with pytest.raises(RuleViolation, match="status must be one of"):
        update_issue(db_session, issue, {"status": "LOST"}, user_id=user.id)
    assert _stock_of(db_session, material.id) == 35


def test_deleting_an_issue_restores_stock_once(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 40)
    issue = _issue(db_session, user, project, material, 10)

    delete_issue(db_session, issue, user_id=user.id)

    assert _stock_of(db_session, material.id) == 40
    assert history_chain(db_session, material.id)[-1].reference_number == f"ISSUE-DELETE-{issue.id}"
    assert list_issues(db_session).total == 0

    cancelled = cancel_issue(db_session, _issue(db_session, user, project, material, 6), user_id=user.id)
    entries = len(history_chain(db_session, material.id))
    delete_issue(db_session, cancelled, user_id=user.id)
    assert _stock_of(db_session, material.id) == 40
    assert len(history_chain(db_session, material.id)) == entries


def test_return_edits_and_deletes_move_stock(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 40)
    issue = _issue(db_session, user, project, material, 10)
    material_return = _return(db_session, user, project, material, issue, 4)

    material_return = update_return(
        db_session, material_return, {"quantity": 6, "condition_status": "damaged"}, user_id=user.id
    )
    assert material_return.quantity == 6
    assert material_return.condition_status == "DAMAGED"
    assert _stock_of(db_session, material.id) == 36
    assert history_chain(db_session, material.id)[-1].reference_number == f"RETURN-UPDATE-{material_return.id}"

    with pytest.raises(RuleViolation, match="exceeds issued quantity"):
        update_return(db_session, material_return, {"quantity": 11}, user_id=user.id)

    delete_return(db_session, material_return, user_id=user.id)
    assert _stock_of(db_session, material.id) == 30
    entry = history_chain(db_session, material.id)[-1]
    assert (entry.reference_number, entry.quantity_change) == (f"RETURN-DELETE-{material_return.id}", -6)
    db_session.expire_all()
    assert db_session.execute(select(func.count(MaterialReturn.id))).scalar_one() == 0
    assert cancel_issue(db_session, get_issue(db_session, issue.id), user_id=user.id).status == "CANCELLED"
    assert _stock_of(db_session, material.id) == 40


def test_consumption_edits_and_deletes_move_stock(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 20)
    consumption = create_consumption(
        db_session,
        {"project_id": project.id, "material_id": material.id, "quantity_consumed": 5},
        user_id=user.id,
    )

    consumption = update_consumption(db_session, consumption, {"quantity_consumed": 8}, user_id=user.id)
    assert consumption.quantity_consumed == 8
    assert _stock_of(db_session, material.id) == 12
    with pytest.raises(RuleViolation, match="Insufficient stock"):
        update_consumption(db_session, consumption, {"quantity_consumed": 30}, user_id=user.id)

    delete_consumption(db_session, consumption, user_id=user.id)
    assert _stock_of(db_session, material.id) == 20
    entry = history_chain(db_session, material.id)[-1]
    assert (entry.reference_number, entry.quantity_change) == (f"CONSUMPTION-DELETE-{consumption.id}", 8)


def test_restock_into_another_warehouse_prices_the_landed_record(db_session, user, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 5, cost_per_unit=380.0, supplier="Old Depot")
    site_store = Warehouse(name="Site Store", is_active=True)
    db_session.add(site_store)
    db_session.commit()

    landed = restock(
        db_session,
        {
            "material_id": material.id,
            "restock_quantity": 20,
            "warehouse_id": site_store.id,
            "cost_per_unit": 395.0,
            "supplier": "UltraTech Depot",
        },
        user_id=user.id,
    )

    assert landed.id != material.id
    assert landed.warehouse_id == site_store.id
    assert landed.stock_qty == 20
    assert landed.cost_per_unit == pytest.approx(395.0)
    assert landed.supplier == "UltraTech Depot"
    db_session.expire_all()
    source = db_session.get(Material, material.id)
    assert source.stock_qty == 5
    assert source.cost_per_unit == pytest.approx(380.0)
    assert source.supplier == "Old Depot"


def test_restock_history_lists_only_restocks(db_session, user, project, warehouse, item):
    material = _stocked(db_session, user, warehouse, item, 5)
    restock(db_session, {"material_id": material.id, "restock_quantity": 10, "notes": "Monsoon buffer"}, user_id=user.id)
    restock_bulk(db_session, [{"material_id": material.id, "restock_quantity": 3}], user_id=user.id)
    _issue(db_session, user, project, material, 2)

    history = restock_history(db_session, material_id=material.id)

    assert history.total == 2
    assert [entry.quantity_change for entry in history.items] == [3, 10]
    assert history.items[1].description == "Material restocked: Monsoon buffer"
    assert restock_history(db_session, material_id=999).total == 0
