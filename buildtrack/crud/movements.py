"""Site stock movements: issues, returns, consumptions and restocks.

Each movement row and its ledger entry are written in one unit of work.
Availability is checked here, before the ledger is asked to remove stock.
Editing a movement posts only the quantity difference; deleting one posts the
reversing entry, so the history still explains every unit.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.constants import (
    ISSUE_CANCELLED,
    ISSUE_ISSUED,
    ISSUE_RECEIVED,
    ISSUE_STATUSES,
    MRR_APPROVED,
    MRR_PROCESSING,
    RETURN_CONDITIONS,
    TXN_CONSUMPTION,
    TXN_ISSUE,
    TXN_PURCHASE,
    TXN_RETURN,
)
from ..core.errors import NotFoundError, RuleViolation
from ..db.session import unit_of_work
from ..models.catalog import Warehouse
from ..models.material import InventoryHistory, Material
from ..models.movement import MaterialConsumption, MaterialIssue, MaterialReturn
from ..models.mrr import MaterialRequirementRequest
from ..models.project import Project
from ..models.user import User
from ._common import Page, apply_fields, get_or_404, paginate
from .inventory import record_transaction

logger = logging.getLogger(__name__)


def _positive(value, field: str) -> int:
    if value is None or int(value) <= 0:
        raise RuleViolation(f"{field} must be a positive integer")
    return int(value)


def _material_in_warehouse(db: Session, material_id: int, warehouse_id: int | None) -> Material:
    """The material row to draw from, narrowed to ``warehouse_id`` when given."""

    material = get_or_404(db, Material, material_id, "Material")
    if warehouse_id is None or material.warehouse_id == warehouse_id:
        return material
    identity = (
        Material.item_id == material.item_id
        if material.item_id is not None
        else (Material.item_id.is_(None)) & (Material.name == material.name)
    )
    stmt = select(Material).where(identity, Material.warehouse_id == warehouse_id).order_by(desc(Material.stock_qty))
    sibling = db.execute(stmt).scalars().first()
    if sibling is None:
        raise NotFoundError("Material not found in specified warehouse")
    return sibling


def _check_available(material: Material, quantity: int, warehouse_id: int | None) -> None:
    available = int(material.stock_qty or 0)
    if available < quantity:
        where = " in specified warehouse" if warehouse_id else ""
        raise RuleViolation(
            f"Insufficient stock for {material.name}{where}. Available: {available}, Requested: {quantity}",
            details={"material_id": material.id, "available": available, "requested": quantity},
        )


# ---- Issues


def list_issues(
    db: Session,
    *,
    project_id: int | None = None,
    material_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(MaterialIssue).order_by(desc(MaterialIssue.issue_date), desc(MaterialIssue.id))
    if project_id is not None:
        stmt = stmt.where(MaterialIssue.project_id == project_id)
    if material_id is not None:
        stmt = stmt.where(MaterialIssue.material_id == material_id)
    if status:
        stmt = stmt.where(MaterialIssue.status == status.upper())
    return paginate(db, stmt, page=page, limit=limit)


def get_issue(db: Session, issue_id: int) -> MaterialIssue:
    return get_or_404(db, MaterialIssue, issue_id, "Material issue")


def create_issue(db: Session, payload: dict, *, user_id: int) -> MaterialIssue:
    quantity = _positive(payload.get("quantity_issued"), "quantity_issued")
    location = (payload.get("location") or "").strip()
    if not location:
        raise RuleViolation("location is required")
    mrr_id = payload.get("mrr_id")
    if mrr_id is not None:
        mrr = get_or_404(db, MaterialRequirementRequest, mrr_id, "MRR")
        if mrr.status not in (MRR_APPROVED, MRR_PROCESSING):
            raise RuleViolation(
                f"Cannot issue materials for MRR {mrr.mrr_number}. MRR status is {mrr.status}. "
                "Only approved MRRs can have materials issued."
            )
    get_or_404(db, Project, payload.get("project_id"), "Project")
    warehouse_id = payload.get("warehouse_id")
    material = _material_in_warehouse(db, payload.get("material_id"), warehouse_id)
    _check_available(material, quantity, warehouse_id)
    issued_by = payload.get("issued_by_user_id") or user_id
    received_by = payload.get("received_by_user_id") or user_id
    if db.get(User, issued_by) is None or db.get(User, received_by) is None:
        raise NotFoundError("One or both users not found")

    issue = MaterialIssue(
        project_id=payload["project_id"],
        material_id=material.id,
        warehouse_id=material.warehouse_id,
        mrr_id=mrr_id,
        quantity_issued=quantity,
        issue_date=payload.get("issue_date") or date.today().isoformat(),
        issue_purpose=payload.get("issue_purpose"),
        location=location,
        issued_by_user_id=issued_by,
        received_by_user_id=received_by,
        created_by_user_id=user_id,
        status=ISSUE_ISSUED,
    )
    with unit_of_work(db):
        db.add(issue)
        db.flush()
        record_transaction(
            db,
            material_id=material.id,
            project_id=issue.project_id,
            transaction_type=TXN_ISSUE,
            transaction_id=issue.id,
            quantity_change=-quantity,
            reference_number=f"ISSUE-{issue.id}",
            description=f"Material issued: {issue.issue_purpose or 'No description'}",
            location=location,
            performed_by_user_id=user_id,
            commit=False,
        )
    db.refresh(issue)
    return issue


def _returned_quantity(db: Session, issue_id: int, *, excluding: int | None = None) -> int:
    stmt = select(func.coalesce(func.sum(MaterialReturn.quantity), 0)).where(MaterialReturn.issue_id == issue_id)
    if excluding is not None:
        stmt = stmt.where(MaterialReturn.id != excluding)
    return int(db.execute(stmt).scalar_one())


def update_issue(db: Session, issue: MaterialIssue, payload: dict, *, user_id: int) -> MaterialIssue:
    """Edit an issue; a changed quantity posts the difference to the ledger.

    The quantity can never drop below what has already come back as returns.
    Cancelling goes through ``cancel_issue`` so stock is restored exactly once.
    """

    if issue.status == ISSUE_CANCELLED:
        raise RuleViolation("Cancelled material issues cannot be edited")
    status = issue.status
    if payload.get("status") is not None:
        status = payload["status"].upper()
        if status not in ISSUE_STATUSES:
            raise RuleViolation(f"status must be one of {', '.join(ISSUE_STATUSES)}")
        if status == ISSUE_CANCELLED:
            raise RuleViolation("Use the cancel action to cancel a material issue")
    if "location" in payload and not (payload.get("location") or "").strip():
        raise RuleViolation("location is required")

    difference = 0
    if payload.get("quantity_issued") is not None:
        quantity = _positive(payload["quantity_issued"], "quantity_issued")
        returned = _returned_quantity(db, issue.id)
        if quantity < returned:
            raise RuleViolation(f"quantity_issued cannot be below the quantity already returned ({returned})")
        difference = quantity - issue.quantity_issued
        if difference > 0:
            _check_available(get_or_404(db, Material, issue.material_id, "Material"), difference, None)

    with unit_of_work(db):
        apply_fields(issue, payload, ("issue_date", "issue_purpose"))
        if "location" in payload:
            issue.location = payload["location"].strip()
        issue.status = status
        issue.updated_by_user_id = user_id
        if difference:
            issue.quantity_issued += difference
            record_transaction(
                db,
                material_id=issue.material_id,
                project_id=issue.project_id,
                transaction_type=TXN_ISSUE,
                transaction_id=issue.id,
                quantity_change=-difference,
                reference_number=f"ISSUE-UPDATE-{issue.id}",
                description="Material issue quantity updated",
                location=issue.location,
                performed_by_user_id=user_id,
                commit=False,
            )
    db.refresh(issue)
    return issue


def cancel_issue(db: Session, issue: MaterialIssue, *, user_id: int, reason: str | None = None) -> MaterialIssue:
    """Cancel an issue and put its quantity back with a compensating entry.

    Issues already received on site, or with returns posted against them, stay
    as they are: the returns have put that stock back once already.
    """

    if issue.status == ISSUE_CANCELLED:
        raise RuleViolation("Material issue is already cancelled")
    if issue.status == ISSUE_RECEIVED:
        raise RuleViolation("Cannot cancel received material issues")
    if _returned_quantity(db, issue.id):
        raise RuleViolation("Cannot cancel a material issue that has returns against it")
    with unit_of_work(db):
        issue.status = ISSUE_CANCELLED
        issue.updated_by_user_id = user_id
        record_transaction(
            db,
            material_id=issue.material_id,
            project_id=issue.project_id,
            transaction_type=TXN_ISSUE,
            transaction_id=issue.id,
            quantity_change=issue.quantity_issued,
            reference_number=f"ISSUE-CANCEL-{issue.id}",
            description=reason or "Material issue cancelled - stock restored",
            location=issue.location,
            performed_by_user_id=user_id,
            commit=False,
        )
    db.refresh(issue)
    logger.info("movements.issue_cancelled", extra={"extra_data": {"issue_id": issue.id}})
    return issue


def delete_issue(db: Session, issue: MaterialIssue, *, user_id: int) -> None:
    """Remove an issue recorded in error, restoring its stock unless already cancelled."""

    issue_id = issue.id
    if _returned_quantity(db, issue.id):
        raise RuleViolation("Material issue has returns against it and cannot be deleted")
    with unit_of_work(db):
        if issue.status != ISSUE_CANCELLED:
            record_transaction(
                db,
                material_id=issue.material_id,
                project_id=issue.project_id,
                transaction_type=TXN_ISSUE,
                transaction_id=issue.id,
                quantity_change=issue.quantity_issued,
                reference_number=f"ISSUE-DELETE-{issue.id}",
                description="Material issue deleted - stock restored",
                location=issue.location,
                performed_by_user_id=user_id,
                commit=False,
            )
        db.delete(issue)
    logger.info("movements.issue_deleted", extra={"extra_data": {"issue_id": issue_id}})


# ---- Returns


def list_returns(db: Session, *, project_id: int | None = None, material_id: int | None = None, page: int = 1, limit: int = 20) -> Page:
    stmt = select(MaterialReturn).order_by(desc(MaterialReturn.return_date), desc(MaterialReturn.id))
    if project_id is not None:
        stmt = stmt.where(MaterialReturn.project_id == project_id)
    if material_id is not None:
        stmt = stmt.where(MaterialReturn.material_id == material_id)
    return paginate(db, stmt, page=page, limit=limit)


def create_return(db: Session, payload: dict, *, user_id: int) -> MaterialReturn:
    quantity = _positive(payload.get("quantity"), "quantity")
    condition = (payload.get("condition_status") or "GOOD").upper()
    if condition not in RETURN_CONDITIONS:
        raise RuleViolation(f"condition_status must be one of {', '.join(RETURN_CONDITIONS)}")
    project = get_or_404(db, Project, payload.get("project_id"), "Project")
    material = get_or_404(db, Material, payload.get("material_id"), "Material")
    returned_by = payload.get("returned_by_user_id") or user_id
    get_or_404(db, User, returned_by, "Returned by user")

    issue_id = payload.get("issue_id")
    if issue_id is not None:
        issue = get_or_404(db, MaterialIssue, issue_id, "Material issue")
        if issue.status == ISSUE_CANCELLED:
            raise RuleViolation("Cannot return against a cancelled issue")
        returned = _returned_quantity(db, issue.id)
        if returned + quantity > issue.quantity_issued:
            raise RuleViolation(
                f"Return exceeds issued quantity. Issued: {issue.quantity_issued}, already returned: {returned}"
            )

    warehouse_id = payload.get("warehouse_id")
    location = "Store"
    if warehouse_id is not None:
        location = get_or_404(db, Warehouse, warehouse_id, "Warehouse").name

    material_return = MaterialReturn(
        project_id=project.id,
        material_id=material.id,
        warehouse_id=warehouse_id,
        issue_id=issue_id,
        quantity=quantity,
        return_date=payload.get("return_date") or date.today().isoformat(),
        return_reason=payload.get("return_reason"),
        condition_status=condition,
        returned_by_user_id=returned_by,
    )
    with unit_of_work(db):
        db.add(material_return)
        db.flush()
        result = record_transaction(
            db,
            material_id=material.id,
            project_id=project.id,
            warehouse_id=warehouse_id,
            transaction_type=TXN_RETURN,
            transaction_id=material_return.id,
            quantity_change=quantity,
            reference_number=f"RETURN-{material_return.id}",
            description=f"Material returned: {material_return.return_reason or 'No description'}",
            location=location,
            performed_by_user_id=user_id,
            commit=False,
        )
        material_return.material_id = result.material.id
    db.refresh(material_return)
    return material_return


def get_return(db: Session, return_id: int) -> MaterialReturn:
    return get_or_404(db, MaterialReturn, return_id, "Material return")


def _return_location(db: Session, material_return: MaterialReturn) -> str:
    if material_return.warehouse_id is None:
        return "Store"
    warehouse = db.get(Warehouse, material_return.warehouse_id)
    return warehouse.name if warehouse else "Store"


def update_return(db: Session, material_return: MaterialReturn, payload: dict, *, user_id: int) -> MaterialReturn:
    """Edit a return; a changed quantity adds or removes the difference.

    Stock moves on the record the return landed in, so a return made to
    another warehouse is corrected there.
    """

    condition = material_return.condition_status
    if payload.get("condition_status") is not None:
        condition = payload["condition_status"].upper()
        if condition not in RETURN_CONDITIONS:
            raise RuleViolation(f"condition_status must be one of {', '.join(RETURN_CONDITIONS)}")

    difference = 0
    if payload.get("quantity") is not None:
        quantity = _positive(payload["quantity"], "quantity")
        if material_return.issue_id is not None:
            issue = get_issue(db, material_return.issue_id)
            others = _returned_quantity(db, issue.id, excluding=material_return.id)
            if others + quantity > issue.quantity_issued:
                raise RuleViolation(
                    f"Return exceeds issued quantity. Issued: {issue.quantity_issued}, returned elsewhere: {others}"
                )
        difference = quantity - material_return.quantity
        if difference < 0:
            landed = get_or_404(db, Material, material_return.material_id, "Material")
            _check_available(landed, -difference, material_return.warehouse_id)

    with unit_of_work(db):
        apply_fields(material_return, payload, ("return_date", "return_reason"))
        material_return.condition_status = condition
        if difference:
            material_return.quantity += difference
            record_transaction(
                db,
                material_id=material_return.material_id,
                project_id=material_return.project_id,
                transaction_type=TXN_RETURN,
                transaction_id=material_return.id,
                quantity_change=difference,
                reference_number=f"RETURN-UPDATE-{material_return.id}",
                description="Material return quantity updated",
                location=_return_location(db, material_return),
                performed_by_user_id=user_id,
                commit=False,
            )
    db.refresh(material_return)
    return material_return


def delete_return(db: Session, material_return: MaterialReturn, *, user_id: int) -> None:
    return_id = material_return.id
    landed = get_or_404(db, Material, material_return.material_id, "Material")
    _check_available(landed, material_return.quantity, material_return.warehouse_id)
    with unit_of_work(db):
        record_transaction(
            db,
            material_id=material_return.material_id,
            project_id=material_return.project_id,
            transaction_type=TXN_RETURN,
            transaction_id=material_return.id,
            quantity_change=-material_return.quantity,
            reference_number=f"RETURN-DELETE-{material_return.id}",
            description="Material return deleted - stock adjusted",
            location=_return_location(db, material_return),
            performed_by_user_id=user_id,
            commit=False,
        )
        db.delete(material_return)
    logger.info("movements.return_deleted", extra={"extra_data": {"return_id": return_id}})


# ---- Consumptions


def list_consumptions(db: Session, *, project_id: int | None = None, material_id: int | None = None, page: int = 1, limit: int = 20) -> Page:
    stmt = select(MaterialConsumption).order_by(desc(MaterialConsumption.consumption_date), desc(MaterialConsumption.id))
    if project_id is not None:
        stmt = stmt.where(MaterialConsumption.project_id == project_id)
    if material_id is not None:
        stmt = stmt.where(MaterialConsumption.material_id == material_id)
    return paginate(db, stmt, page=page, limit=limit)


def create_consumption(db: Session, payload: dict, *, user_id: int) -> MaterialConsumption:
    quantity = _positive(payload.get("quantity_consumed"), "quantity_consumed")
    project = get_or_404(db, Project, payload.get("project_id"), "Project")
    material = get_or_404(db, Material, payload.get("material_id"), "Material")
    _check_available(material, quantity, None)

    consumption = MaterialConsumption(
        project_id=project.id,
        material_id=material.id,
        quantity_consumed=quantity,
        consumption_date=payload.get("consumption_date") or date.today().isoformat(),
        consumption_purpose=payload.get("consumption_purpose"),
        location=payload.get("location"),
        recorded_by_user_id=user_id,
    )
    with unit_of_work(db):
        db.add(consumption)
        db.flush()
        record_transaction(
            db,
            material_id=material.id,
            project_id=project.id,
            transaction_type=TXN_CONSUMPTION,
            transaction_id=consumption.id,
            quantity_change=-quantity,
            reference_number=f"CONSUMPTION-{consumption.id}",
            description=f"Material consumed: {consumption.consumption_purpose or 'No description'}",
            location=consumption.location,
            performed_by_user_id=user_id,
            commit=False,
        )
    db.refresh(consumption)
    return consumption


def get_consumption(db: Session, consumption_id: int) -> MaterialConsumption:
    return get_or_404(db, MaterialConsumption, consumption_id, "Material consumption")


def update_consumption(
    db: Session, consumption: MaterialConsumption, payload: dict, *, user_id: int
) -> MaterialConsumption:
    difference = 0
    if payload.get("quantity_consumed") is not None:
        quantity = _positive(payload["quantity_consumed"], "quantity_consumed")
        difference = quantity - consumption.quantity_consumed
        if difference > 0:
            _check_available(get_or_404(db, Material, consumption.material_id, "Material"), difference, None)

    with unit_of_work(db):
        apply_fields(consumption, payload, ("consumption_date", "consumption_purpose", "location"))
        if difference:
            consumption.quantity_consumed += difference
            record_transaction(
                db,
                material_id=consumption.material_id,
                project_id=consumption.project_id,
                transaction_type=TXN_CONSUMPTION,
                transaction_id=consumption.id,
                quantity_change=-difference,
                reference_number=f"CONSUMPTION-UPDATE-{consumption.id}",
                description="Material consumption quantity updated",
                location=consumption.location,
                performed_by_user_id=user_id,
                commit=False,
            )
    db.refresh(consumption)
    return consumption


def delete_consumption(db: Session, consumption: MaterialConsumption, *, user_id: int) -> None:
    consumption_id = consumption.id
    with unit_of_work(db):
        record_transaction(
            db,
            material_id=consumption.material_id,
            project_id=consumption.project_id,
            transaction_type=TXN_CONSUMPTION,
            transaction_id=consumption.id,
            quantity_change=consumption.quantity_consumed,
            reference_number=f"CONSUMPTION-DELETE-{consumption.id}",
            description="Material consumption deleted - stock restored",
            location=consumption.location,
            performed_by_user_id=user_id,
            commit=False,
        )
        db.delete(consumption)
    logger.info("movements.consumption_deleted", extra={"extra_data": {"consumption_id": consumption_id}})


# ---- Restock

# Every restock entry's description starts with this; restock_history filters on it.
RESTOCK_NOTE = "Material restocked"


def _restock_one(db: Session, entry: dict, *, user_id: int) -> Material:
    quantity = _positive(entry.get("restock_quantity"), "restock_quantity")
    material = get_or_404(db, Material, entry.get("material_id"), "Material")
    cost = entry.get("cost_per_unit")
    if cost is not None and cost < 0:
        raise RuleViolation("cost_per_unit cannot be negative")
    stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    result = record_transaction(
        db,
        material_id=material.id,
        project_id=material.project_id,
        warehouse_id=entry.get("warehouse_id"),
        transaction_type=TXN_PURCHASE,
        quantity_change=quantity,
        reference_number=entry.get("reference_number") or f"RESTOCK-{stamp}",
        description=f"{RESTOCK_NOTE}: {entry.get('notes') or 'No notes'}",
        location=entry.get("location") or material.location or "Store",
        performed_by_user_id=user_id,
        cost_per_unit=cost,
        commit=False,
    )
    # The stock may have landed in another warehouse's record; price it there.
    stocked = result.material
    if cost is not None:
        stocked.cost_per_unit = cost
    if entry.get("supplier"):
        stocked.supplier = entry["supplier"]
    return stocked


def restock(db: Session, payload: dict, *, user_id: int) -> Material:
    with unit_of_work(db):
        material = _restock_one(db, payload, user_id=user_id)
    db.refresh(material)
    return material


def restock_bulk(db: Session, entries: list[dict], *, user_id: int) -> list[Material]:
    """Restock several materials; either every line is posted or none is."""

    if not entries:
        raise RuleViolation("At least one restock line is required")
    with unit_of_work(db):
        materials = [_restock_one(db, entry, user_id=user_id) for entry in entries]
    for material in materials:
        db.refresh(material)
    return materials


def restock_history(
    db: Session,
    *,
    material_id: int | None = None,
    project_id: int | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> Page:
    stmt = select(InventoryHistory).where(
        InventoryHistory.transaction_type == TXN_PURCHASE,
        InventoryHistory.description.like(f"{RESTOCK_NOTE}%"),
    )
    if material_id is not None:
        stmt = stmt.where(InventoryHistory.material_id == material_id)
    if project_id is not None:
        stmt = stmt.where(InventoryHistory.project_id == project_id)
    if date_from:
        stmt = stmt.where(InventoryHistory.transaction_date >= date_from)
    if date_to:
        stmt = stmt.where(InventoryHistory.transaction_date <= (date_to if "T" in date_to else f"{date_to}T23:59:59Z"))
    stmt = stmt.order_by(desc(InventoryHistory.transaction_date), desc(InventoryHistory.id))
    return paginate(db, stmt, page=page, limit=limit)
