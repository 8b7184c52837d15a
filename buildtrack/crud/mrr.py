"""Material requirement requests and the inventory check that feeds purchasing."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.constants import (
    MRR_APPROVED,
    MRR_CANCELLED,
    MRR_COMPLETED,
    MRR_DRAFT,
    MRR_PROCESSING,
    MRR_REJECTED,
    MRR_SUBMITTED,
    PRIORITIES,
    normalize_choice,
)
from ..core.errors import RuleViolation
from ..db.mixins import utcnow
from ..db.session import unit_of_work
from ..models.catalog import Item
from ..models.material import Material
from ..models.mrr import MaterialRequirementRequest, MrrItem
from ..models.project import Project
from ..services.numbering import next_mrr_number
from ._common import Page, get_or_404, paginate
from .catalog import first_active_warehouse
from .inventory import item_stock_totals

logger = logging.getLogger(__name__)

AVAILABLE = "AVAILABLE"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
NOT_IN_INVENTORY = "NOT_IN_INVENTORY"
CREATED_NO_STOCK = "CREATED_NO_STOCK"


def _priority(value: str | None) -> str:
    try:
        return normalize_choice(value, PRIORITIES, "MEDIUM")
    except ValueError as exc:
        raise RuleViolation(f"priority {exc}") from exc


def list_mrrs(
    db: Session,
    *,
    project_id: int | None = None,
    status: str | None = None,
    priority: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(MaterialRequirementRequest).order_by(
        desc(MaterialRequirementRequest.created_at), desc(MaterialRequirementRequest.id)
    )
    if project_id is not None:
        stmt = stmt.where(MaterialRequirementRequest.project_id == project_id)
    if status:
        stmt = stmt.where(MaterialRequirementRequest.status == status.upper())
    if priority:
        stmt = stmt.where(MaterialRequirementRequest.priority == priority.upper())
    return paginate(db, stmt, page=page, limit=limit)


def get_mrr(db: Session, mrr_id: int) -> MaterialRequirementRequest:
    return get_or_404(db, MaterialRequirementRequest, mrr_id, "MRR")


def _build_item(db: Session, line: dict) -> MrrItem:
    item = get_or_404(db, Item, line.get("item_id"), "Item")
    quantity = line.get("quantity_requested")
    if quantity is None or quantity <= 0:
        raise RuleViolation("quantity_requested must be a positive integer")
    unit_cost = line.get("estimated_cost_per_unit")
    return MrrItem(
        item_id=item.id,
        quantity_requested=quantity,
        specifications=line.get("specifications"),
        purpose=line.get("purpose"),
        priority=_priority(line.get("priority")),
        estimated_cost_per_unit=unit_cost,
        total_estimated_cost=round(unit_cost * quantity, 2) if unit_cost is not None else None,
        notes=line.get("notes"),
    )


def _recompute_total(mrr: MaterialRequirementRequest) -> None:
    mrr.total_estimated_cost = round(sum(line.total_estimated_cost or 0 for line in mrr.items), 2)


def create_mrr(db: Session, payload: dict, *, user_id: int) -> MaterialRequirementRequest:
    project = get_or_404(db, Project, payload.get("project_id"), "Project")
    required_date = payload.get("required_date")
    if not required_date:
        raise RuleViolation("required_date is required")
    lines = payload.get("items") or []
    if not lines:
        raise RuleViolation("At least one item is required")

    mrr = MaterialRequirementRequest(
        mrr_number=next_mrr_number(db),
        project_id=project.id,
        requested_by_user_id=user_id,
        request_date=payload.get("request_date") or date.today().isoformat(),
        required_date=required_date,
        priority=_priority(payload.get("priority")),
        status=MRR_DRAFT,
        notes=payload.get("notes"),
    )
    mrr.items = [_build_item(db, line) for line in lines]
    _recompute_total(mrr)
    with unit_of_work(db):
        db.add(mrr)
    db.refresh(mrr)
    logger.info("mrr.created", extra={"extra_data": {"mrr_id": mrr.id, "mrr_number": mrr.mrr_number}})
    return mrr


def update_mrr(db: Session, mrr: MaterialRequirementRequest, payload: dict) -> MaterialRequirementRequest:
    if mrr.status != MRR_DRAFT:
        raise RuleViolation("Only draft MRRs can be updated")
    with unit_of_work(db):
        if "required_date" in payload and payload["required_date"]:
            mrr.required_date = payload["required_date"]
        if "priority" in payload:
            mrr.priority = _priority(payload.get("priority"))
        if "notes" in payload:
            mrr.notes = payload.get("notes")
        if payload.get("items") is not None:
            if not payload["items"]:
                raise RuleViolation("At least one item is required")
            mrr.items = [_build_item(db, line) for line in payload["items"]]
            _recompute_total(mrr)
    db.refresh(mrr)
    return mrr


def delete_mrr(db: Session, mrr: MaterialRequirementRequest) -> None:
    if mrr.status != MRR_DRAFT:
        raise RuleViolation("Only draft MRRs can be deleted")
    with unit_of_work(db):
        db.delete(mrr)


def _transition(db: Session, mrr: MaterialRequirementRequest, new_status: str, **changes) -> MaterialRequirementRequest:
    old_status = mrr.status
    with unit_of_work(db):
        mrr.status = new_status
        for name, value in changes.items():
            setattr(mrr, name, value)
    db.refresh(mrr)
    logger.info(
        "mrr.status_changed",
        extra={"extra_data": {"mrr_id": mrr.id, "from": old_status, "to": new_status}},
    )
    return mrr


def submit_mrr(db: Session, mrr: MaterialRequirementRequest) -> MaterialRequirementRequest:
    if mrr.status != MRR_DRAFT:
        raise RuleViolation("Only draft MRRs can be submitted")
    return _transition(db, mrr, MRR_SUBMITTED)


def review_mrr(
    db: Session,
    mrr: MaterialRequirementRequest,
    *,
    action: str,
    user_id: int,
    rejection_reason: str | None = None,
) -> MaterialRequirementRequest:
    if action not in ("approve", "reject"):
        raise RuleViolation("Action must be either approve or reject")
    if mrr.status != MRR_SUBMITTED:
        raise RuleViolation("Only submitted MRRs can be approved/rejected")
    if action == "approve":
        return _transition(db, mrr, MRR_APPROVED, approved_by_user_id=user_id, approved_at=utcnow())
    return _transition(
        db,
        mrr,
        MRR_REJECTED,
        approved_by_user_id=user_id,
        approved_at=utcnow(),
        rejection_reason=rejection_reason,
    )


def cancel_mrr(db: Session, mrr: MaterialRequirementRequest) -> MaterialRequirementRequest:
    if mrr.status in (MRR_CANCELLED, MRR_COMPLETED):
        raise RuleViolation(f"Cannot cancel an MRR that is {mrr.status}")
    return _transition(db, mrr, MRR_CANCELLED)


def complete_mrr(db: Session, mrr: MaterialRequirementRequest) -> MaterialRequirementRequest:
    if mrr.status not in (MRR_APPROVED, MRR_PROCESSING):
        raise RuleViolation("Only approved or processing MRRs can be completed")
    return _transition(db, mrr, MRR_COMPLETED)


def _first_material(db: Session, item_id: int) -> Material | None:
    stmt = (
        select(Material)
        .where(Material.item_id == item_id, Material.status == "ACTIVE")
        .order_by(desc(Material.stock_qty), Material.id)
    )
    return db.execute(stmt).scalars().first()


def check_inventory(
    db: Session,
    mrr: MaterialRequirementRequest,
    *,
    auto_create_materials: bool = False,
) -> dict[str, object]:
    """Compare every requested item against stock held in all warehouses.

    Missing materials can be created at zero stock in the first active
    warehouse. An APPROVED request whose items are all in stock moves to
    PROCESSING.
    """

    if mrr.status == MRR_CANCELLED:
        raise RuleViolation("Cannot check inventory for cancelled MRRs")

    totals = item_stock_totals(db, [line.item_id for line in mrr.items])
    results: list[dict[str, object]] = []
    missing: list[tuple[MrrItem, dict[str, object]]] = []
    all_available = True

    for line in mrr.items:
        item = line.item
        material = _first_material(db, line.item_id)
        row: dict[str, object] = {
            "mrr_item_id": line.id,
            "item_id": line.item_id,
            "item_name": item.name if item else None,
            "item_code": item.code if item else None,
            "required_quantity": line.quantity_requested,
            "available_stock": 0,
            "material_id": None,
            "warehouse_id": None,
            "warehouse_name": None,
        }
        if material is None:
            row["status"] = NOT_IN_INVENTORY
            missing.append((line, row))
            all_available = False
        else:
            available = totals.get(line.item_id, 0)
            row.update(
                available_stock=available,
                material_id=material.id,
                warehouse_id=material.warehouse_id,
                warehouse_name=material.warehouse_name,
                status=AVAILABLE if available >= line.quantity_requested else INSUFFICIENT_STOCK,
            )
            if available < line.quantity_requested:
                all_available = False
        results.append(row)

    with unit_of_work(db):
        if auto_create_materials and missing:
            warehouse = first_active_warehouse(db)
            if warehouse is None:
                raise RuleViolation("No active warehouse found. Please create a warehouse first.")
            for line, row in missing:
                item = line.item
                material = Material(
                    item_id=line.item_id,
                    project_id=mrr.project_id,
                    warehouse_id=warehouse.id,
                    name=item.name,
                    item_code=item.code,
                    category=item.category,
                    brand=item.brand,
                    unit=item.unit,
                    stock_qty=0,
                    minimum_stock_level=0,
                    maximum_stock_level=1000,
                    reorder_point=0,
                    status="ACTIVE",
                )
                db.add(material)
                db.flush()
                row.update(
                    material_id=material.id,
                    warehouse_id=warehouse.id,
                    warehouse_name=warehouse.name,
                    status=CREATED_NO_STOCK,
                )
            logger.info(
                "mrr.materials_created",
                extra={"extra_data": {"mrr_id": mrr.id, "count": len(missing), "warehouse_id": warehouse.id}},
            )

        if mrr.status == MRR_APPROVED and all_available:
            mrr.status = MRR_PROCESSING

    if all_available:
        inventory_status = "READY_FOR_ISSUE"
    elif missing:
        inventory_status = "NEEDS_PURCHASE"
    else:
        inventory_status = INSUFFICIENT_STOCK

    def _count(status: str) -> int:
        return sum(1 for r in results if r["status"] == status)

    return {
        "message": "Inventory check completed",
        "mrr_id": mrr.id,
        "mrr_status": mrr.status,
        "inventory_status": inventory_status,
        "all_materials_available": all_available,
        "materials_created": _count(CREATED_NO_STOCK),
        "inventory_check_results": results,
        "summary": {
            "total_items": len(results),
            "available_items": _count(AVAILABLE),
            "insufficient_stock_items": _count(INSUFFICIENT_STOCK),
            "not_in_inventory_items": _count(NOT_IN_INVENTORY),
            "created_items": _count(CREATED_NO_STOCK),
        },
    }
