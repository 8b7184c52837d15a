"""CRUD helpers for stocked materials.

Stock changes never touch ``Material.stock_qty`` directly: an opening
balance or a manual correction is posted through the inventory ledger.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..core.constants import MATERIAL_STATUSES, TXN_ADJUSTMENT, TXN_PURCHASE, normalize_choice
from ..core.errors import RuleViolation
from ..db.session import unit_of_work
from ..models.catalog import Item, Warehouse
from ..models.material import Material
from ..models.project import Project
from ._common import Page, apply_fields, get_or_404, paginate
from .inventory import has_history, record_transaction

logger = logging.getLogger(__name__)

_DESCRIPTIVE_FIELDS = (
    "name",
    "item_code",
    "category",
    "brand",
    "unit",
    "specification",
    "supplier",
    "location",
    "cost_per_unit",
    "minimum_stock_level",
    "maximum_stock_level",
    "reorder_point",
    "project_id",
    "warehouse_id",
)


def list_materials(
    db: Session,
    *,
    search: str | None = None,
    category: str | None = None,
    project_id: int | None = None,
    warehouse_id: int | None = None,
    status: str | None = None,
    low_stock: bool = False,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(Material).order_by(Material.name, Material.id)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Material.name.ilike(pattern), Material.item_code.ilike(pattern)))
    if category:
        stmt = stmt.where(Material.category == category)
    if project_id is not None:
        stmt = stmt.where(Material.project_id == project_id)
    if warehouse_id is not None:
        stmt = stmt.where(Material.warehouse_id == warehouse_id)
    if status:
        stmt = stmt.where(Material.status == status.upper())
    if low_stock:
        stmt = stmt.where(Material.stock_qty <= Material.reorder_point)
    return paginate(db, stmt, page=page, limit=limit)


def get_material(db: Session, material_id: int) -> Material:
    return get_or_404(db, Material, material_id, "Material")


def _check_links(db: Session, payload: dict) -> None:
    if payload.get("item_id") is not None:
        get_or_404(db, Item, payload["item_id"], "Item")
    if payload.get("project_id") is not None:
        get_or_404(db, Project, payload["project_id"], "Project")
    if payload.get("warehouse_id") is not None:
        get_or_404(db, Warehouse, payload["warehouse_id"], "Warehouse")


def _status(value: str | None, default: str) -> str:
    try:
        return normalize_choice(value, MATERIAL_STATUSES, default)
    except ValueError as exc:
        raise RuleViolation(f"status {exc}") from exc


def create_material(db: Session, payload: dict, *, user_id: int) -> Material:
    """Create a material; a positive ``stock_qty`` is posted as an opening PURCHASE."""

    _check_links(db, payload)
    item = db.get(Item, payload["item_id"]) if payload.get("item_id") is not None else None
    name = (payload.get("name") or (item.name if item else "") or "").strip()
    if not name:
        raise RuleViolation("name is required")
    opening = int(payload.get("stock_qty") or 0)
    if opening < 0:
        raise RuleViolation("stock_qty cannot be negative")

    material = Material(
        item_id=item.id if item else None,
        status=_status(payload.get("status"), "ACTIVE"),
        stock_qty=0,
    )
    apply_fields(material, payload, _DESCRIPTIVE_FIELDS)
    material.name = name
    if item:
        material.item_code = material.item_code or item.code
        material.unit = material.unit or item.unit
        material.category = material.category or item.category
        material.brand = material.brand or item.brand

    with unit_of_work(db):
        db.add(material)
        db.flush()
        if opening:
            record_transaction(
                db,
                material_id=material.id,
                project_id=material.project_id,
                transaction_type=TXN_PURCHASE,
                quantity_change=opening,
                reference_number=f"INITIAL-{material.id}",
                description="Initial stock",
                location=material.location,
                performed_by_user_id=user_id,
                commit=False,
            )
    db.refresh(material)
    return material


def update_material(db: Session, material: Material, payload: dict, *, user_id: int) -> Material:
    """Update descriptive fields; a new ``stock_qty`` is a stock count posted as an ADJUSTMENT."""

    _check_links(db, payload)
    if "name" in payload and not (payload.get("name") or "").strip():
        raise RuleViolation("name is required")
    target = payload.get("stock_qty")
    if target is not None and target < 0:
        raise RuleViolation("stock_qty cannot be negative")

    with unit_of_work(db):
        if "status" in payload:
            material.status = _status(payload.get("status"), material.status)
        if "item_id" in payload:
            material.item_id = payload["item_id"]
        apply_fields(material, payload, _DESCRIPTIVE_FIELDS)
        db.flush()
        if target is not None:
            record_transaction(
                db,
                material_id=material.id,
                project_id=material.project_id,
                transaction_type=TXN_ADJUSTMENT,
                target_qty=int(target),
                reference_number=f"ADJUST-{material.id}",
                description=payload.get("adjustment_reason") or "Manual stock adjustment",
                location=material.location,
                performed_by_user_id=user_id,
                commit=False,
            )
    db.refresh(material)
    return material


def delete_material(db: Session, material: Material) -> None:
    material_id = material.id
    if has_history(db, material.id):
        raise RuleViolation("Material has inventory history and cannot be deleted")
    with unit_of_work(db):
        db.delete(material)
    logger.info("materials.deleted", extra={"extra_data": {"material_id": material_id}})
