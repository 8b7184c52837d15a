"""Inventory ledger: the only code path that changes ``Material.stock_qty``.

``record_transaction`` applies a signed quantity to a material and appends the
matching ``InventoryHistory`` row inside one unit of work. The stock write is a
compare-and-swap on the value the change was computed from, so two writers
that read the same ``stock_qty`` cannot overwrite each other: the loser
re-reads the committed value and tries again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import and_, desc, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from ..core.config import settings
from ..core.constants import TRANSACTION_TYPES
from ..core.errors import NotFoundError, RuleViolation, StockConflictError
from ..db.mixins import utcnow
from ..db.session import unit_of_work
from ..models.catalog import Item
from ..models.material import InventoryHistory, Material
from ._common import Page, paginate

logger = logging.getLogger(__name__)

# Descriptive columns copied when a material is first stocked in another warehouse.
_CLONED_FIELDS = (
    "item_id",
    "name",
    "item_code",
    "category",
    "brand",
    "unit",
    "specification",
    "supplier",
    "cost_per_unit",
    "minimum_stock_level",
    "maximum_stock_level",
    "reorder_point",
    "status",
)


@dataclass
class LedgerResult:
    material: Material
    # None when a target_qty call found the material already at the target.
    entry: InventoryHistory | None


def _find_in_warehouse(db: Session, source: Material, warehouse_id: int, project_id: int | None) -> Material | None:
    if source.item_id is not None:
        identity = Material.item_id == source.item_id
    else:
        identity = and_(Material.item_id.is_(None), Material.name == source.name)
    stmt = select(Material).where(identity, Material.warehouse_id == warehouse_id).order_by(Material.id)
    if project_id is not None:
        scoped = db.execute(stmt.where(Material.project_id == project_id)).scalars().first()
        if scoped:
            return scoped
    # Warehouse-level stock (no project) serves any project.
    return db.execute(stmt.where(Material.project_id.is_(None))).scalars().first()


def find_or_create_stock_record(
    db: Session,
    *,
    item_id: int,
    warehouse_id: int | None,
    project_id: int | None = None,
    location: str | None = None,
    cost_per_unit: float | None = None,
) -> Material:
    """Return the material holding ``item_id`` in a warehouse/project, creating it at zero."""

    project_clause = Material.project_id.is_(None) if project_id is None else Material.project_id == project_id
    warehouse_clause = Material.warehouse_id.is_(None) if warehouse_id is None else Material.warehouse_id == warehouse_id
    stmt = (
        select(Material)
        .where(Material.item_id == item_id, warehouse_clause, project_clause)
        .order_by(Material.id)
    )
    material = db.execute(stmt).scalars().first()
    if material:
        return material
    item = db.get(Item, item_id)
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")
    material = Material(
        item_id=item.id,
        name=item.name,
        item_code=item.code,
        category=item.category,
        brand=item.brand,
        unit=item.unit,
        cost_per_unit=cost_per_unit,
        location=location,
        project_id=project_id,
        warehouse_id=warehouse_id,
        stock_qty=0,
    )
    db.add(material)
    db.flush()
    logger.info(
        "inventory.material_created",
        extra={"extra_data": {"material_id": material.id, "item_id": item.id, "warehouse_id": warehouse_id}},
    )
    return material


def _resolve_material(
    db: Session,
    *,
    material_id: int | None,
    warehouse_id: int | None,
    project_id: int | None,
    item_id: int | None,
    location: str | None,
    cost_per_unit: float | None,
) -> Material:
    source = db.get(Material, material_id) if material_id is not None else None
    if source is None:
        if warehouse_id is not None and item_id is not None:
            return find_or_create_stock_record(
                db,
                item_id=item_id,
                warehouse_id=warehouse_id,
                project_id=project_id,
                location=location,
                cost_per_unit=cost_per_unit,
            )
        raise NotFoundError(f"Material with ID {material_id} not found")

    if warehouse_id is None or source.warehouse_id == warehouse_id:
        return source

    existing = _find_in_warehouse(db, source, warehouse_id, project_id)
    if existing:
        return existing

    clone = Material(
        **{name: getattr(source, name) for name in _CLONED_FIELDS},
        location=location or source.location,
        project_id=project_id,
        warehouse_id=warehouse_id,
        stock_qty=0,
    )
    if cost_per_unit is not None:
        clone.cost_per_unit = cost_per_unit
    db.add(clone)
    db.flush()
    logger.info(
        "inventory.material_cloned",
        extra={"extra_data": {"source_id": source.id, "material_id": clone.id, "warehouse_id": warehouse_id}},
    )
    return clone


def _swap_stock(db: Session, material: Material, before: int, after: int) -> bool:
    stamp = utcnow()
    result = db.execute(
        update(Material)
        .where(Material.id == material.id, Material.stock_qty == before)
        .values(stock_qty=after, updated_at=stamp)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    set_committed_value(material, "stock_qty", after)
    set_committed_value(material, "updated_at", stamp)
    return True


def record_transaction(
    db: Session,
    *,
    material_id: int | None,
    project_id: int | None = None,
    warehouse_id: int | None = None,
    transaction_type: str,
    transaction_id: int | None = None,
    quantity_change: int | None = None,
    reference_number: str | None = None,
    description: str | None = None,
    location: str | None = None,
    performed_by_user_id: int,
    item_id: int | None = None,
    cost_per_unit: float | None = None,
    target_qty: int | None = None,
    commit: bool = True,
) -> LedgerResult:
    """Apply ``quantity_change`` to a material and append its history entry.

    Positive changes add stock, negative changes remove it; the result may go
    below zero because availability is checked by the callers that need it.

    ``target_qty`` replaces ``quantity_change`` for stock counts: the change is
    worked out from the committed stock on every attempt, so a retried write
    still lands on the target. No entry is written if the stock already
    matches it.

    ``commit=False`` lets a workflow post several entries and commit once; any
    failure still rolls back the whole session before re-raising.
    """

    if transaction_type not in TRANSACTION_TYPES:
        raise RuleViolation(f"Unknown transaction type: {transaction_type}")
    if (quantity_change is None) == (target_qty is None):
        raise RuleViolation("Give exactly one of quantity_change or target_qty")
    checked = quantity_change if target_qty is None else target_qty
    if isinstance(checked, bool) or not isinstance(checked, int):
        raise RuleViolation(f"{'quantity_change' if target_qty is None else 'target_qty'} must be an integer")
    if quantity_change == 0:
        raise RuleViolation("quantity_change must be non-zero")

    entry = None
    with unit_of_work(db, commit=commit):
        material = _resolve_material(
            db,
            material_id=material_id,
            warehouse_id=warehouse_id,
            project_id=project_id,
            item_id=item_id,
            location=location,
            cost_per_unit=cost_per_unit,
        )

        attempts = settings.INVENTORY_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            quantity_before = int(material.stock_qty or 0)
            change = quantity_change if target_qty is None else target_qty - quantity_before
            if change == 0:
                break
            quantity_after = quantity_before + change
            if _swap_stock(db, material, quantity_before, quantity_after):
                break
            logger.warning(
                "inventory.stock_conflict",
                extra={"extra_data": {"material_id": material.id, "attempt": attempt, "expected": quantity_before}},
            )
            db.refresh(material, attribute_names=["stock_qty"])
        else:
            raise StockConflictError(
                f"Stock for material {material.id} changed concurrently; try again",
                details={"material_id": material.id, "attempts": attempts},
            )

        if change:
            entry = InventoryHistory(
                material_id=material.id,
                project_id=project_id,
                transaction_type=transaction_type,
                transaction_id=transaction_id,
                quantity_change=change,
                quantity_before=quantity_before,
                quantity_after=quantity_after,
                reference_number=reference_number,
                description=description,
                location=location,
                performed_by_user_id=performed_by_user_id,
                transaction_date=utcnow(),
            )
            db.add(entry)

    if entry is None:
        logger.info(
            "inventory.already_at_target",
            extra={"extra_data": {"material_id": material.id, "target": target_qty}},
        )
        return LedgerResult(material=material, entry=None)
    logger.info(
        "inventory.recorded",
        extra={
            "extra_data": {
                "material_id": material.id,
                "type": transaction_type,
                "change": change,
                "before": quantity_before,
                "after": quantity_after,
                "reference": reference_number,
            }
        },
    )
    return LedgerResult(material=material, entry=entry)


def get_material_history(
    db: Session,
    material_id: int,
    *,
    project_id: int | None = None,
    transaction_type: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> Page:
    stmt = select(InventoryHistory).where(InventoryHistory.material_id == material_id)
    if project_id is not None:
        stmt = stmt.where(InventoryHistory.project_id == project_id)
    if transaction_type:
        stmt = stmt.where(InventoryHistory.transaction_type == transaction_type.upper())
    stmt = stmt.order_by(desc(InventoryHistory.transaction_date), desc(InventoryHistory.id))
    return paginate(db, stmt, page=page, limit=limit)


def get_project_history(
    db: Session,
    project_id: int,
    *,
    transaction_type: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> Page:
    stmt = select(InventoryHistory).where(InventoryHistory.project_id == project_id)
    if transaction_type:
        stmt = stmt.where(InventoryHistory.transaction_type == transaction_type.upper())
    stmt = stmt.order_by(desc(InventoryHistory.transaction_date), desc(InventoryHistory.id))
    return paginate(db, stmt, page=page, limit=limit)


def list_history(
    db: Session,
    *,
    material_id: int | None = None,
    project_id: int | None = None,
    transaction_type: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> Page:
    stmt = select(InventoryHistory)
    if material_id is not None:
        stmt = stmt.where(InventoryHistory.material_id == material_id)
    if project_id is not None:
        stmt = stmt.where(InventoryHistory.project_id == project_id)
    if transaction_type:
        stmt = stmt.where(InventoryHistory.transaction_type == transaction_type.upper())
    if date_from:
        stmt = stmt.where(InventoryHistory.transaction_date >= date_from)
    if date_to:
        # Dates compare as text, so a bare day must include all of its timestamps.
        upper = date_to if "T" in date_to else f"{date_to}T23:59:59Z"
        stmt = stmt.where(InventoryHistory.transaction_date <= upper)
    stmt = stmt.order_by(desc(InventoryHistory.transaction_date), desc(InventoryHistory.id))
    return paginate(db, stmt, page=page, limit=limit)


def history_chain(db: Session, material_id: int) -> list[InventoryHistory]:
    """All entries for a material in the order they were applied."""

    stmt = select(InventoryHistory).where(InventoryHistory.material_id == material_id).order_by(InventoryHistory.id)
    return list(db.execute(stmt).unique().scalars().all())


def get_stock_levels(
    db: Session,
    *,
    project_id: int | None = None,
    warehouse_id: int | None = None,
    category: str | None = None,
    low_stock_only: bool = False,
) -> list[dict[str, object]]:
    stmt = select(Material).where(Material.status == "ACTIVE")
    if project_id is not None:
        stmt = stmt.where(Material.project_id == project_id)
    if warehouse_id is not None:
        stmt = stmt.where(Material.warehouse_id == warehouse_id)
    if category:
        stmt = stmt.where(Material.category == category)
    if low_stock_only:
        stmt = stmt.where(Material.stock_qty <= Material.reorder_point)
    stmt = stmt.order_by(Material.name, Material.id)
    materials = db.execute(stmt).unique().scalars().all()
    return [
        {
            "material_id": m.id,
            "name": m.name,
            "item_code": m.item_code,
            "category": m.category,
            "unit": m.unit,
            "warehouse_id": m.warehouse_id,
            "warehouse_name": m.warehouse_name,
            "project_id": m.project_id,
            "stock_qty": m.stock_qty,
            "reorder_point": m.reorder_point,
            "minimum_stock_level": m.minimum_stock_level,
            "cost_per_unit": m.cost_per_unit,
            "stock_value": m.stock_value,
            "is_low_stock": m.is_low_stock,
        }
        for m in materials
    ]


def get_low_stock_alerts(db: Session, *, project_id: int | None = None) -> list[Material]:
    stmt = select(Material).where(Material.status == "ACTIVE", Material.stock_qty <= Material.reorder_point)
    if project_id is not None:
        stmt = stmt.where(Material.project_id == project_id)
    stmt = stmt.order_by(Material.stock_qty, Material.name)
    return list(db.execute(stmt).unique().scalars().all())


def item_stock_totals(db: Session, item_ids: list[int]) -> dict[int, int]:
    """Summed ``stock_qty`` of every active material per item across warehouses."""

    if not item_ids:
        return {}
    stmt = (
        select(Material.item_id, func.coalesce(func.sum(Material.stock_qty), 0))
        .where(Material.item_id.in_(item_ids), Material.status == "ACTIVE")
        .group_by(Material.item_id)
    )
    return {item_id: int(total) for item_id, total in db.execute(stmt).all()}


def has_history(db: Session, material_id: int) -> bool:
    stmt = select(InventoryHistory.id).where(InventoryHistory.material_id == material_id).limit(1)
    return db.execute(stmt).first() is not None
