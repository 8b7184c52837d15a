"""Master data: warehouses, the item catalogue and suppliers."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..core.errors import RuleViolation
from ..db.session import unit_of_work
from ..models.catalog import Item, Warehouse
from ..models.material import Material
from ..models.purchase_order import PurchaseOrder
from ..models.supplier import Supplier
from ._common import Page, apply_fields, get_or_404, paginate, require_text

_WAREHOUSE_FIELDS = ("address", "contact_person", "contact_phone", "is_active")
_ITEM_FIELDS = ("unit", "category", "brand", "description", "is_active")
_SUPPLIER_FIELDS = (
    "contact_person",
    "phone",
    "email",
    "address",
    "gst_number",
    "payment_terms",
    "credit_limit",
    "is_active",
)


def _save(db: Session, obj):
    with unit_of_work(db):
        db.add(obj)
    db.refresh(obj)
    return obj


# ---- Warehouses


def list_warehouses(db: Session, *, active: bool | None = None) -> list[Warehouse]:
    stmt = select(Warehouse).order_by(Warehouse.name)
    if active is not None:
        stmt = stmt.where(Warehouse.is_active == active)
    return list(db.execute(stmt).scalars().all())


def first_active_warehouse(db: Session) -> Warehouse | None:
    stmt = select(Warehouse).where(Warehouse.is_active.is_(True)).order_by(Warehouse.id).limit(1)
    return db.execute(stmt).scalars().first()


def get_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    return get_or_404(db, Warehouse, warehouse_id, "Warehouse")


def _unique_warehouse_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    stmt = select(Warehouse.id).where(func.lower(Warehouse.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Warehouse.id != exclude_id)
    if db.execute(stmt).first():
        raise RuleViolation("Warehouse with this name already exists")


def create_warehouse(db: Session, payload: dict) -> Warehouse:
    name = require_text(payload, "name")
    _unique_warehouse_name(db, name)
    warehouse = Warehouse(name=name, is_active=True)
    apply_fields(warehouse, payload, _WAREHOUSE_FIELDS)
    return _save(db, warehouse)


def update_warehouse(db: Session, warehouse: Warehouse, payload: dict) -> Warehouse:
    if "name" in payload:
        name = require_text(payload, "name")
        _unique_warehouse_name(db, name, exclude_id=warehouse.id)
        warehouse.name = name
    apply_fields(warehouse, payload, _WAREHOUSE_FIELDS)
    return _save(db, warehouse)


def delete_warehouse(db: Session, warehouse: Warehouse) -> None:
    stocked = db.execute(select(Material.id).where(Material.warehouse_id == warehouse.id).limit(1)).first()
    if stocked:
        raise RuleViolation("Warehouse holds materials and cannot be deleted")
    with unit_of_work(db):
        db.delete(warehouse)


# ---- Items


def list_items(
    db: Session,
    *,
    search: str | None = None,
    category: str | None = None,
    active: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(Item).order_by(Item.name, Item.id)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Item.name.ilike(pattern), Item.code.ilike(pattern)))
    if category:
        stmt = stmt.where(Item.category == category)
    if active is not None:
        stmt = stmt.where(Item.is_active == active)
    return paginate(db, stmt, page=page, limit=limit)


def get_item(db: Session, item_id: int) -> Item:
    return get_or_404(db, Item, item_id, "Item")


def _unique_item_code(db: Session, code: str, exclude_id: int | None = None) -> None:
    stmt = select(Item.id).where(func.upper(Item.code) == code.upper())
    if exclude_id is not None:
        stmt = stmt.where(Item.id != exclude_id)
    if db.execute(stmt).first():
        raise RuleViolation("Item with this code already exists")


def create_item(db: Session, payload: dict) -> Item:
    code = require_text(payload, "code").upper()
    _unique_item_code(db, code)
    item = Item(code=code, name=require_text(payload, "name"), is_active=True)
    apply_fields(item, payload, _ITEM_FIELDS)
    return _save(db, item)


def update_item(db: Session, item: Item, payload: dict) -> Item:
    if "code" in payload:
        code = require_text(payload, "code").upper()
        _unique_item_code(db, code, exclude_id=item.id)
        item.code = code
    if "name" in payload:
        item.name = require_text(payload, "name")
    apply_fields(item, payload, _ITEM_FIELDS)
    return _save(db, item)


def delete_item(db: Session, item: Item) -> None:
    stocked = db.execute(select(Material.id).where(Material.item_id == item.id).limit(1)).first()
    if stocked:
        raise RuleViolation("Item is stocked as a material and cannot be deleted")
    with unit_of_work(db):
        db.delete(item)


# ---- Suppliers


def list_suppliers(db: Session, *, search: str | None = None, active: bool | None = None, page: int = 1, limit: int = 20) -> Page:
    stmt = select(Supplier).order_by(Supplier.name, Supplier.id)
    if search:
        stmt = stmt.where(Supplier.name.ilike(f"%{search.strip()}%"))
    if active is not None:
        stmt = stmt.where(Supplier.is_active == active)
    return paginate(db, stmt, page=page, limit=limit)


def get_supplier(db: Session, supplier_id: int) -> Supplier:
    return get_or_404(db, Supplier, supplier_id, "Supplier")


def create_supplier(db: Session, payload: dict) -> Supplier:
    supplier = Supplier(name=require_text(payload, "name"), is_active=True)
    apply_fields(supplier, payload, _SUPPLIER_FIELDS)
    return _save(db, supplier)


def update_supplier(db: Session, supplier: Supplier, payload: dict) -> Supplier:
    if "name" in payload:
        supplier.name = require_text(payload, "name")
    apply_fields(supplier, payload, _SUPPLIER_FIELDS)
    return _save(db, supplier)


def delete_supplier(db: Session, supplier: Supplier) -> None:
    ordered = db.execute(select(PurchaseOrder.id).where(PurchaseOrder.supplier_id == supplier.id).limit(1)).first()
    if ordered:
        raise RuleViolation("Supplier has purchase orders and cannot be deleted")
    with unit_of_work(db):
        db.delete(supplier)
