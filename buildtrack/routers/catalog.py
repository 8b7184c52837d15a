"""Master data endpoints: warehouses, the item catalogue and suppliers."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ADMIN, ROLE_INVENTORY_MANAGER, ROLE_PROJECT_MANAGER, ROLE_PURCHASE_MANAGER_HO
from ..crud import catalog as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..schemas.catalog import (
    ItemCreate,
    ItemList,
    ItemOut,
    ItemSaved,
    ItemUpdate,
    SupplierCreate,
    SupplierList,
    SupplierOut,
    SupplierSaved,
    SupplierUpdate,
    WarehouseCreate,
    WarehouseOut,
    WarehouseSaved,
    WarehouseUpdate,
)
from ..schemas.common import Message, page_payload

warehouses_router = APIRouter(prefix="/api/v1/warehouses", tags=["warehouses"], dependencies=[Depends(get_current_user)])
items_router = APIRouter(prefix="/api/v1/items", tags=["items"], dependencies=[Depends(get_current_user)])
suppliers_router = APIRouter(prefix="/api/v1/suppliers", tags=["suppliers"], dependencies=[Depends(get_current_user)])

_stores = require_roles(ROLE_PROJECT_MANAGER, ROLE_INVENTORY_MANAGER)
_admin_only = require_roles(ROLE_ADMIN)
_purchasing = require_roles(ROLE_PURCHASE_MANAGER_HO)


# ---- Warehouses


@warehouses_router.get("", response_model=list[WarehouseOut])
def api_list_warehouses(active: Optional[bool] = None, db: Session = Depends(get_db)):
    return crud.list_warehouses(db, active=active)


@warehouses_router.post("", response_model=WarehouseSaved, status_code=201, dependencies=[Depends(_stores)])
def api_create_warehouse(payload: WarehouseCreate, db: Session = Depends(get_db)):
    warehouse = crud.create_warehouse(db, payload.model_dump(exclude_none=True))
    return {"message": "Warehouse created successfully", "warehouse": warehouse}


@warehouses_router.get("/{warehouse_id}", response_model=WarehouseOut)
def api_get_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    return crud.get_warehouse(db, warehouse_id)


@warehouses_router.patch("/{warehouse_id}", response_model=WarehouseSaved, dependencies=[Depends(_stores)])
def api_update_warehouse(warehouse_id: int, payload: WarehouseUpdate, db: Session = Depends(get_db)):
    warehouse = crud.get_warehouse(db, warehouse_id)
    warehouse = crud.update_warehouse(db, warehouse, payload.model_dump(exclude_unset=True))
    return {"message": "Warehouse updated successfully", "warehouse": warehouse}


@warehouses_router.delete("/{warehouse_id}", response_model=Message, dependencies=[Depends(_stores)])
def api_delete_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    crud.delete_warehouse(db, crud.get_warehouse(db, warehouse_id))
    return {"message": "Warehouse deleted successfully"}


# ---- Items


@items_router.get("", response_model=ItemList)
def api_list_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_items(db, search=search, category=category, active=active, page=page, limit=limit)
    return page_payload(result, "items")


@items_router.post("", response_model=ItemSaved, status_code=201, dependencies=[Depends(_admin_only)])
def api_create_item(payload: ItemCreate, db: Session = Depends(get_db)):
    item = crud.create_item(db, payload.model_dump(exclude_none=True))
    return {"message": "Item created successfully", "item": item}


@items_router.get("/{item_id}", response_model=ItemOut)
def api_get_item(item_id: int, db: Session = Depends(get_db)):
    return crud.get_item(db, item_id)


@items_router.patch("/{item_id}", response_model=ItemSaved, dependencies=[Depends(_admin_only)])
def api_update_item(item_id: int, payload: ItemUpdate, db: Session = Depends(get_db)):
    item = crud.update_item(db, crud.get_item(db, item_id), payload.model_dump(exclude_unset=True))
    return {"message": "Item updated successfully", "item": item}


@items_router.delete("/{item_id}", response_model=Message, dependencies=[Depends(_admin_only)])
def api_delete_item(item_id: int, db: Session = Depends(get_db)):
    crud.delete_item(db, crud.get_item(db, item_id))
    return {"message": "Item deleted successfully"}


# ---- Suppliers


@suppliers_router.get("", response_model=SupplierList)
def api_list_suppliers(
    search: Optional[str] = None,
    active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return page_payload(crud.list_suppliers(db, search=search, active=active, page=page, limit=limit), "suppliers")


@suppliers_router.post("", response_model=SupplierSaved, status_code=201, dependencies=[Depends(_purchasing)])
def api_create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    supplier = crud.create_supplier(db, payload.model_dump(exclude_none=True))
    return {"message": "Supplier created successfully", "supplier": supplier}


@suppliers_router.get("/{supplier_id}", response_model=SupplierOut)
def api_get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    return crud.get_supplier(db, supplier_id)


@suppliers_router.patch("/{supplier_id}", response_model=SupplierSaved, dependencies=[Depends(_purchasing)])
def api_update_supplier(supplier_id: int, payload: SupplierUpdate, db: Session = Depends(get_db)):
    supplier = crud.update_supplier(db, crud.get_supplier(db, supplier_id), payload.model_dump(exclude_unset=True))
    return {"message": "Supplier updated successfully", "supplier": supplier}


@suppliers_router.delete("/{supplier_id}", response_model=Message, dependencies=[Depends(_admin_only)])
def api_delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    crud.delete_supplier(db, crud.get_supplier(db, supplier_id))
    return {"message": "Supplier deleted successfully"}
