from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_INVENTORY_MANAGER, ROLE_ONSITE_TEAM, ROLE_PROJECT_MANAGER
from ..crud import inventory, materials as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import Message, page_payload
from ..schemas.material import (
    HistoryList,
    MaterialCreate,
    MaterialList,
    MaterialOut,
    MaterialSaved,
    MaterialUpdate,
    StockLevel,
)

router = APIRouter(prefix="/api/v1/materials", tags=["materials"], dependencies=[Depends(get_current_user)])

_stock_keepers = require_roles(ROLE_PROJECT_MANAGER, ROLE_ONSITE_TEAM, ROLE_INVENTORY_MANAGER)


@router.get("", response_model=MaterialList)
def api_list_materials(
    search: Optional[str] = None,
    category: Optional[str] = None,
    project_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    status: Optional[str] = None,
    low_stock: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_materials(
        db,
        search=search,
        category=category,
        project_id=project_id,
        warehouse_id=warehouse_id,
        status=status,
        low_stock=low_stock,
        page=page,
        limit=limit,
    )
    return page_payload(result, "materials")


@router.get("/low-stock", response_model=list[MaterialOut])
def api_low_stock(project_id: Optional[int] = None, db: Session = Depends(get_db)):
    return inventory.get_low_stock_alerts(db, project_id=project_id)


@router.get("/stock-levels", response_model=list[StockLevel])
def api_stock_levels(
    project_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    category: Optional[str] = None,
    low_stock_only: bool = False,
    db: Session = Depends(get_db),
):
    return inventory.get_stock_levels(
        db, project_id=project_id, warehouse_id=warehouse_id, category=category, low_stock_only=low_stock_only
    )


@router.post("", response_model=MaterialSaved, status_code=201)
def api_create_material(payload: MaterialCreate, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    material = crud.create_material(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Material created successfully", "material": material}


@router.get("/{material_id}", response_model=MaterialOut)
def api_get_material(material_id: int, db: Session = Depends(get_db)):
    return crud.get_material(db, material_id)


@router.get("/{material_id}/history", response_model=HistoryList)
def api_material_history(
    material_id: int,
    project_id: Optional[int] = None,
    transaction_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    crud.get_material(db, material_id)
    result = inventory.get_material_history(
        db, material_id, project_id=project_id, transaction_type=transaction_type, page=page, limit=limit
    )
    return page_payload(result, "history")


@router.patch("/{material_id}", response_model=MaterialSaved)
def api_update_material(
    material_id: int,
    payload: MaterialUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(_stock_keepers),
):
    material = crud.get_material(db, material_id)
    material = crud.update_material(db, material, payload.model_dump(exclude_unset=True), user_id=user.id)
    return {"message": "Material updated successfully", "material": material}


@router.delete(
    "/{material_id}",
    response_model=Message,
    dependencies=[Depends(require_roles(ROLE_PROJECT_MANAGER, ROLE_INVENTORY_MANAGER))],
)
def api_delete_material(material_id: int, db: Session = Depends(get_db)):
    crud.delete_material(db, crud.get_material(db, material_id))
    return {"message": "Material deleted successfully"}
