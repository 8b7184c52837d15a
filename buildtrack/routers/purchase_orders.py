from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ACCOUNTANT_HEAD, ROLE_ADMIN, ROLE_ENGINEER_HO, ROLE_PURCHASE_MANAGER_HO
from ..crud import purchase_orders as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import page_payload
from ..schemas.purchase_order import (
    PlaceOrderResult,
    PurchaseOrderCreate,
    PurchaseOrderFromMrr,
    PurchaseOrderList,
    PurchaseOrderOut,
    PurchaseOrderSaved,
    PurchaseOrderUpdate,
)
from ..schemas.receipt import ReceiptOut

router = APIRouter(prefix="/api/v1/purchase-orders", tags=["purchase-orders"], dependencies=[Depends(get_current_user)])

_buyers = require_roles(ROLE_PURCHASE_MANAGER_HO, ROLE_ENGINEER_HO)


@router.get("", response_model=PurchaseOrderList)
def api_list_purchase_orders(
    status: Optional[str] = None,
    project_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_purchase_orders(
        db, status=status, project_id=project_id, supplier_id=supplier_id, page=page, limit=limit
    )
    return page_payload(result, "purchase_orders")


@router.post("", response_model=PurchaseOrderSaved, status_code=201)
def api_create_purchase_order(
    payload: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(_buyers),
):
    po = crud.create_purchase_order(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Purchase Order created successfully", "purchase_order": po}


@router.post("/from-mrr/{mrr_id}", response_model=PurchaseOrderSaved, status_code=201)
def api_create_from_mrr(
    mrr_id: int,
    payload: PurchaseOrderFromMrr,
    db: Session = Depends(get_db),
    user: User = Depends(_buyers),
):
    po = crud.create_from_mrr(db, mrr_id, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Purchase Order created successfully", "purchase_order": po}


@router.get("/{po_id}", response_model=PurchaseOrderOut)
def api_get_purchase_order(po_id: int, db: Session = Depends(get_db)):
    return crud.get_purchase_order(db, po_id)


@router.get("/{po_id}/receipts", response_model=list[ReceiptOut])
def api_purchase_order_receipts(po_id: int, db: Session = Depends(get_db)):
    return crud.receipts_for_order(db, crud.get_purchase_order(db, po_id))


@router.put("/{po_id}", response_model=PurchaseOrderSaved, dependencies=[Depends(_buyers)])
def api_update_purchase_order(po_id: int, payload: PurchaseOrderUpdate, db: Session = Depends(get_db)):
    po = crud.get_purchase_order(db, po_id)
    po = crud.update_purchase_order(db, po, payload.model_dump(exclude_unset=True, exclude_none=True))
    return {"message": "Purchase Order updated successfully", "purchase_order": po}


@router.patch("/{po_id}/approve", response_model=PurchaseOrderSaved)
def api_approve_purchase_order(
    po_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ROLE_ADMIN)),
):
    po = crud.approve_purchase_order(db, crud.get_purchase_order(db, po_id), user_id=user.id)
    return {"message": "Purchase Order approved successfully", "purchase_order": po}


@router.patch("/{po_id}/place-order", response_model=PlaceOrderResult)
def api_place_order(
    po_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ROLE_ACCOUNTANT_HEAD, ROLE_ENGINEER_HO)),
):
    po, notified = crud.place_order(db, crud.get_purchase_order(db, po_id), user_id=user.id)
    message = "Purchase Order placed successfully"
    if not notified:
        message += " (supplier notification not sent)"
    return {"message": message, "purchase_order": po, "notification_sent": notified}


@router.patch("/{po_id}/cancel", response_model=PurchaseOrderSaved, dependencies=[Depends(_buyers)])
def api_cancel_purchase_order(po_id: int, db: Session = Depends(get_db)):
    po = crud.cancel_purchase_order(db, crud.get_purchase_order(db, po_id))
    return {"message": "Purchase Order cancelled successfully", "purchase_order": po}
