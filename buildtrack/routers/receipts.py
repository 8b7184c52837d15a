from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ENGINEER_HO, ROLE_STORE_MANAGER
from ..crud import receipts as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import page_payload
from ..schemas.receipt import (
    CompleteRequest,
    ReceiptCreate,
    ReceiptList,
    ReceiptOut,
    ReceiptSaved,
    ReceiptStats,
    ReceiveRequest,
    VerifyRequest,
)

router = APIRouter(prefix="/api/v1/material-receipts", tags=["material-receipts"], dependencies=[Depends(get_current_user)])

_stores = require_roles(ROLE_STORE_MANAGER, ROLE_ENGINEER_HO)


@router.get("", response_model=ReceiptList)
def api_list_receipts(
    project_id: Optional[int] = None,
    status: Optional[str] = None,
    po_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_receipts(db, project_id=project_id, status=status, po_id=po_id, page=page, limit=limit)
    return page_payload(result, "receipts")


@router.get("/stats/overview", response_model=ReceiptStats)
def api_receipt_stats(
    project_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return crud.receipt_stats(db, project_id=project_id, start_date=start_date, end_date=end_date)


@router.get("/po/{po_id}", response_model=list[ReceiptOut])
def api_receipts_by_po(po_id: int, db: Session = Depends(get_db)):
    return crud.receipts_by_po(db, po_id)


@router.post("", response_model=ReceiptSaved, status_code=201)
def api_create_receipt(payload: ReceiptCreate, db: Session = Depends(get_db), user: User = Depends(_stores)):
    receipt = crud.create_receipt(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Material receipt created successfully", "receipt": receipt}


@router.get("/{receipt_id}", response_model=ReceiptOut)
def api_get_receipt(receipt_id: int, db: Session = Depends(get_db)):
    return crud.get_receipt(db, receipt_id)


@router.put("/{receipt_id}/receive", response_model=ReceiptSaved, dependencies=[Depends(_stores)])
def api_receive_receipt(receipt_id: int, payload: ReceiveRequest, db: Session = Depends(get_db)):
    receipt = crud.get_receipt(db, receipt_id)
    receipt = crud.receive_receipt(db, receipt, payload.model_dump())
    return {"message": "Material receipt updated successfully", "receipt": receipt}


@router.put("/{receipt_id}/complete", response_model=ReceiptSaved)
def api_complete_receipt(
    receipt_id: int,
    payload: Optional[CompleteRequest] = None,
    db: Session = Depends(get_db),
    user: User = Depends(_stores),
):
    receipt = crud.get_receipt(db, receipt_id)
    notes = payload.completion_notes if payload else None
    receipt = crud.complete_receipt(db, receipt, user_id=user.id, completion_notes=notes)
    return {"message": "Material receipt completed and inventory updated successfully", "receipt": receipt}


@router.post("/{receipt_id}/verify", response_model=ReceiptSaved)
def api_verify_receipt(
    receipt_id: int,
    payload: VerifyRequest,
    db: Session = Depends(get_db),
    user: User = Depends(_stores),
):
    receipt = crud.verify_receipt(db, crud.get_receipt(db, receipt_id), payload.model_dump(), user_id=user.id)
    return {"message": "Material receipt verified successfully and inventory updated", "receipt": receipt}
