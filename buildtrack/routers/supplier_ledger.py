from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ACCOUNTANT, ROLE_ACCOUNTANT_HEAD, ROLE_PROJECT_MANAGER
from ..crud import supplier_ledger as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import page_payload
from ..schemas.supplier_ledger import (
    AdjustmentCreate,
    LedgerEntryOut,
    LedgerEntrySaved,
    LedgerList,
    PaymentCreate,
    SupplierStatement,
    SupplierSummary,
)

router = APIRouter(prefix="/api/v1/supplier-ledger", tags=["supplier-ledger"], dependencies=[Depends(get_current_user)])

_accounts = require_roles(ROLE_PROJECT_MANAGER, ROLE_ACCOUNTANT, ROLE_ACCOUNTANT_HEAD)


@router.get("", response_model=LedgerList)
def api_list_entries(
    supplier_id: Optional[int] = None,
    transaction_type: Optional[str] = None,
    payment_status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_entries(
        db,
        supplier_id=supplier_id,
        transaction_type=transaction_type,
        payment_status=payment_status,
        page=page,
        limit=limit,
    )
    return page_payload(result, "entries")


@router.get("/summary", response_model=list[SupplierSummary])
def api_ledger_summary(supplier_id: Optional[int] = None, db: Session = Depends(get_db)):
    return crud.summary(db, supplier_id=supplier_id)


@router.get("/overdue", response_model=list[LedgerEntryOut])
def api_overdue_entries(db: Session = Depends(get_db)):
    return crud.overdue_entries(db)


@router.get("/supplier/{supplier_id}", response_model=SupplierStatement)
def api_supplier_statement(supplier_id: int, db: Session = Depends(get_db)):
    return crud.supplier_statement(db, supplier_id)


@router.post("/payment", response_model=LedgerEntrySaved, status_code=201)
def api_record_payment(payload: PaymentCreate, db: Session = Depends(get_db), user: User = Depends(_accounts)):
    entry = crud.record_payment(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Payment recorded successfully", "entry": entry}


@router.post("/adjustment", response_model=LedgerEntrySaved, status_code=201)
def api_record_adjustment(payload: AdjustmentCreate, db: Session = Depends(get_db), user: User = Depends(_accounts)):
    entry = crud.record_adjustment(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Adjustment recorded successfully", "entry": entry}
