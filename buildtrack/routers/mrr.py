from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ONSITE_TEAM, ROLE_PROJECT_MANAGER, ROLE_STORE_INCHARGE
from ..crud import mrr as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import Message, page_payload
from ..schemas.mrr import (
    InventoryCheckRequest,
    InventoryCheckResult,
    MrrCreate,
    MrrList,
    MrrOut,
    MrrReview,
    MrrSaved,
    MrrUpdate,
)

router = APIRouter(prefix="/api/v1/mrr", tags=["mrr"], dependencies=[Depends(get_current_user)])

_requesters = require_roles(ROLE_PROJECT_MANAGER, ROLE_ONSITE_TEAM)
_approvers = require_roles(ROLE_PROJECT_MANAGER)


@router.get("", response_model=MrrList)
def api_list_mrrs(
    project_id: Optional[int] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_mrrs(db, project_id=project_id, status=status, priority=priority, page=page, limit=limit)
    return page_payload(result, "mrrs")


@router.post("", response_model=MrrSaved, status_code=201)
def api_create_mrr(payload: MrrCreate, db: Session = Depends(get_db), user: User = Depends(_requesters)):
    mrr = crud.create_mrr(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "MRR created successfully", "mrr": mrr}


@router.get("/{mrr_id}", response_model=MrrOut)
def api_get_mrr(mrr_id: int, db: Session = Depends(get_db)):
    return crud.get_mrr(db, mrr_id)


@router.put("/{mrr_id}", response_model=MrrSaved, dependencies=[Depends(_requesters)])
def api_update_mrr(mrr_id: int, payload: MrrUpdate, db: Session = Depends(get_db)):
    mrr = crud.update_mrr(db, crud.get_mrr(db, mrr_id), payload.model_dump(exclude_unset=True))
    return {"message": "MRR updated successfully", "mrr": mrr}


@router.delete("/{mrr_id}", response_model=Message, dependencies=[Depends(_approvers)])
def api_delete_mrr(mrr_id: int, db: Session = Depends(get_db)):
    crud.delete_mrr(db, crud.get_mrr(db, mrr_id))
    return {"message": "MRR deleted successfully"}


@router.patch("/{mrr_id}/submit", response_model=MrrSaved, dependencies=[Depends(_requesters)])
def api_submit_mrr(mrr_id: int, db: Session = Depends(get_db)):
    mrr = crud.submit_mrr(db, crud.get_mrr(db, mrr_id))
    return {"message": "MRR submitted successfully", "mrr": mrr}


@router.patch("/{mrr_id}/approve", response_model=MrrSaved)
def api_review_mrr(mrr_id: int, payload: MrrReview, db: Session = Depends(get_db), user: User = Depends(_approvers)):
    mrr = crud.review_mrr(
        db,
        crud.get_mrr(db, mrr_id),
        action=payload.action,
        user_id=user.id,
        rejection_reason=payload.rejection_reason,
    )
    return {"message": f"MRR {payload.action}d successfully", "mrr": mrr}


@router.patch("/{mrr_id}/cancel", response_model=MrrSaved, dependencies=[Depends(_requesters)])
def api_cancel_mrr(mrr_id: int, db: Session = Depends(get_db)):
    mrr = crud.cancel_mrr(db, crud.get_mrr(db, mrr_id))
    return {"message": "MRR cancelled successfully", "mrr": mrr}


@router.patch("/{mrr_id}/complete", response_model=MrrSaved, dependencies=[Depends(_approvers)])
def api_complete_mrr(mrr_id: int, db: Session = Depends(get_db)):
    mrr = crud.complete_mrr(db, crud.get_mrr(db, mrr_id))
    return {"message": "MRR completed successfully", "mrr": mrr}


@router.post(
    "/{mrr_id}/check-inventory",
    response_model=InventoryCheckResult,
    dependencies=[Depends(require_roles(ROLE_PROJECT_MANAGER, ROLE_STORE_INCHARGE))],
)
def api_check_inventory(
    mrr_id: int,
    payload: Optional[InventoryCheckRequest] = None,
    db: Session = Depends(get_db),
):
    auto_create = payload.auto_create_materials if payload else False
    return crud.check_inventory(db, crud.get_mrr(db, mrr_id), auto_create_materials=auto_create)
