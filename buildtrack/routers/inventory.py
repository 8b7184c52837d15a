"""Stock movements and the ledger views."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_INVENTORY_MANAGER, ROLE_ONSITE_TEAM, ROLE_PROJECT_MANAGER
from ..crud import inventory, movements
from ..crud.projects import get_project
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import Message, page_payload
from ..schemas.material import HistoryList
from ..schemas.movement import (
    BulkRestock,
    ConsumptionCreate,
    ConsumptionList,
    ConsumptionOut,
    ConsumptionSaved,
    ConsumptionUpdate,
    IssueCancel,
    IssueCreate,
    IssueList,
    IssueOut,
    IssueSaved,
    IssueUpdate,
    RestockLine,
    RestockResult,
    RestockSaved,
    ReturnCreate,
    ReturnList,
    ReturnOut,
    ReturnSaved,
    ReturnUpdate,
)

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"], dependencies=[Depends(get_current_user)])

_stock_keepers = require_roles(ROLE_PROJECT_MANAGER, ROLE_ONSITE_TEAM, ROLE_INVENTORY_MANAGER)


@router.get("/issues", response_model=IssueList)
def api_list_issues(
    project_id: Optional[int] = None,
    material_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = movements.list_issues(
        db, project_id=project_id, material_id=material_id, status=status, page=page, limit=limit
    )
    return page_payload(result, "issues")


@router.post("/issues", response_model=IssueSaved, status_code=201)
def api_create_issue(payload: IssueCreate, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    issue = movements.create_issue(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Material issue created successfully", "issue": issue}


@router.get("/issues/{issue_id}", response_model=IssueOut)
def api_get_issue(issue_id: int, db: Session = Depends(get_db)):
    return movements.get_issue(db, issue_id)


@router.patch("/issues/{issue_id}", response_model=IssueSaved)
def api_update_issue(
    issue_id: int,
    payload: IssueUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(_stock_keepers),
):
    issue = movements.get_issue(db, issue_id)
    issue = movements.update_issue(db, issue, payload.model_dump(exclude_unset=True), user_id=user.id)
    return {"message": "Material issue updated successfully", "issue": issue}


@router.delete("/issues/{issue_id}", response_model=Message)
def api_delete_issue(issue_id: int, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    movements.delete_issue(db, movements.get_issue(db, issue_id), user_id=user.id)
    return {"message": "Material issue deleted successfully"}


@router.patch("/issues/{issue_id}/cancel", response_model=IssueSaved)
def api_cancel_issue(
    issue_id: int,
    payload: Optional[IssueCancel] = None,
    db: Session = Depends(get_db),
    user: User = Depends(_stock_keepers),
):
    issue = movements.get_issue(db, issue_id)
    issue = movements.cancel_issue(db, issue, user_id=user.id, reason=payload.reason if payload else None)
    return {"message": "Material issue cancelled successfully", "issue": issue}


@router.get("/returns", response_model=ReturnList)
def api_list_returns(
    project_id: Optional[int] = None,
    material_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = movements.list_returns(db, project_id=project_id, material_id=material_id, page=page, limit=limit)
    return page_payload(result, "returns")


@router.post("/returns", response_model=ReturnSaved, status_code=201)
def api_create_return(payload: ReturnCreate, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    material_return = movements.create_return(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Material return created successfully", "material_return": material_return}


@router.get("/returns/{return_id}", response_model=ReturnOut)
def api_get_return(return_id: int, db: Session = Depends(get_db)):
    return movements.get_return(db, return_id)


@router.patch("/returns/{return_id}", response_model=ReturnSaved)
def api_update_return(
    return_id: int,
    payload: ReturnUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(_stock_keepers),
):
    material_return = movements.get_return(db, return_id)
    material_return = movements.update_return(
        db, material_return, payload.model_dump(exclude_unset=True), user_id=user.id
    )
    return {"message": "Material return updated successfully", "material_return": material_return}


@router.delete("/returns/{return_id}", response_model=Message)
def api_delete_return(return_id: int, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    movements.delete_return(db, movements.get_return(db, return_id), user_id=user.id)
    return {"message": "Material return deleted successfully"}


@router.get("/consumptions", response_model=ConsumptionList)
def api_list_consumptions(
    project_id: Optional[int] = None,
    material_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = movements.list_consumptions(db, project_id=project_id, material_id=material_id, page=page, limit=limit)
    return page_payload(result, "consumptions")


@router.post("/consumptions", response_model=ConsumptionSaved, status_code=201)
def api_create_consumption(
    payload: ConsumptionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(_stock_keepers),
):
    consumption = movements.create_consumption(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Material consumption created successfully", "consumption": consumption}


@router.get("/consumptions/{consumption_id}", response_model=ConsumptionOut)
def api_get_consumption(consumption_id: int, db: Session = Depends(get_db)):
    return movements.get_consumption(db, consumption_id)


@router.patch("/consumptions/{consumption_id}", response_model=ConsumptionSaved)
def api_update_consumption(
    consumption_id: int,
    payload: ConsumptionUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(_stock_keepers),
):
    consumption = movements.get_consumption(db, consumption_id)
    consumption = movements.update_consumption(db, consumption, payload.model_dump(exclude_unset=True), user_id=user.id)
    return {"message": "Material consumption updated successfully", "consumption": consumption}


@router.delete("/consumptions/{consumption_id}", response_model=Message)
def api_delete_consumption(consumption_id: int, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    movements.delete_consumption(db, movements.get_consumption(db, consumption_id), user_id=user.id)
    return {"message": "Material consumption deleted successfully"}


@router.post("/restock", response_model=RestockSaved)
def api_restock(payload: RestockLine, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    material = movements.restock(db, payload.model_dump(exclude_none=True), user_id=user.id)
    return {
        "message": "Material restocked successfully",
        "material": material,
        "restock_quantity": payload.restock_quantity,
    }


@router.post("/restock/bulk", response_model=RestockResult)
def api_restock_bulk(payload: BulkRestock, db: Session = Depends(get_db), user: User = Depends(_stock_keepers)):
    lines = [line.model_dump(exclude_none=True) for line in payload.items]
    materials = movements.restock_bulk(db, lines, user_id=user.id)
    return {
        "message": f"Bulk restock completed. {len(materials)} materials restocked successfully.",
        "materials": materials,
    }


@router.get("/restock/history", response_model=HistoryList)
def api_restock_history(
    material_id: Optional[int] = None,
    project_id: Optional[int] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = movements.restock_history(
        db, material_id=material_id, project_id=project_id, date_from=date_from, date_to=date_to, page=page, limit=limit
    )
    return page_payload(result, "history")


@router.get("/history", response_model=HistoryList)
def api_history(
    material_id: Optional[int] = None,
    project_id: Optional[int] = None,
    transaction_type: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = inventory.list_history(
        db,
        material_id=material_id,
        project_id=project_id,
        transaction_type=transaction_type,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return page_payload(result, "history")


@router.get("/projects/{project_id}/history", response_model=HistoryList)
def api_project_history(
    project_id: int,
    transaction_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    get_project(db, project_id)
    result = inventory.get_project_history(db, project_id, transaction_type=transaction_type, page=page, limit=limit)
    return page_payload(result, "history")
