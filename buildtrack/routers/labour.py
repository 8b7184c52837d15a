from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ACCOUNTANT, ROLE_ONSITE_TEAM, ROLE_PROJECT_MANAGER
from ..crud import labour as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.common import Message, page_payload
from ..schemas.labour import (
    AttendanceCreate,
    AttendanceList,
    AttendanceSaved,
    AttendanceUpdate,
    BulkAttendance,
    BulkAttendanceResult,
    LabourCreate,
    LabourList,
    LabourOut,
    LabourSaved,
    LabourStats,
    LabourUpdate,
    PayrollCreate,
    PayrollList,
    PayrollOut,
    PayrollSaved,
    PayrollUpdate,
)

router = APIRouter(prefix="/api/v1/labours", tags=["labour"], dependencies=[Depends(get_current_user)])
payroll_router = APIRouter(prefix="/api/v1/payroll", tags=["payroll"], dependencies=[Depends(get_current_user)])

_labour_editors = require_roles(ROLE_PROJECT_MANAGER, ROLE_ONSITE_TEAM)
_payroll_editors = require_roles(ROLE_PROJECT_MANAGER, ROLE_ACCOUNTANT)


@router.get("", response_model=LabourList)
def api_list_labours(
    active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return page_payload(crud.list_labours(db, active=active, search=search, page=page, limit=limit), "labours")


@router.post("", response_model=LabourSaved, status_code=201, dependencies=[Depends(_labour_editors)])
def api_create_labour(payload: LabourCreate, db: Session = Depends(get_db)):
    labour = crud.create_labour(db, payload.model_dump(exclude_none=True))
    return {"message": "Labour created successfully", "labour": labour}


@router.post("/bulk-attendance", response_model=BulkAttendanceResult, status_code=201)
def api_bulk_attendance(
    payload: BulkAttendance,
    db: Session = Depends(get_db),
    user: User = Depends(_labour_editors),
):
    created, skipped = crud.record_bulk_attendance(db, payload.model_dump(), user_id=user.id)
    return {
        "message": f"Bulk attendance recorded. {len(created)} records created, {len(skipped)} errors.",
        "created": created,
        "errors": skipped,
    }


@router.patch("/attendance/{attendance_id}", response_model=AttendanceSaved, dependencies=[Depends(_labour_editors)])
def api_update_attendance(attendance_id: int, payload: AttendanceUpdate, db: Session = Depends(get_db)):
    attendance = crud.get_attendance(db, attendance_id)
    attendance = crud.update_attendance(db, attendance, payload.model_dump(exclude_unset=True))
    return {"message": "Attendance updated successfully", "attendance": attendance}


@router.delete("/attendance/{attendance_id}", response_model=Message, dependencies=[Depends(_labour_editors)])
def api_delete_attendance(attendance_id: int, db: Session = Depends(get_db)):
    crud.delete_attendance(db, crud.get_attendance(db, attendance_id))
    return {"message": "Attendance record deleted successfully"}


@router.get("/{labour_id}", response_model=LabourOut)
def api_get_labour(labour_id: int, db: Session = Depends(get_db)):
    return crud.get_labour(db, labour_id)


@router.patch("/{labour_id}", response_model=LabourSaved, dependencies=[Depends(_labour_editors)])
def api_update_labour(labour_id: int, payload: LabourUpdate, db: Session = Depends(get_db)):
    labour = crud.update_labour(db, crud.get_labour(db, labour_id), payload.model_dump(exclude_unset=True))
    return {"message": "Labour updated successfully", "labour": labour}


@router.delete("/{labour_id}", response_model=Message, dependencies=[Depends(require_roles(ROLE_PROJECT_MANAGER))])
def api_delete_labour(labour_id: int, db: Session = Depends(get_db)):
    crud.delete_labour(db, crud.get_labour(db, labour_id))
    return {"message": "Labour deleted successfully"}


@router.post("/{labour_id}/attendance", response_model=AttendanceSaved, status_code=201)
def api_record_attendance(
    labour_id: int,
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(_labour_editors),
):
    labour = crud.get_labour(db, labour_id)
    attendance = crud.record_attendance(db, labour, payload.model_dump(exclude_none=True), user_id=user.id)
    return {"message": "Attendance recorded successfully", "attendance": attendance}


@router.get("/{labour_id}/attendance", response_model=AttendanceList)
def api_list_attendance(
    labour_id: int,
    project_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
):
    labour = crud.get_labour(db, labour_id)
    records = crud.list_attendance(
        db, labour_id=labour.id, project_id=project_id, start_date=start_date, end_date=end_date
    )
    return {"labour": labour, "attendance": records}


@router.get("/{labour_id}/stats", response_model=LabourStats)
def api_labour_stats(
    labour_id: int,
    project_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
):
    labour = crud.get_labour(db, labour_id)
    return crud.labour_stats(db, labour, project_id=project_id, start_date=start_date, end_date=end_date)


@payroll_router.get("", response_model=PayrollList)
def api_list_payroll(
    labour_id: Optional[int] = None,
    project_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_payroll(db, labour_id=labour_id, project_id=project_id, page=page, limit=limit)
    return page_payload(result, "payroll")


@payroll_router.post("", response_model=PayrollSaved, status_code=201, dependencies=[Depends(_payroll_editors)])
def api_create_payroll(payload: PayrollCreate, db: Session = Depends(get_db)):
    payroll = crud.create_payroll(db, payload.model_dump(exclude_none=True))
    return {"message": "Payroll record created successfully", "payroll": payroll}


@payroll_router.get("/{payroll_id}", response_model=PayrollOut)
def api_get_payroll(payroll_id: int, db: Session = Depends(get_db)):
    return crud.get_payroll(db, payroll_id)


@payroll_router.patch("/{payroll_id}", response_model=PayrollSaved, dependencies=[Depends(_payroll_editors)])
def api_update_payroll(payroll_id: int, payload: PayrollUpdate, db: Session = Depends(get_db)):
    payroll = crud.update_payroll(db, crud.get_payroll(db, payroll_id), payload.model_dump(exclude_unset=True))
    return {"message": "Payroll record updated successfully", "payroll": payroll}


@payroll_router.delete("/{payroll_id}", response_model=Message, dependencies=[Depends(_payroll_editors)])
def api_delete_payroll(payroll_id: int, db: Session = Depends(get_db)):
    crud.delete_payroll(db, crud.get_payroll(db, payroll_id))
    return {"message": "Payroll record deleted successfully"}
