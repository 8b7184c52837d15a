from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import Pagination


class LabourCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    skill: Optional[str] = None
    daily_wage: Optional[float] = Field(default=None, ge=0)
    is_active: bool = True


class LabourUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    skill: Optional[str] = None
    daily_wage: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class LabourOut(BaseModel):
    id: int
    name: str
    phone: Optional[str]
    skill: Optional[str]
    daily_wage: Optional[float]
    is_active: bool
    created_at: str

    class Config:
        from_attributes = True


class LabourList(BaseModel):
    labours: list[LabourOut]
    pagination: Pagination


class PayrollCreate(BaseModel):
    labour_id: int
    project_id: int
    period_start: str
    period_end: str
    amount_paid: float
    deductions: float = Field(default=0.0, ge=0)
    paid_date: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "labour_id": 1,
                "project_id": 1,
                "period_start": "2026-03-01",
                "period_end": "2026-03-15",
                "amount_paid": 9000,
                "deductions": 250,
            }
        }
    }


class PayrollUpdate(BaseModel):
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    amount_paid: Optional[float] = None
    deductions: Optional[float] = Field(default=None, ge=0)
    paid_date: Optional[str] = None


class PayrollOut(BaseModel):
    id: int
    labour_id: int
    project_id: int
    period_start: str
    period_end: str
    amount_paid: float
    deductions: float
    net_amount: float
    paid_date: Optional[str]
    created_at: str

    class Config:
        from_attributes = True


class PayrollList(BaseModel):
    payroll: list[PayrollOut]
    pagination: Pagination


class LabourSaved(BaseModel):
    message: str
    labour: LabourOut


class PayrollSaved(BaseModel):
    message: str
    payroll: PayrollOut


class AttendanceCreate(BaseModel):
    project_id: int
    date: str
    hours_worked: float = Field(default=0, ge=0, le=24)
    overtime_hours: float = Field(default=0, ge=0, le=24)
    work_type: Optional[str] = None
    notes: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "project_id": 1,
                "date": "2026-03-02",
                "hours_worked": 8,
                "overtime_hours": 2,
                "work_type": "Masonry",
            }
        }
    }


class AttendanceUpdate(BaseModel):
    hours_worked: Optional[float] = Field(default=None, ge=0, le=24)
    overtime_hours: Optional[float] = Field(default=None, ge=0, le=24)
    work_type: Optional[str] = None
    notes: Optional[str] = None


class AttendanceLine(BaseModel):
    labour_id: int
    hours_worked: float = Field(default=0, ge=0, le=24)
    overtime_hours: float = Field(default=0, ge=0, le=24)
    work_type: Optional[str] = None
    notes: Optional[str] = None


class BulkAttendance(BaseModel):
    project_id: int
    date: str
    attendance_records: list[AttendanceLine] = Field(..., min_length=1)


class AttendanceOut(BaseModel):
    id: int
    labour_id: int
    project_id: int
    project_name: Optional[str]
    date: str
    hours_worked: float
    overtime_hours: float
    work_type: Optional[str]
    notes: Optional[str]
    recorded_by_user_id: Optional[int]
    created_at: str

    class Config:
        from_attributes = True


class AttendanceSaved(BaseModel):
    message: str
    attendance: AttendanceOut


class AttendanceList(BaseModel):
    labour: LabourOut
    attendance: list[AttendanceOut]


class SkippedLine(BaseModel):
    labour_id: Optional[int]
    error: str


class BulkAttendanceResult(BaseModel):
    message: str
    created: list[AttendanceOut]
    errors: list[SkippedLine]


class ProjectHours(BaseModel):
    project_id: int
    project_name: Optional[str]
    total_hours: float
    total_days: int
    total_earnings: float


class LabourStatistics(BaseModel):
    total_hours: float
    total_days: int
    average_hours_per_day: float
    total_earnings: float
    project_breakdown: list[ProjectHours]


class LabourStats(BaseModel):
    labour: LabourOut
    statistics: LabourStatistics
    attendance_records: list[AttendanceOut]
