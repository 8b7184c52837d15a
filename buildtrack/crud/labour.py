"""Labour register, daily attendance and payroll."""

from __future__ import annotations

import logging

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, RuleViolation
from ..db.session import unit_of_work
from ..models.labour import Labour, LabourAttendance, Payroll
from ..models.project import Project
from ._common import Page, apply_fields, clean_text, get_or_404, paginate, require_text

_LABOUR_FIELDS = ("phone", "skill", "daily_wage", "is_active")
_PAYROLL_FIELDS = ("period_start", "period_end", "amount_paid", "deductions", "paid_date")

logger = logging.getLogger(__name__)


def list_labours(db: Session, *, active: bool | None = None, search: str | None = None, page: int = 1, limit: int = 20) -> Page:
    stmt = select(Labour).order_by(Labour.name, Labour.id)
    if active is not None:
        stmt = stmt.where(Labour.is_active == active)
    if search:
        stmt = stmt.where(Labour.name.ilike(f"%{search.strip()}%"))
    return paginate(db, stmt, page=page, limit=limit)


def get_labour(db: Session, labour_id: int) -> Labour:
    return get_or_404(db, Labour, labour_id, "Labour")


def create_labour(db: Session, payload: dict) -> Labour:
    labour = Labour(name=require_text(payload, "name"), is_active=True)
    apply_fields(labour, payload, _LABOUR_FIELDS)
    labour.phone = clean_text(labour.phone)
    with unit_of_work(db):
        db.add(labour)
    db.refresh(labour)
    return labour


def update_labour(db: Session, labour: Labour, payload: dict) -> Labour:
    if "name" in payload:
        labour.name = require_text(payload, "name")
    apply_fields(labour, payload, _LABOUR_FIELDS)
    with unit_of_work(db):
        db.add(labour)
    db.refresh(labour)
    return labour


def delete_labour(db: Session, labour: Labour) -> None:
    attended = db.execute(select(LabourAttendance.id).where(LabourAttendance.labour_id == labour.id).limit(1)).first()
    if attended:
        raise RuleViolation(
            "Cannot delete labour with existing attendance records. Please remove attendance records first."
        )
    paid = db.execute(select(Payroll.id).where(Payroll.labour_id == labour.id).limit(1)).first()
    if paid:
        raise RuleViolation("Labour has payroll records and cannot be deleted")
    with unit_of_work(db):
        db.delete(labour)


def _check_period(start: str | None, end: str | None) -> None:
    if not start or not end:
        raise RuleViolation("period_start and period_end are required")
    if end < start:
        raise RuleViolation("period_end cannot be before period_start")


def list_payroll(
    db: Session,
    *,
    labour_id: int | None = None,
    project_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(Payroll).order_by(desc(Payroll.period_end), desc(Payroll.id))
    if labour_id is not None:
        stmt = stmt.where(Payroll.labour_id == labour_id)
    if project_id is not None:
        stmt = stmt.where(Payroll.project_id == project_id)
    return paginate(db, stmt, page=page, limit=limit)


def get_payroll(db: Session, payroll_id: int) -> Payroll:
    return get_or_404(db, Payroll, payroll_id, "Payroll")


def create_payroll(db: Session, payload: dict) -> Payroll:
    get_labour(db, payload.get("labour_id"))
    get_or_404(db, Project, payload.get("project_id"), "Project")
    _check_period(payload.get("period_start"), payload.get("period_end"))
    amount = payload.get("amount_paid")
    if amount is None or amount < 0:
        raise RuleViolation("amount_paid must be zero or more")
    payroll = Payroll(labour_id=payload["labour_id"], project_id=payload["project_id"], deductions=0.0)
    apply_fields(payroll, payload, _PAYROLL_FIELDS)
    if payroll.deductions is None:
        payroll.deductions = 0.0
    with unit_of_work(db):
        db.add(payroll)
    db.refresh(payroll)
    return payroll


def update_payroll(db: Session, payroll: Payroll, payload: dict) -> Payroll:
    apply_fields(payroll, payload, _PAYROLL_FIELDS)
    _check_period(payroll.period_start, payroll.period_end)
    with unit_of_work(db):
        db.add(payroll)
    db.refresh(payroll)
    return payroll


def delete_payroll(db: Session, payroll: Payroll) -> None:
    with unit_of_work(db):
        db.delete(payroll)


# ---- Attendance

# Daily wages cover a standard shift; attendance hours are paid pro rata.
STANDARD_SHIFT_HOURS = 8.0


def _hours(value, field: str) -> float:
    hours = float(value or 0)
    if hours < 0 or hours > 24:
        raise RuleViolation(f"{field} must be between 0 and 24")
    return hours


def _find_attendance(db: Session, labour_id: int, project_id: int, day: str) -> LabourAttendance | None:
    stmt = select(LabourAttendance).where(
        LabourAttendance.labour_id == labour_id,
        LabourAttendance.project_id == project_id,
        LabourAttendance.date == day,
    )
    return db.execute(stmt).scalars().first()


def _new_attendance(
    db: Session, labour_id: int, project_id: int, day: str, line: dict, user_id: int
) -> LabourAttendance:
    if _find_attendance(db, labour_id, project_id, day):
        raise RuleViolation("Attendance already recorded for this date")
    return LabourAttendance(
        labour_id=labour_id,
        project_id=project_id,
        date=day,
        hours_worked=_hours(line.get("hours_worked"), "hours_worked"),
        overtime_hours=_hours(line.get("overtime_hours"), "overtime_hours"),
        work_type=clean_text(line.get("work_type")),
        notes=clean_text(line.get("notes")),
        recorded_by_user_id=user_id,
    )


def get_attendance(db: Session, attendance_id: int) -> LabourAttendance:
    return get_or_404(db, LabourAttendance, attendance_id, "Attendance record")


def list_attendance(
    db: Session,
    *,
    labour_id: int | None = None,
    project_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[LabourAttendance]:
    stmt = select(LabourAttendance).order_by(desc(LabourAttendance.date), desc(LabourAttendance.id))
    if labour_id is not None:
        stmt = stmt.where(LabourAttendance.labour_id == labour_id)
    if project_id is not None:
        stmt = stmt.where(LabourAttendance.project_id == project_id)
    if start_date:
        stmt = stmt.where(LabourAttendance.date >= start_date)
    if end_date:
        stmt = stmt.where(LabourAttendance.date <= end_date)
    return list(db.execute(stmt).scalars().all())


def record_attendance(db: Session, labour: Labour, payload: dict, *, user_id: int) -> LabourAttendance:
    project = get_or_404(db, Project, payload.get("project_id"), "Project")
    day = require_text(payload, "date")
    attendance = _new_attendance(db, labour.id, project.id, day, payload, user_id)
    with unit_of_work(db):
        db.add(attendance)
    db.refresh(attendance)
    return attendance


def record_bulk_attendance(db: Session, payload: dict, *, user_id: int) -> tuple[list[LabourAttendance], list[dict]]:
    """Record one day's attendance for a crew.

    Lines for unknown labourers or days already recorded are reported back
    and skipped; the remaining lines are saved together.
    """

    project = get_or_404(db, Project, payload.get("project_id"), "Project")
    day = require_text(payload, "date")
    created: list[LabourAttendance] = []
    skipped: list[dict] = []
    seen: set[int] = set()
    for line in payload.get("attendance_records") or []:
        labour_id = line.get("labour_id")
        try:
            if labour_id in seen:
                raise RuleViolation("Labour listed more than once")
            get_labour(db, labour_id)
            created.append(_new_attendance(db, labour_id, project.id, day, line, user_id))
            seen.add(labour_id)
        except (NotFoundError, RuleViolation) as exc:
            skipped.append({"labour_id": labour_id, "error": exc.message})
    with unit_of_work(db):
        db.add_all(created)
    for attendance in created:
        db.refresh(attendance)
    logger.info(
        "labour.bulk_attendance",
        extra={"extra_data": {"project_id": project.id, "date": day, "created": len(created), "skipped": len(skipped)}},
    )
    return created, skipped


def update_attendance(db: Session, attendance: LabourAttendance, payload: dict) -> LabourAttendance:
    for field in ("hours_worked", "overtime_hours"):
        if payload.get(field) is not None:
            setattr(attendance, field, _hours(payload[field], field))
    apply_fields(attendance, payload, ("work_type", "notes"))
    with unit_of_work(db):
        db.add(attendance)
    db.refresh(attendance)
    return attendance


def delete_attendance(db: Session, attendance: LabourAttendance) -> None:
    with unit_of_work(db):
        db.delete(attendance)


def labour_stats(
    db: Session,
    labour: Labour,
    *,
    project_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict[str, object]:
    records = list_attendance(db, labour_id=labour.id, project_id=project_id, start_date=start_date, end_date=end_date)
    hourly_rate = (labour.daily_wage or 0.0) / STANDARD_SHIFT_HOURS

    by_project: dict[int, dict[str, object]] = {}
    for record in records:
        hours = (record.hours_worked or 0.0) + (record.overtime_hours or 0.0)
        row = by_project.setdefault(
            record.project_id,
            {
                "project_id": record.project_id,
                "project_name": record.project_name,
                "total_hours": 0.0,
                "total_days": 0,
                "total_earnings": 0.0,
            },
        )
        row["total_hours"] += hours
        row["total_days"] += 1
        row["total_earnings"] += hours * hourly_rate

    total_hours = sum(row["total_hours"] for row in by_project.values())
    total_days = len(records)
    for row in by_project.values():
        row["total_hours"] = round(row["total_hours"], 2)
        row["total_earnings"] = round(row["total_earnings"], 2)
    return {
        "labour": labour,
        "statistics": {
            "total_hours": round(total_hours, 2),
            "total_days": total_days,
            "average_hours_per_day": round(total_hours / total_days, 2) if total_days else 0.0,
            "total_earnings": round(total_hours * hourly_rate, 2),
            "project_breakdown": list(by_project.values()),
        },
        "attendance_records": records,
    }
