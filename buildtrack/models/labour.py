from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.mixins import TimestampMixin
from ..db.session import Base


class Labour(TimestampMixin, Base):
    __tablename__ = "labours"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    skill = Column(Text, nullable=True)
    daily_wage = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class LabourAttendance(TimestampMixin, Base):
    """Hours one labourer worked on one project on one day."""

    __tablename__ = "labour_attendance"
    __table_args__ = (UniqueConstraint("labour_id", "project_id", "date", name="uq_attendance_labour_project_day"),)

    id = Column(Integer, primary_key=True, index=True)
    labour_id = Column(Integer, ForeignKey("labours.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    date = Column(Text, nullable=False)
    hours_worked = Column(Float, nullable=False, default=0.0)
    overtime_hours = Column(Float, nullable=False, default=0.0)
    work_type = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    labour = relationship("Labour")
    project = relationship("Project")

    @property
    def project_name(self) -> str | None:
        return self.project.name if self.project else None


class Payroll(TimestampMixin, Base):
    """Wages paid to one labourer for one period on one project."""

    __tablename__ = "payrolls"

    id = Column(Integer, primary_key=True, index=True)
    labour_id = Column(Integer, ForeignKey("labours.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    period_start = Column(Text, nullable=False)
    period_end = Column(Text, nullable=False)
    amount_paid = Column(Float, nullable=False)
    deductions = Column(Float, nullable=False, default=0.0)
    paid_date = Column(Text, nullable=True)

    labour = relationship("Labour")
    project = relationship("Project")

    @property
    def net_amount(self) -> float:
        return (self.amount_paid or 0.0) - (self.deductions or 0.0)


__all__ = ["Labour", "LabourAttendance", "Payroll"]
