"""Site stock movements. Each row is mirrored by one inventory history entry."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.constants import ISSUE_PENDING
from ..db.mixins import TimestampMixin
from ..db.session import Base


class MaterialIssue(TimestampMixin, Base):
    __tablename__ = "material_issues"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    mrr_id = Column(Integer, ForeignKey("material_requirement_requests.id"), nullable=True)
    quantity_issued = Column(Integer, nullable=False)
    issue_date = Column(Text, nullable=False)
    issue_purpose = Column(Text, nullable=True)
    location = Column(Text, nullable=False)
    issued_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    received_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    updated_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(Text, nullable=False, default=ISSUE_PENDING)

    material = relationship("Material")


class MaterialReturn(TimestampMixin, Base):
    __tablename__ = "material_returns"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    issue_id = Column(Integer, ForeignKey("material_issues.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    return_date = Column(Text, nullable=False)
    return_reason = Column(Text, nullable=True)
    condition_status = Column(Text, nullable=False, default="GOOD")
    returned_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    material = relationship("Material")


class MaterialConsumption(TimestampMixin, Base):
    __tablename__ = "material_consumptions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    quantity_consumed = Column(Integer, nullable=False)
    consumption_date = Column(Text, nullable=False)
    consumption_purpose = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    recorded_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    material = relationship("Material")


__all__ = ["MaterialConsumption", "MaterialIssue", "MaterialReturn"]
