"""Material requirement requests: site demand raised before purchasing."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.mixins import TimestampMixin
from ..db.session import Base


class MaterialRequirementRequest(TimestampMixin, Base):
    __tablename__ = "material_requirement_requests"

    id = Column(Integer, primary_key=True, index=True)
    mrr_number = Column(Text, nullable=False, unique=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    requested_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    request_date = Column(Text, nullable=False)
    required_date = Column(Text, nullable=False)
    priority = Column(Text, nullable=False, default="MEDIUM")
    status = Column(Text, nullable=False, default="DRAFT", index=True)
    approved_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    total_estimated_cost = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)

    project = relationship("Project")
    items = relationship(
        "MrrItem",
        back_populates="mrr",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MrrItem.id",
    )


class MrrItem(Base):
    __tablename__ = "mrr_items"

    id = Column(Integer, primary_key=True, index=True)
    mrr_id = Column(Integer, ForeignKey("material_requirement_requests.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity_requested = Column(Integer, nullable=False)
    specifications = Column(Text, nullable=True)
    purpose = Column(Text, nullable=True)
    priority = Column(Text, nullable=False, default="MEDIUM")
    estimated_cost_per_unit = Column(Float, nullable=True)
    total_estimated_cost = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    mrr = relationship("MaterialRequirementRequest", back_populates="items")
    item = relationship("Item", lazy="joined")


__all__ = ["MaterialRequirementRequest", "MrrItem"]
