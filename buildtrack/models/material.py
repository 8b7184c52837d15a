"""Stocked materials and their append-only inventory history.

``Material.stock_qty`` is the running on-hand count. It is only changed by
``buildtrack.crud.inventory.record_transaction``, which writes one
``InventoryHistory`` row per change.
"""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text, event
from sqlalchemy.orm import relationship

from ..db.mixins import TimestampMixin, utcnow
from ..db.session import Base


class Material(TimestampMixin, Base):
    """One stocked material in one warehouse (and optionally one project)."""

    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True, index=True)

    name = Column(Text, nullable=False)
    item_code = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    brand = Column(Text, nullable=True)
    unit = Column(Text, nullable=True)
    specification = Column(Text, nullable=True)
    supplier = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="ACTIVE")

    cost_per_unit = Column(Float, nullable=True)
    stock_qty = Column(Integer, nullable=False, default=0)
    minimum_stock_level = Column(Integer, nullable=False, default=0)
    maximum_stock_level = Column(Integer, nullable=False, default=1000)
    reorder_point = Column(Integer, nullable=False, default=0)

    item = relationship("Item")
    project = relationship("Project")
    warehouse = relationship("Warehouse")

    @property
    def warehouse_name(self) -> str | None:
        return self.warehouse.name if self.warehouse else None

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_qty or 0) <= (self.reorder_point or 0)

    @property
    def stock_value(self) -> float:
        return (self.stock_qty or 0) * (self.cost_per_unit or 0.0)


class InventoryHistory(Base):
    """Immutable record of one stock change.

    ``quantity_change`` is signed: positive values add stock, negative values
    remove it. ``quantity_after`` always equals ``quantity_before`` plus
    ``quantity_change``.
    """

    __tablename__ = "inventory_history"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    transaction_type = Column(Text, nullable=False, index=True)
    transaction_id = Column(Integer, nullable=True, index=True)
    quantity_change = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    reference_number = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    performed_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    transaction_date = Column(Text, nullable=False, default=utcnow, index=True)

    material = relationship("Material", lazy="joined")
    performed_by = relationship("User")

    @property
    def material_name(self) -> str | None:
        return self.material.name if self.material else None


@event.listens_for(InventoryHistory, "before_update")
def _reject_history_update(mapper, connection, target) -> None:
    raise ValueError("inventory history entries are immutable")


@event.listens_for(InventoryHistory, "before_delete")
def _reject_history_delete(mapper, connection, target) -> None:
    raise ValueError("inventory history entries are immutable")


__all__ = ["InventoryHistory", "Material"]
