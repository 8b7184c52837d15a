"""Master data: warehouses and the item catalogue that materials point at."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Text

from ..db.mixins import TimestampMixin
from ..db.session import Base


class Warehouse(TimestampMixin, Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True)
    address = Column(Text, nullable=True)
    contact_person = Column(Text, nullable=True)
    contact_phone = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class Item(TimestampMixin, Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False)
    unit = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    brand = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


__all__ = ["Item", "Warehouse"]
