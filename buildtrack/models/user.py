"""SQLAlchemy model for application users and their single role."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Text

from ..db.mixins import TimestampMixin
from ..db.session import Base


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True, index=True)
    phone = Column(Text, nullable=True)
    password_hash = Column(Text, nullable=False)
    role = Column(Text, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)


__all__ = ["User"]
