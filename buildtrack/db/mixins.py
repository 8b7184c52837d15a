from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Text


def utcnow() -> str:
    return datetime.utcnow().isoformat(timespec="seconds") + "Z"


class TimestampMixin:
    """ISO-8601 text timestamps, matching how every table stores time."""

    created_at = Column(Text, nullable=False, default=utcnow)
    updated_at = Column(Text, nullable=False, default=utcnow, onupdate=utcnow)
