"""Small helpers shared by the CRUD modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, RuleViolation

T = TypeVar("T")


@dataclass
class Page:
    """One page of rows plus the counters list endpoints report."""

    items: list[Any]
    total: int
    page: int
    limit: int
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict[str, int]:
        return {
            "total_items": self.total,
            "total_pages": self.total_pages,
            "current_page": self.page,
            "items_per_page": self.limit,
        }


def paginate(db: Session, stmt, *, page: int = 1, limit: int = 20) -> Page:
    """Run ``stmt`` for one page and count the unpaged result."""

    page = max(page, 1)
    limit = max(limit, 1)
    total = db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = db.execute(stmt.limit(limit).offset((page - 1) * limit)).unique().scalars().all()
    return Page(items=list(rows), total=int(total), page=page, limit=limit)


def get_or_404(db: Session, model: type[T], ident: int | None, label: str | None = None) -> T:
    obj = db.get(model, ident) if ident is not None else None
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return obj


def clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_text(payload: dict, key: str) -> str:
    value = clean_text(payload.get(key))
    if not value:
        raise RuleViolation(f"{key} is required")
    return value


def apply_fields(obj: Any, payload: dict, fields: tuple[str, ...]) -> None:
    """Copy the keys of ``payload`` listed in ``fields`` onto ``obj``."""

    for name in fields:
        if name in payload:
            setattr(obj, name, payload[name])
