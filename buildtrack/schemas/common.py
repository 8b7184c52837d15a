from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class Pagination(BaseModel):
    total_items: int
    total_pages: int
    current_page: int
    items_per_page: int


class Message(BaseModel):
    message: str


def page_payload(page, key: str = "items", **extra: Any) -> dict[str, Any]:
    """Shape a ``crud._common.Page`` the way list endpoints return it."""

    payload: dict[str, Any] = {key: page.items, "pagination": page.pagination()}
    payload.update(page.extra)
    payload.update(extra)
    return payload
