"""Request correlation and the per-request actor seen by the JSON logger.

Every request gets a :class:`RequestContext` bound to a context variable. The
auth dependency fills in the signed-in user and role on the same object, so
log lines written from route handlers, CRUD code and this middleware all carry
who acted, even though sync dependencies run in a worker thread.
"""

from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from dataclasses import dataclass
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("buildtrack.request")

# Health checks and metric scrapes are logged at DEBUG so they do not drown the audit trail.
QUIET_PATHS = ("/health", "/metrics")


@dataclass
class RequestContext:
    request_id: str
    method: str = ""
    path: str = ""
    user_id: int | None = None
    role: str | None = None

    def as_log_fields(self) -> dict[str, object]:
        fields: dict[str, object] = {"request_id": self.request_id}
        if self.user_id is not None:
            fields["user_id"] = self.user_id
        if self.role:
            fields["role"] = self.role
        return fields


_request_ctx: ContextVar[RequestContext | None] = ContextVar("buildtrack_request", default=None)


def current_request() -> RequestContext | None:
    return _request_ctx.get()


def bind_actor(user_id: int, role: str | None) -> None:
    """Record the authenticated user on the active request, if there is one."""

    ctx = _request_ctx.get()
    if ctx is not None:
        ctx.user_id = user_id
        ctx.role = role


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign ``X-Request-ID`` and log one ``request.completed`` line per call."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ctx = RequestContext(
            request_id=request.headers.get(self.header_name) or uuid4().hex,
            method=request.method,
            path=request.url.path,
        )
        token = _request_ctx.set(ctx)
        request.state.request_id = ctx.request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            response.headers[self.header_name] = ctx.request_id
            response.headers.setdefault("X-Response-Time", f"{elapsed_ms:.2f}ms")
            if response.status_code >= 500:
                level = logging.ERROR
            elif ctx.path in QUIET_PATHS:
                level = logging.DEBUG
            else:
                level = logging.INFO
            logger.log(
                level,
                "request.completed",
                extra={
                    "extra_data": {
                        "method": ctx.method,
                        "path": ctx.path,
                        "status": response.status_code,
                        "duration_ms": elapsed_ms,
                    }
                },
            )
            return response
        finally:
            _request_ctx.reset(token)
