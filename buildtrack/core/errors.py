"""Domain exceptions and the JSON error envelope returned by every endpoint.

CRUD helpers raise the exceptions defined here; the handlers registered by
``buildtrack.app.create_app`` turn them into ``{"message": ...}`` responses so
routers never have to translate errors themselves.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainError(ValueError):
    """Base class for business-rule failures raised by the CRUD layer."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class RuleViolation(DomainError):
    """Wrong status transition, duplicate document, bad quantities."""


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


class StockConflictError(DomainError):
    """Concurrent writers kept moving the stock value underneath us."""

    status_code = status.HTTP_409_CONFLICT


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"message": message}
        if errors is not None:
            payload["errors"] = errors
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append(
            {
                "field": ".".join(location) or None,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type"),
            }
        )
    return errors


async def domain_exception_handler(request: Request, exc: DomainError):
    return ErrorEnvelope(status_code=exc.status_code, message=exc.message, details=exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation failed",
        errors=_field_errors(exc),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "request.failed",
        extra={"extra_data": {"method": request.method, "path": request.url.path}},
    )
    return ErrorEnvelope(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="Internal server error",
    )
