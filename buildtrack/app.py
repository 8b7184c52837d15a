"""Application factory.

``create_app`` wires configuration, middleware, the error envelope and every
API router. Tables are created by ``buildtrack.main`` on startup so tests can
build an app against their own engine.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from . import __version__
from .core.config import settings
from .core.errors import (
    DomainError,
    domain_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .middlewares.request_id import RequestIdMiddleware
from .middlewares.security_headers import SecurityHeadersMiddleware
from .routers import (
    auth,
    catalog,
    inventory,
    labour,
    materials,
    mrr,
    projects,
    purchase_orders,
    receipts,
    supplier_ledger,
)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version=__version__)

    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth.router)
    app.include_router(projects.router)
    app.include_router(projects.tasks_router)
    app.include_router(labour.router)
    app.include_router(labour.payroll_router)
    app.include_router(catalog.warehouses_router)
    app.include_router(catalog.items_router)
    app.include_router(catalog.suppliers_router)
    app.include_router(supplier_ledger.router)
    app.include_router(materials.router)
    app.include_router(inventory.router)
    app.include_router(mrr.router)
    app.include_router(purchase_orders.router)
    app.include_router(receipts.router)

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, bool]:
        return {"ok": True}

    return app
