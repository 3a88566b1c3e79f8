"""FastAPI application for the multi-branch restaurant backend.

The app wires routers, middlewares and exception handlers. Every response is
wrapped in the standard envelope produced by :mod:`api.app.utils.responses`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from . import db as app_db
from .domain.errors import CoreError, StoreError
from .middlewares import LoggingMiddleware, RequestIdMiddleware
from .obs import configure_logging
from .routes_auth import router as auth_router
from .routes_branches import router as branches_router
from .routes_inventory import router as inventory_router
from .routes_menu import router as menu_router
from .routes_orders import router as orders_router
from .routes_payments import router as payments_router
from .routes_staff import router as staff_router
from .utils.responses import err, ok

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("api")

app = FastAPI(
    title="Restaurant API",
    version="1.0.0",
    servers=[{"url": "/"}],
    openapi_url="/openapi.json",
)

# LoggingMiddleware runs inside RequestIdMiddleware so access lines carry the id.
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIdMiddleware)


def _identity_fields(request: Request) -> dict:
    identity = getattr(request.state, "identity", None)
    if identity is None:
        return {}
    return {"user": identity.id, "role": identity.role.value}


@app.exception_handler(CoreError)
async def core_error_handler(request: Request, exc: CoreError):
    extra = {
        "status": exc.status_code,
        "route": request.url.path,
        "code": exc.code,
        **_identity_fields(request),
    }
    if isinstance(exc, StoreError):
        logger.error(exc.message, extra=extra)
    else:
        logger.warning(exc.message, extra=extra)
    return JSONResponse(
        err(exc.code, exc.message, exc.details), status_code=exc.status_code
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    logger.warning(
        "invalid request",
        extra={"status": 400, "route": request.url.path, "code": "INVALID_REQUEST"},
    )
    return JSONResponse(
        err("INVALID_REQUEST", "Request validation failed", {"errors": errors}),
        status_code=400,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(
        exc.detail,
        extra={
            "status": exc.status_code,
            "route": request.url.path,
            **_identity_fields(request),
        },
    )
    return JSONResponse(err(exc.status_code, exc.detail), status_code=exc.status_code)


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception(
        "unhandled_error",
        extra={
            "status": 500,
            "route": request.url.path,
            **_identity_fields(request),
        },
    )
    return JSONResponse(err(500, "Internal Server Error"), status_code=500)


@app.on_event("startup")
async def create_schema() -> None:
    """Create missing tables when enabled in settings."""

    if not settings.create_schema_on_startup:
        return
    if app_db.engine is None:
        app_db.configure()
    await app_db.init_schema(app_db.engine)


app.include_router(auth_router)
app.include_router(branches_router)
app.include_router(menu_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(inventory_router)
app.include_router(staff_router)


@app.get("/health")
async def health() -> dict:
    return ok({"status": "ok"})
