"""FastAPI application for the OpsConsole."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from opsconsole.config import get_config
from opsconsole.core.errors import CacheCorruptionError, PlatformAPIError
from opsconsole.core.logging import configure_logging
from opsconsole.db.connection import close_db
from opsconsole.orders.factory import (
    build_change_detection_job,
    close_change_detection_job,
)
from opsconsole.orders.scheduler import ChangeDetectionScheduler
from opsconsole.web.routes import health, orders, picks, products

# Initialize structured logging
configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()

    try:
        job = build_change_detection_job(config)
    except KeyError as exc:
        logger.warning("change_detector_unavailable", missing=str(exc))
        job = None

    app.state.change_detection_job = job
    app.state.pick_state = None

    scheduler = None
    if job is not None and config.change_detector.scheduler == "web":
        scheduler = ChangeDetectionScheduler(job)
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()
    if job is not None:
        await close_change_detection_job(job)
    await close_db()


app = FastAPI(
    title="OpsConsole",
    description="Order reconciliation and warehouse pick number tooling",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Request Logging Middleware
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log line of a request and echo it back."""

    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestLoggingMiddleware)


# Exception Handlers
@app.exception_handler(PlatformAPIError)
async def platform_error_handler(request: Request, exc: PlatformAPIError):
    """Upstream platform failures surface as 502."""
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "platform": exc.platform},
    )


@app.exception_handler(CacheCorruptionError)
async def cache_error_handler(request: Request, exc: CacheCorruptionError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Include Routers
app.include_router(health.router)
app.include_router(orders.router)
app.include_router(picks.router)
app.include_router(products.router)
