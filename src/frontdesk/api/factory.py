"""FastAPI application factory with role-based route mounting."""

import os
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import FastAPI, Request, Response

from frontdesk.domain.no_show_sweep import run_no_show_sweep
from frontdesk.infra.scheduler import DailyJobScheduler
from frontdesk.observability.correlation import CORRELATION_ID_HEADER, correlation_scope

from .errors import register_exception_handlers
from .routers import public, worker

AppRole = Literal["public", "worker"]

_TRUTHY = {"1", "true", "yes", "on"}


def sweep_enabled(role: str) -> bool:
    """NO_SHOW_SWEEP_ENABLED if set, otherwise on for the worker role only."""
    raw = os.environ.get("NO_SHOW_SWEEP_ENABLED")
    if raw is None or raw.strip() == "":
        return role == "worker"
    return raw.strip().lower() in _TRUTHY


def build_no_show_scheduler() -> DailyJobScheduler:
    """Daily no-show sweep at NO_SHOW_SWEEP_HOUR:NO_SHOW_SWEEP_MINUTE (default 19:00)."""
    return DailyJobScheduler(
        name="no-show-sweep",
        job=run_no_show_sweep,
        hour=int(os.environ.get("NO_SHOW_SWEEP_HOUR", "19")),
        minute=int(os.environ.get("NO_SHOW_SWEEP_MINUTE", "0")),
        tz_name=os.environ.get("NO_SHOW_SWEEP_TZ") or None,
    )


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create FastAPI app with routes based on APP_ROLE.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              Defaults to "public" if env var is not set.

    Returns:
        Configured FastAPI application.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = build_no_show_scheduler() if sweep_enabled(role) else None
        app.state.no_show_scheduler = scheduler
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    app = FastAPI(
        title="Hotelly Front Desk",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER)) as cid:
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    register_exception_handlers(app)

    # Mount public routes (always)
    app.include_router(public.router)

    # Mount worker routes only for worker role
    if role == "worker":
        app.include_router(worker.router)

    return app
