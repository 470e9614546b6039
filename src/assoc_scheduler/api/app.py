"""
FastAPI application factory.

``create_app()`` wires error handlers, routers and the lifespan that
owns the scheduler runtime into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root for HTTP: routers
    never build services themselves, they receive the runtime through
    ``deps.Runtime``.

Runtime ownership:
    - ``create_app(runtime=...)``: the caller owns the runtime; the
      lifespan neither starts nor stops it (tests).
    - ``create_app()``: the lifespan opens the database, builds the
      runtime, starts the engine (``settings.start_engine``) and shuts
      everything down on exit.

Tags:
    api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from assoc_scheduler.api.deps import get_settings
from assoc_scheduler.api.middleware.errors import (
    scheduler_error_handler,
    unhandled_exception_handler,
)
from assoc_scheduler.errors import SchedulerError
from assoc_scheduler.scheduling import SchedulerRuntime
from assoc_scheduler.settings import SchedulerSettings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup / shutdown hooks."""

    from assoc_scheduler.connection import create_connection
    from assoc_scheduler.logging import get_logger
    from assoc_scheduler.scheduling import create_scheduler

    log = get_logger("assoc_scheduler.api")
    log.info("api_starting", version=app.version)

    if app.state.runtime is not None:
        yield
        log.info("api_stopping")
        return

    settings: SchedulerSettings = app.state.settings
    conn, info = create_connection(settings.database_url, init_schema=True)
    log_conn = None
    if info.persistent:
        log_conn, _ = create_connection(settings.database_url)
    log.info("database_initialized", backend=info.backend, persistent=info.persistent)

    runtime = create_scheduler(conn, settings=settings, log_conn=log_conn)
    app.state.runtime = runtime
    if settings.start_engine:
        runtime.start()

    try:
        yield
    finally:
        log.info("api_stopping")
        runtime.shutdown(wait=False)
        app.state.runtime = None
        if log_conn is not None:
            log_conn.close()
        conn.close()


def create_app(
    settings: SchedulerSettings | None = None,
    runtime: SchedulerRuntime | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : SchedulerSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    runtime : SchedulerRuntime | None
        Pre-built runtime.  When ``None`` the lifespan builds one.
    """
    from assoc_scheduler.logging import configure_logging

    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.settings = settings
    app.state.runtime = runtime

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(SchedulerError, scheduler_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from assoc_scheduler.api.routers import health, jobs, logs, strategies

    prefix = settings.api_prefix

    # Health endpoints at root level (no prefix) for container healthchecks
    app.include_router(health.router)

    app.include_router(strategies.router, prefix=prefix, tags=["strategies"])
    app.include_router(jobs.router, prefix=prefix, tags=["jobs"])
    app.include_router(logs.router, prefix=prefix, tags=["logs"])

    return app
