"""
FastAPI dependency injection - settings and the scheduler runtime.

Usage in routers::

    from assoc_scheduler.api.deps import Runtime

    @router.get("/jobs")
    def list_jobs(runtime: Runtime):
        ...

The runtime is a process singleton created by the app lifespan (or
passed to ``create_app`` in tests) and stored on ``app.state``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from assoc_scheduler.errors import StateError
from assoc_scheduler.scheduling import SchedulerRuntime
from assoc_scheduler.settings import SchedulerSettings

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> SchedulerSettings:
    """Cached settings - loaded once per process."""
    return SchedulerSettings()


# ── Scheduler runtime (singleton on app.state) ───────────────────────────


def get_runtime(request: Request) -> SchedulerRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise StateError("Scheduler runtime is not initialized")
    return runtime


Settings = Annotated[SchedulerSettings, Depends(get_settings)]
Runtime = Annotated[SchedulerRuntime, Depends(get_runtime)]
