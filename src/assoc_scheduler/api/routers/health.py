"""
Health endpoints (root level, no API prefix).

GET /health        engine state and job counts
GET /health/live   liveness, always 200
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from assoc_scheduler.api.deps import Runtime, Settings

router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    uptime_s: float
    timestamp: str
    engine: str
    engine_running: bool
    jobs: int
    registered_triggers: int


@router.get("/health", response_model=HealthResponse)
def health(runtime: Runtime, settings: Settings) -> JSONResponse:
    running = bool(getattr(runtime.engine, "running", False))
    jobs = runtime.jobs.list_jobs()
    body = HealthResponse(
        status="healthy" if running or not settings.start_engine else "degraded",
        service="assoc-scheduler",
        version=settings.api_version,
        uptime_s=round(time.monotonic() - _START_TIME, 1),
        timestamp=datetime.now(UTC).isoformat(),
        engine=runtime.engine.name,
        engine_running=running,
        jobs=len(jobs),
        registered_triggers=len(runtime.engine.list_trigger_keys()),
    )
    return JSONResponse(content=body.model_dump(), status_code=200)


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "alive"}
