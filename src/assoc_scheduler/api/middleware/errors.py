"""
Error handlers - map scheduler errors to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from assoc_scheduler.api.schemas.common import ProblemDetail
from assoc_scheduler.errors import (
    ConfigurationError,
    SchedulerError,
    StateError,
    UnknownReferenceError,
)
from assoc_scheduler.logging import get_logger

logger = get_logger(__name__)

# ── Error type → HTTP status mapping ─────────────────────────────────────

ERROR_TYPE_TO_STATUS: list[tuple[type[SchedulerError], int, str]] = [
    (ConfigurationError, 400, "Invalid schedule definition"),
    (UnknownReferenceError, 404, "Not found"),
    (StateError, 409, "Conflict"),
]


def status_for_error(exc: SchedulerError) -> tuple[int, str]:
    """Resolve a scheduler error to (HTTP status, title), defaulting to 500."""
    for error_type, status, title in ERROR_TYPE_TO_STATUS:
        if isinstance(exc, error_type):
            return status, title
    return 500, "Scheduler error"


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    context: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        context=_jsonable(context or {}),
    )
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
    )


async def scheduler_error_handler(request: Request, exc: SchedulerError) -> JSONResponse:
    status, title = status_for_error(exc)
    if status >= 500:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
    return problem_response(
        status=status,
        title=title,
        detail=exc.message,
        instance=str(request.url),
        context=exc.context,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions - returns 500 with ProblemDetail."""
    logger.error("request_failed_unhandled", path=request.url.path, error=str(exc), exc_info=exc)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )


def _jsonable(context: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value if isinstance(value, (str, int, float, bool, list, type(None))) else str(value)
        for key, value in context.items()
    }
