"""
Structured error types for the job scheduler.

Every failure the scheduler raises on purpose is a ``SchedulerError``.
The subclasses map one-to-one onto how the caller is expected to react:

- **ConfigurationError:** the schedule definition is incomplete or
  malformed (missing cron for a CRON strategy, non-positive interval,
  empty weekday list, unknown time zone).  Fix the input.
- **UnknownReferenceError:** an id points at nothing (unknown strategy
  or job).  Surfaced to administrative callers as "not found".
- **StateError:** the operation is illegal given current state (deleting
  a strategy that jobs still reference) or the trigger engine could not
  be brought in sync.  The persisted change may already be committed.
- **EngineError:** raised by trigger-engine adapters.  The job registry
  re-raises it as ``StateError`` with the engine error chained as cause.

Manifesto:
    - **Typed hierarchy:** callers branch on type, never on message text
    - **Rich context:** errors carry ids for structured logging
    - **Error chaining:** the original exception is kept as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                     SchedulerError                         │
        │            (category, context, cause)                      │
        ├───────────────────────────────────────────────────────────┤
        │  ConfigurationError   UnknownReferenceError   StateError   │
        │  (CONFIG)             (REFERENCE)             (STATE)      │
        │                                                  │         │
        │                                     HandlerNotFoundError   │
        │                                                            │
        │  EngineError (ENGINE)                                      │
        └───────────────────────────────────────────────────────────┘

Tags:
    error-handling, exception-hierarchy, scheduling

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and HTTP status mapping."""

    CONFIG = "CONFIG"
    REFERENCE = "REFERENCE"
    STATE = "STATE"
    ENGINE = "ENGINE"
    HANDLER = "HANDLER"
    INTERNAL = "INTERNAL"


class SchedulerError(Exception):
    """
    Base exception for all scheduler errors.

    Carries:
    - **category:** ErrorCategory for classification
    - **context:** dict of ids and small values for logging
    - **cause:** optional underlying exception (also set as ``__cause__``)

    Examples:
        >>> err = StateError("Strategy still in use").with_context(strategy_id=7)
        >>> err.to_dict()["context"]
        {'strategy_id': 7}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SchedulerError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class ConfigurationError(SchedulerError):
    """Incomplete or malformed schedule definition."""

    default_category = ErrorCategory.CONFIG


class UnknownReferenceError(SchedulerError):
    """An id refers to a strategy or job that does not exist."""

    default_category = ErrorCategory.REFERENCE

    def __init__(self, kind: str, ref_id: Any, message: str | None = None, **kwargs: Any):
        self.kind = kind
        self.ref_id = ref_id
        super().__init__(message or f"{kind} not found: {ref_id}", **kwargs)
        self.context.setdefault(f"{kind}_id", ref_id)


class StateError(SchedulerError):
    """Operation is illegal given current state, or engine sync failed."""

    default_category = ErrorCategory.STATE


class HandlerNotFoundError(StateError):
    """No handler is registered for a job type."""

    default_category = ErrorCategory.HANDLER

    def __init__(self, job_type: str, available: list[str] | None = None):
        self.job_type = job_type
        super().__init__(
            f"No handler registered for job type {job_type!r}. "
            f"Available: {available or 'none'}"
        )


class EngineError(SchedulerError):
    """Trigger engine communication failure."""

    default_category = ErrorCategory.ENGINE


__all__ = [
    "ErrorCategory",
    "SchedulerError",
    "ConfigurationError",
    "UnknownReferenceError",
    "StateError",
    "HandlerNotFoundError",
    "EngineError",
]
