"""Handler registry - job type → handler lookup.

Manifesto:
    The execution orchestrator resolves ``job.job_type`` to an object with
    a ``handle(job, context)`` method.  The registry decouples
    registration (at startup) from resolution (at firing time), and an
    explicit instance is passed around so tests can build isolated ones.

ARCHITECTURE
────────────
::

    HandlerRegistry
      ├── .register(handler)                 ─ store under handler.job_type
      ├── .register_handler(job_type, h)     ─ store under an explicit key
      ├── .get(job_type)                     ─ lookup (HandlerNotFoundError)
      ├── .list_job_types()                  ─ all registered keys
      └── .has(job_type)                     ─ existence check

    create_default_registry()  ─ HTTP, COMMAND and INTERNAL_SERVICE built-ins

Tags:
    handlers, registry, dispatch

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from assoc_scheduler.errors import HandlerNotFoundError

if TYPE_CHECKING:
    from assoc_scheduler.handlers.internal import InternalJobTask
    from assoc_scheduler.models import FiringContext, SchedulerJob


@runtime_checkable
class JobHandler(Protocol):
    """Business logic for one job type.  Raise to signal failure."""

    job_type: str

    def handle(self, job: SchedulerJob, context: FiringContext) -> None:
        ...


def _key(job_type: str | Enum) -> str:
    value = job_type.value if isinstance(job_type, Enum) else job_type
    return str(value).strip().upper()


class HandlerRegistry:
    """Injectable job-type registry.

    Keys are case-insensitive; ``"http"`` and ``JobType.HTTP`` resolve to
    the same handler.

    Example:
        >>> registry = HandlerRegistry()
        >>> registry.register(HttpJobHandler())
        >>> registry.get("HTTP").handle(job, context)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, JobHandler] = {}
        self._lock = threading.Lock()

    def register(self, handler: JobHandler) -> None:
        """Register *handler* under its own ``job_type``."""
        self.register_handler(handler.job_type, handler)

    def register_handler(self, job_type: str | Enum, handler: JobHandler) -> None:
        with self._lock:
            self._handlers[_key(job_type)] = handler

    def get(self, job_type: str | Enum) -> JobHandler:
        """Get the handler for *job_type*.

        Raises:
            HandlerNotFoundError: nothing is registered for the type
        """
        handler = self._handlers.get(_key(job_type))
        if handler is None:
            raise HandlerNotFoundError(str(job_type), self.list_job_types())
        return handler

    def has(self, job_type: str | Enum) -> bool:
        return _key(job_type) in self._handlers

    def list_job_types(self) -> list[str]:
        return sorted(self._handlers)

    def unregister(self, job_type: str | Enum) -> bool:
        with self._lock:
            return self._handlers.pop(_key(job_type), None) is not None

    def clear(self) -> None:
        """Clear all handlers (for testing)."""
        with self._lock:
            self._handlers.clear()


def create_default_registry(tasks: Iterable[InternalJobTask] | None = None) -> HandlerRegistry:
    """Registry with the built-in HTTP, COMMAND and INTERNAL_SERVICE handlers.

    Args:
        tasks: Internal tasks made available to ``INTERNAL_SERVICE`` jobs
    """
    from assoc_scheduler.handlers.command import CommandJobHandler
    from assoc_scheduler.handlers.http import HttpJobHandler
    from assoc_scheduler.handlers.internal import InternalServiceJobHandler

    registry = HandlerRegistry()
    registry.register(HttpJobHandler())
    registry.register(CommandJobHandler())
    registry.register(InternalServiceJobHandler(tasks))
    return registry
