"""Trigger engine protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TRIGGER ENGINE PROTOCOL                                                      │
│                                                                               │
│  The engine owns timing: it stores job definitions, evaluates triggers, and  │
│  calls back on its own worker threads.  The scheduler core only keeps the    │
│  engine in sync with persisted state and reacts to callbacks.                │
│                                                                               │
│  ┌─────────────────┐  schedule/reschedule  ┌─────────────────────────────┐   │
│  │  JobService     │ ────────────────────► │  TriggerEngine              │   │
│  │  (registry)     │  unschedule/delete    │                             │   │
│  └─────────────────┘                       │  job:{id}       definition  │   │
│                                            │  trigger:{id}   recurring   │   │
│  ┌─────────────────┐  schedule_trigger     │  retry:{id}:{ts} one-shot   │   │
│  │ ExecutionService│ ────────────────────► │                             │   │
│  │ (orchestrator)  │ ◄──────────────────── │  callback(Firing)           │   │
│  └─────────────────┘        on_fire        └─────────────────────────────┘   │
│                                                                               │
│  Keys are derived from the job id, so registering the same job twice         │
│  replaces rather than duplicates.                                            │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

JOB_ID_KEY = "job_id"
STRATEGY_ID_KEY = "strategy_id"
RETRY_COUNT_KEY = "retry_count"
JOB_TYPE_KEY = "job_type"
SCHEDULED_FIRE_TIME_KEY = "scheduled_fire_time"


def job_key(job_id: int) -> str:
    return f"job:{job_id}"


def trigger_key(job_id: int) -> str:
    return f"trigger:{job_id}"


def retry_trigger_key(job_id: int, timestamp: int) -> str:
    return f"retry:{job_id}:{timestamp}"


@dataclass(frozen=True)
class JobDefinition:
    """Durable job registration (what the engine calls back with)."""

    key: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TriggerDefinition:
    """When to fire a registered job.

    ``trigger`` is the engine-native trigger object (an APScheduler
    ``CronTrigger`` or ``DateTrigger`` for the bundled engine).
    ``data`` overrides the job definition's data for this trigger only.
    """

    key: str
    job_key: str
    trigger: Any
    data: dict[str, Any] = field(default_factory=dict)
    fire_now_on_misfire: bool = False


@dataclass(frozen=True)
class Firing:
    """One callback from the engine."""

    job_key: str
    trigger_key: str
    data: dict[str, Any]
    scheduled_fire_time: datetime
    fire_time: datetime


FiringCallback = Callable[[Firing], None]


@runtime_checkable
class TriggerEngine(Protocol):
    """Narrow contract the scheduler core needs from a recurring-trigger engine.

    Implementations must raise ``EngineError`` for any failure talking to
    the underlying scheduler.

    Implementations:
        - APSchedulerEngine: APScheduler 3.x ``BackgroundScheduler``
    """

    name: str

    def bind(self, callback: FiringCallback) -> None:
        """Set the function invoked on every firing."""
        ...

    def start(self) -> None:
        ...

    def shutdown(self, wait: bool = True) -> None:
        ...

    def add_job(self, definition: JobDefinition, replace_existing: bool = False) -> None:
        """Store a job definition without any trigger."""
        ...

    def schedule(self, definition: JobDefinition, trigger: TriggerDefinition) -> None:
        """Register a new definition together with its first trigger."""
        ...

    def schedule_trigger(self, trigger: TriggerDefinition) -> None:
        """Attach a trigger to an already-registered definition."""
        ...

    def reschedule(self, trigger_key: str, trigger: TriggerDefinition) -> None:
        """Replace the trigger stored under *trigger_key*."""
        ...

    def unschedule(self, trigger_key: str) -> bool:
        """Remove a trigger.  Returns False if it did not exist."""
        ...

    def delete_job(self, job_key: str) -> bool:
        """Remove a definition and every trigger attached to it."""
        ...

    def check_exists(self, key: str) -> bool:
        """True if a definition or trigger is registered under *key*."""
        ...

    def list_trigger_keys(self, job_key: str | None = None) -> list[str]:
        """Registered trigger keys, optionally only those for one job."""
        ...
