"""Scheduler domain models.

Typed dataclass representations of the four scheduler tables plus the
per-firing context handed to job handlers.

Ownership:
    ScheduleStrategy ──owns──► ScheduleExcludedDate (replaced wholesale)
    SchedulerJob ──references by id──► ScheduleStrategy
    JobExecutionLog ──records──► one firing of a SchedulerJob (immutable)

Tags:
    models, scheduling, dataclasses, schema-mapping

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any


class ScheduleType(str, Enum):
    """How a strategy's cron expression is derived."""

    CRON = "CRON"
    FIXED_RATE = "FIXED_RATE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class ExecutionStatus(str, Enum):
    """Terminal outcome of one firing."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    RETRIED = "RETRIED"
    SKIPPED = "SKIPPED"


class JobType(str, Enum):
    """Built-in job types.  Any registered handler key is also accepted."""

    HTTP = "HTTP"
    COMMAND = "COMMAND"
    INTERNAL_SERVICE = "INTERNAL_SERVICE"


EXCLUDED_REASON = "EXCLUDED"


def parse_days_of_week(value: str | Iterable[str] | None) -> list[str]:
    """Split weekday tokens, trimming whitespace and dropping blanks.

    >>> parse_days_of_week(" MON, ,WED,FRI ")
    ['MON', 'WED', 'FRI']
    >>> parse_days_of_week(["TUE", " THU "])
    ['TUE', 'THU']
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [token.strip() for token in value if token and token.strip()]


# ---------------------------------------------------------------------------
# sch_schedule_strategy
# ---------------------------------------------------------------------------


@dataclass
class ScheduleStrategy:
    """Reusable schedule definition (WHEN).

    ``cron_expression`` is derived from the structured fields on every
    create/update; for ``CRON`` strategies it is the user-supplied input.
    """

    id: int | None = None
    name: str = ""
    description: str | None = None
    schedule_type: ScheduleType | None = ScheduleType.CRON
    cron_expression: str | None = None
    start_time: time | None = None
    end_time: time | None = None
    time_zone: str | None = None
    interval_seconds: int | None = None
    days_of_week: str | None = None  # comma-separated tokens, e.g. "MON,WED,FRI"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def weekdays(self) -> list[str]:
        return parse_days_of_week(self.days_of_week)


# ---------------------------------------------------------------------------
# sch_schedule_excluded_date
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleExcludedDate:
    """Blackout date for a strategy."""

    strategy_id: int
    excluded_date: date
    reason: str = EXCLUDED_REASON
    id: int | None = None


# ---------------------------------------------------------------------------
# sch_job
# ---------------------------------------------------------------------------


@dataclass
class SchedulerJob:
    """Job definition (WHAT).  ``job_config`` is opaque JSON for the handler."""

    id: int | None = None
    name: str = ""
    description: str | None = None
    job_type: str = JobType.INTERNAL_SERVICE.value
    job_config: str = "{}"
    schedule_strategy_id: int | None = None
    precondition_config: str | None = None
    enabled: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def config(self) -> dict[str, Any]:
        """Decode ``job_config`` (empty dict when blank)."""
        if not self.job_config or not self.job_config.strip():
            return {}
        return json.loads(self.job_config)


# ---------------------------------------------------------------------------
# sch_job_execution_log
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JobExecutionLog:
    """Outcome of one firing.  Never updated once written."""

    job_id: int
    strategy_id: int | None
    scheduled_fire_time: datetime
    actual_fire_time: datetime
    finished_time: datetime
    status: ExecutionStatus
    error_message: str | None = None
    retry_count: int = 0
    duration_ms: int = 0
    id: int | None = None


# ---------------------------------------------------------------------------
# Firing context (not persisted)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FiringContext:
    """What a handler knows about the firing it is serving."""

    job_id: int
    strategy_id: int | None
    retry_count: int
    scheduled_fire_time: datetime
    fire_time: datetime
    trigger_key: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
