"""
Request and response schemas for strategies, jobs and execution logs.

Response schemas are built from the domain dataclasses with
``model_validate(obj)`` (``from_attributes``).
"""

from __future__ import annotations

import json
from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assoc_scheduler.models import ExecutionStatus, ScheduleStrategy, SchedulerJob, ScheduleType

# ── Strategies ──────────────────────────────────────────────────────────


class StrategyBody(BaseModel):
    """Create/update payload.  ``cron_expression`` is only read for CRON."""

    name: str = Field(min_length=1)
    description: str | None = None
    schedule_type: ScheduleType
    cron_expression: str | None = None
    start_time: time | None = None
    end_time: time | None = None
    time_zone: str | None = None
    interval_seconds: int | None = None
    days_of_week: list[str] | str | None = Field(
        default=None,
        description='Weekday tokens, e.g. ["MON", "WED"] or "MON,WED"',
    )
    excluded_dates: list[date] | None = None

    def to_strategy(self) -> ScheduleStrategy:
        days = self.days_of_week
        if isinstance(days, list):
            days = ",".join(days)
        return ScheduleStrategy(
            name=self.name,
            description=self.description,
            schedule_type=self.schedule_type,
            cron_expression=self.cron_expression,
            start_time=self.start_time,
            end_time=self.end_time,
            time_zone=self.time_zone,
            interval_seconds=self.interval_seconds,
            days_of_week=days,
        )


class StrategySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    schedule_type: ScheduleType
    cron_expression: str
    start_time: time | None = None
    end_time: time | None = None
    time_zone: str | None = None
    interval_seconds: int | None = None
    days_of_week: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ExcludedDatesBody(BaseModel):
    dates: list[date] = Field(default_factory=list)


class ExcludedDateSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    strategy_id: int
    excluded_date: date
    reason: str


# ── Jobs ────────────────────────────────────────────────────────────────


class JobBody(BaseModel):
    """Create/update payload.  Update overwrites every field."""

    name: str = Field(min_length=1)
    description: str | None = None
    job_type: str = Field(min_length=1, description="HTTP, COMMAND, INTERNAL_SERVICE or a custom key")
    job_config: dict[str, Any] | str = Field(default_factory=dict)
    schedule_strategy_id: int
    precondition_config: str | None = None
    enabled: bool = True

    @field_validator("job_type")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()

    def to_job(self) -> SchedulerJob:
        config = self.job_config if isinstance(self.job_config, str) else json.dumps(self.job_config)
        return SchedulerJob(
            name=self.name,
            description=self.description,
            job_type=self.job_type,
            job_config=config,
            schedule_strategy_id=self.schedule_strategy_id,
            precondition_config=self.precondition_config,
            enabled=self.enabled,
        )


class JobSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    job_type: str
    job_config: str
    schedule_strategy_id: int
    precondition_config: str | None = None
    enabled: bool
    registered: bool | None = Field(default=None, description="Whether the trigger engine holds job:{id}")
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ── Execution logs ──────────────────────────────────────────────────────


class ExecutionLogSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    strategy_id: int | None = None
    scheduled_fire_time: datetime
    actual_fire_time: datetime
    finished_time: datetime
    status: ExecutionStatus
    error_message: str | None = None
    retry_count: int
    duration_ms: int
