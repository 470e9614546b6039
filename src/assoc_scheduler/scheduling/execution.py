"""Execution orchestrator - what happens when a trigger fires.

Manifesto:
    A firing ends in exactly one log row.  A handler failure is always
    re-raised after it is logged; a retry is a side effect scheduled next
    to the failure, never a replacement for it.

┌──────────────────────────────────────────────────────────────────────────────┐
│  FIRING STATE MACHINE                                                         │
│                                                                               │
│   engine callback ──► on_fire(firing) ──► execute(job_id, strategy_id, n)    │
│                                                                               │
│          ┌──────────────┐   job missing   ──► StateError (propagates)        │
│          │     NEW      │   disabled      ──► SKIPPED  "Job disabled"        │
│          └──────┬───────┘   excluded today──► SKIPPED  "Excluded date"       │
│                 │                                                             │
│                 ▼                                                             │
│        registry.get(job_type).handle(job, context)                           │
│                 │                                                             │
│       ┌─────────┴──────────┐                                                  │
│       ▼                    ▼                                                  │
│    SUCCESS          exception ──► _schedule_retry(n + 1)                      │
│                                   ├── scheduled  ──► RETRIED, re-raise       │
│                                   └── not        ──► FAILED,  re-raise       │
│                                                                               │
│  Retry: n + 1 <= max_attempts and job:{id} still registered ──► one-shot     │
│  DateTrigger retry:{id}:{ns} at now + interval, fires even if misfired.      │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    scheduling, execution, retry, state-machine

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.date import DateTrigger

from assoc_scheduler.errors import ConfigurationError, StateError
from assoc_scheduler.handlers.registry import HandlerRegistry
from assoc_scheduler.logging import LogContext, get_logger
from assoc_scheduler.models import (
    ExecutionStatus,
    FiringContext,
    JobExecutionLog,
    SchedulerJob,
)

from .cron import resolve_timezone
from .log_store import ExecutionLogService
from .protocol import (
    JOB_ID_KEY,
    RETRY_COUNT_KEY,
    SCHEDULED_FIRE_TIME_KEY,
    STRATEGY_ID_KEY,
    Firing,
    TriggerDefinition,
    TriggerEngine,
    job_key,
    retry_trigger_key,
)
from .repository import ExcludedDateRepository, JobRepository, StrategyRepository

logger = get_logger(__name__)

SKIP_DISABLED = "Job disabled"
SKIP_EXCLUDED = "Excluded date"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ExecutionService:
    """Runs one firing of a job and records its outcome.

    Safe to call concurrently for different jobs; nothing here prevents
    two firings of the same job from overlapping.

    Args:
        jobs: Job repository
        strategies: Strategy repository (time zone for "today")
        excluded_dates: Excluded-date repository
        logs: Execution log service (writes commit independently)
        handlers: Job-type handler registry
        engine: Trigger engine, used for retry triggers
        max_attempts: Maximum retries after the first failure
        retry_interval: Delay before a retry fires
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        jobs: JobRepository,
        strategies: StrategyRepository,
        excluded_dates: ExcludedDateRepository,
        logs: ExecutionLogService,
        handlers: HandlerRegistry,
        engine: TriggerEngine,
        *,
        max_attempts: int = 3,
        retry_interval: timedelta = timedelta(minutes=1),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.jobs = jobs
        self.strategies = strategies
        self.excluded_dates = excluded_dates
        self.logs = logs
        self.handlers = handlers
        self.engine = engine
        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self.clock = clock

    # ------------------------------------------------------------------
    # Engine callback
    # ------------------------------------------------------------------

    def on_fire(self, firing: Firing) -> None:
        """Translate an engine ``Firing`` into an ``execute`` call."""
        data = firing.data
        job_id = data.get(JOB_ID_KEY)
        if job_id is None:
            raise StateError(f"Firing {firing.trigger_key} carries no job id")
        self.execute(
            int(job_id),
            strategy_id=_optional_int(data.get(STRATEGY_ID_KEY)),
            retry_count=int(data.get(RETRY_COUNT_KEY) or 0),
            scheduled_fire_time=firing.scheduled_fire_time,
            fire_time=firing.fire_time,
            trigger_key=firing.trigger_key,
            data=firing.data,
        )

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def execute(
        self,
        job_id: int,
        strategy_id: int | None = None,
        retry_count: int = 0,
        *,
        scheduled_fire_time: datetime | None = None,
        fire_time: datetime | None = None,
        trigger_key: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> ExecutionStatus:
        """Run one firing of *job_id*.

        *data* is the engine payload of the firing, handed to the handler
        as ``FiringContext.data``.

        Returns:
            SUCCESS or SKIPPED.  Handler failures are re-raised after the
            FAILED or RETRIED row is written.

        Raises:
            StateError: the job does not exist
        """
        job = self.jobs.get(job_id)
        if job is None:
            raise StateError(f"Job {job_id} does not exist or was deleted").with_context(job_id=job_id)

        effective_strategy_id = strategy_id if strategy_id is not None else job.schedule_strategy_id
        fire_time = fire_time or self.clock()
        context = FiringContext(
            job_id=job_id,
            strategy_id=effective_strategy_id,
            retry_count=retry_count,
            scheduled_fire_time=scheduled_fire_time or fire_time,
            fire_time=fire_time,
            trigger_key=trigger_key,
            data=dict(data or {}),
        )

        with LogContext(job_id=job_id, strategy_id=effective_strategy_id, retry_count=retry_count):
            logger.info("job_firing", job_type=job.job_type, trigger_key=trigger_key)

            if not job.enabled:
                logger.info("job_skipped", reason=SKIP_DISABLED)
                self._record(context, ExecutionStatus.SKIPPED, SKIP_DISABLED, 0)
                return ExecutionStatus.SKIPPED

            if effective_strategy_id is not None and self._excluded_today(effective_strategy_id):
                logger.info("job_skipped", reason=SKIP_EXCLUDED)
                self._record(context, ExecutionStatus.SKIPPED, SKIP_EXCLUDED, 0)
                return ExecutionStatus.SKIPPED

            started = time.perf_counter()
            try:
                handler = self.handlers.get(job.job_type)
                handler.handle(job, context)
            except Exception as exc:
                duration_ms = _elapsed_ms(started)
                retried = self._schedule_retry(job, effective_strategy_id, retry_count)
                status = ExecutionStatus.RETRIED if retried else ExecutionStatus.FAILED
                logger.error(
                    "job_failed",
                    duration_ms=duration_ms,
                    retry_scheduled=retried,
                    error=str(exc),
                    exc_info=True,
                )
                try:
                    self._record(context, status, str(exc) or type(exc).__name__, duration_ms)
                except Exception:
                    # The handler error is the one the engine must see
                    logger.exception("execution_log_write_failed", status=status.value)
                raise

            duration_ms = _elapsed_ms(started)
            logger.info("job_succeeded", duration_ms=duration_ms)
            self._record(context, ExecutionStatus.SUCCESS, None, duration_ms)
            return ExecutionStatus.SUCCESS

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _excluded_today(self, strategy_id: int) -> bool:
        strategy = self.strategies.get(strategy_id)
        zone = None
        if strategy is not None:
            try:
                zone = resolve_timezone(strategy.time_zone)
            except ConfigurationError:
                logger.warning("strategy_time_zone_invalid", time_zone=strategy.time_zone)
        now = self.clock()
        today = now.astimezone(zone).date() if zone is not None else now.astimezone().date()
        return self.excluded_dates.contains(strategy_id, today)

    def _schedule_retry(self, job: SchedulerJob, strategy_id: int | None, retry_count: int) -> bool:
        """Register a one-shot retry trigger.  Never raises."""
        next_retry = retry_count + 1
        if next_retry > self.max_attempts:
            logger.info("retry_exhausted", max_attempts=self.max_attempts)
            return False

        try:
            base_key = job_key(job.id)  # type: ignore[arg-type]
            if not self.engine.check_exists(base_key):
                logger.warning("retry_abandoned", reason="job not registered", job_key=base_key)
                return False

            run_at = self.clock() + self.retry_interval
            key = retry_trigger_key(job.id, time.time_ns())  # type: ignore[arg-type]
            self.engine.schedule_trigger(
                TriggerDefinition(
                    key=key,
                    job_key=base_key,
                    trigger=DateTrigger(run_date=run_at),
                    data={
                        JOB_ID_KEY: job.id,
                        STRATEGY_ID_KEY: strategy_id,
                        RETRY_COUNT_KEY: next_retry,
                        SCHEDULED_FIRE_TIME_KEY: run_at.isoformat(),
                    },
                    fire_now_on_misfire=True,
                )
            )
        except Exception:
            logger.exception("retry_schedule_failed", next_retry=next_retry)
            return False

        logger.info("retry_scheduled", next_retry=next_retry, trigger_key=key, run_at=run_at.isoformat())
        return True

    def _record(
        self,
        context: FiringContext,
        status: ExecutionStatus,
        error_message: str | None,
        duration_ms: int,
    ) -> None:
        self.logs.record(
            JobExecutionLog(
                job_id=context.job_id,
                strategy_id=context.strategy_id,
                scheduled_fire_time=context.scheduled_fire_time,
                actual_fire_time=context.fire_time,
                finished_time=self.clock(),
                status=status,
                error_message=error_message,
                retry_count=context.retry_count,
                duration_ms=duration_ms,
            )
        )


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.perf_counter() - started) * 1000))


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None
