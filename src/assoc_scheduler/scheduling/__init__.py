"""Scheduling - strategies, job registry, execution and logs.

Manifesto:
    Timing belongs to the trigger engine; definitions belong to the
    database.  This package keeps the two in step and decides what a
    firing means.  ``create_scheduler()`` wires everything together so
    callers never assemble repositories by hand.

ARCHITECTURE
────────────
::

    create_scheduler(conn) ──► SchedulerRuntime
        │
        ├── StrategyService   (cron synthesis, excluded dates)
        │        │ update → reschedule_jobs_for_strategy
        ├── JobService        (CRUD + engine sync)
        ├── ExecutionService  (engine callback: on_fire)
        ├── ExecutionLogService
        └── TriggerEngine     (APSchedulerEngine by default)

Example:
    >>> conn, _ = create_connection("memory", init_schema=True)
    >>> runtime = create_scheduler(conn)
    >>> runtime.start()
    >>> strategy = runtime.strategies.create_strategy(ScheduleStrategy(
    ...     name="every-5-min", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=300))
    >>> runtime.jobs.create_job(SchedulerJob(
    ...     name="ping", job_type="HTTP", job_config='{"url": "https://example.org"}',
    ...     schedule_strategy_id=strategy.id))
    >>> runtime.shutdown()

Tags:
    scheduling, apscheduler, composition

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

from dataclasses import dataclass

from assoc_scheduler.handlers.registry import HandlerRegistry, create_default_registry
from assoc_scheduler.logging import get_logger
from assoc_scheduler.protocols import Connection
from assoc_scheduler.settings import SchedulerSettings

from .apscheduler_engine import APSchedulerEngine
from .cron import build_cron_trigger, resolve_cron_expression, resolve_timezone
from .execution import ExecutionService
from .jobs import JobService
from .log_store import ExecutionLogRepository, ExecutionLogService
from .protocol import (
    Firing,
    JobDefinition,
    TriggerDefinition,
    TriggerEngine,
    job_key,
    retry_trigger_key,
    trigger_key,
)
from .repository import ExcludedDateRepository, JobRepository, StrategyRepository
from .strategies import StrategyService

logger = get_logger(__name__)


@dataclass
class SchedulerRuntime:
    """Wired scheduler services sharing one engine."""

    engine: TriggerEngine
    strategies: StrategyService
    jobs: JobService
    execution: ExecutionService
    logs: ExecutionLogService
    handlers: HandlerRegistry
    settings: SchedulerSettings

    def start(self) -> int:
        """Start the engine and register every persisted job.

        Returns:
            Number of jobs synced
        """
        self.engine.start()
        synced = self.jobs.sync_all()
        logger.info("scheduler_started", engine=self.engine.name, jobs=synced)
        return synced

    def shutdown(self, wait: bool = True) -> None:
        self.engine.shutdown(wait=wait)
        logger.info("scheduler_stopped", engine=self.engine.name)


def create_scheduler(
    conn: Connection,
    settings: SchedulerSettings | None = None,
    engine: TriggerEngine | None = None,
    handlers: HandlerRegistry | None = None,
    log_conn: Connection | None = None,
) -> SchedulerRuntime:
    """Build a ``SchedulerRuntime`` over *conn*.

    Args:
        conn: Connection for strategies, excluded dates and jobs
        settings: Retry policy and friends (defaults from the environment)
        engine: Trigger engine (a new ``APSchedulerEngine`` when omitted)
        handlers: Handler registry (the built-ins when omitted)
        log_conn: Separate connection for execution-log writes
    """
    settings = settings or SchedulerSettings()
    engine = engine or APSchedulerEngine()
    handlers = handlers or create_default_registry()

    strategy_repo = StrategyRepository(conn)
    excluded_repo = ExcludedDateRepository(conn)
    job_repo = JobRepository(conn)
    log_service = ExecutionLogService(ExecutionLogRepository(log_conn or conn), job_repo)

    job_service = JobService(job_repo, strategy_repo, engine)
    strategy_service = StrategyService(strategy_repo, excluded_repo, job_repo, job_service)
    execution_service = ExecutionService(
        job_repo,
        strategy_repo,
        excluded_repo,
        log_service,
        handlers,
        engine,
        max_attempts=settings.retry.max_attempts,
        retry_interval=settings.retry.interval,
    )
    engine.bind(execution_service.on_fire)

    return SchedulerRuntime(
        engine=engine,
        strategies=strategy_service,
        jobs=job_service,
        execution=execution_service,
        logs=log_service,
        handlers=handlers,
        settings=settings,
    )


__all__ = [
    # Composition
    "SchedulerRuntime",
    "create_scheduler",
    # Services
    "StrategyService",
    "JobService",
    "ExecutionService",
    "ExecutionLogService",
    # Repositories
    "StrategyRepository",
    "ExcludedDateRepository",
    "JobRepository",
    "ExecutionLogRepository",
    # Engine
    "TriggerEngine",
    "APSchedulerEngine",
    "JobDefinition",
    "TriggerDefinition",
    "Firing",
    "job_key",
    "trigger_key",
    "retry_trigger_key",
    # Cron
    "resolve_cron_expression",
    "build_cron_trigger",
    "resolve_timezone",
]
