"""Job registry - job CRUD kept in sync with the trigger engine.

Manifesto:
    The database row is the definition; the engine registration is a
    projection of it.  Every mutation persists first, then re-projects.
    There is no background reconciliation: if the projection fails, the
    caller gets a ``StateError`` and the two stores stay apart until the
    next explicit sync (``sync_job``/``sync_all``).

Registration of job ``42`` bound to strategy ``7``::

    job:42      JobDefinition  {job_id: 42, strategy_id: 7, job_type: HTTP, retry_count: 0}
    trigger:42  CronTrigger    built from strategy 7's cron + time zone

Tags:
    scheduling, registry, sync, apscheduler

Doc-Types:
    api-reference
"""

from __future__ import annotations

from assoc_scheduler.errors import (
    ConfigurationError,
    EngineError,
    StateError,
    UnknownReferenceError,
)
from assoc_scheduler.logging import get_logger
from assoc_scheduler.models import ScheduleStrategy, SchedulerJob

from .cron import build_cron_trigger, resolve_timezone
from .protocol import (
    JOB_ID_KEY,
    JOB_TYPE_KEY,
    RETRY_COUNT_KEY,
    STRATEGY_ID_KEY,
    JobDefinition,
    TriggerDefinition,
    TriggerEngine,
    job_key,
    trigger_key,
)
from .repository import JobRepository, StrategyRepository

logger = get_logger(__name__)


class JobService:
    """CRUD for scheduler jobs plus engine synchronization.

    Example:
        >>> service = JobService(jobs, strategies, engine)
        >>> job = service.create_job(SchedulerJob(
        ...     name="nightly-sync",
        ...     job_type="HTTP",
        ...     job_config='{"url": "https://example.org/hook"}',
        ...     schedule_strategy_id=7,
        ... ))
        >>> service.is_registered(job.id)
        True
    """

    def __init__(
        self,
        jobs: JobRepository,
        strategies: StrategyRepository,
        engine: TriggerEngine,
    ) -> None:
        self.jobs = jobs
        self.strategies = strategies
        self.engine = engine

    # === CRUD ===

    def create_job(self, job: SchedulerJob) -> SchedulerJob:
        self._validate(job)
        self._ensure_strategy_exists(job.schedule_strategy_id)
        saved = self.jobs.create(job)
        logger.info(
            "job_created",
            job_id=saved.id,
            name=saved.name,
            strategy_id=saved.schedule_strategy_id,
            enabled=saved.enabled,
        )
        if saved.enabled:
            self._schedule(saved)
        return saved

    def get_job(self, job_id: int) -> SchedulerJob:
        job = self.jobs.get(job_id)
        if job is None:
            logger.warning("job_not_found", job_id=job_id)
            raise UnknownReferenceError("job", job_id)
        return job

    def list_jobs(self) -> list[SchedulerJob]:
        return self.jobs.list_all()

    def update_job(self, job_id: int, update: SchedulerJob) -> SchedulerJob:
        """Overwrite every mutable field, then re-sync the engine.

        The engine is re-synced even when only name or description changed.
        """
        existing = self.get_job(job_id)
        existing.name = update.name
        existing.description = update.description
        existing.job_type = update.job_type
        existing.job_config = update.job_config
        existing.schedule_strategy_id = update.schedule_strategy_id
        existing.precondition_config = update.precondition_config
        existing.enabled = update.enabled
        self._validate(existing)
        self._ensure_strategy_exists(existing.schedule_strategy_id)

        saved = self.jobs.update(existing)
        if saved is None:
            raise UnknownReferenceError("job", job_id)
        logger.info("job_updated", job_id=job_id, enabled=saved.enabled)
        self.sync_job(saved)
        return saved

    def delete_job(self, job_id: int) -> None:
        job = self.get_job(job_id)
        self._unschedule(job)
        self.jobs.delete(job_id)
        logger.info("job_deleted", job_id=job_id)

    def enable_job(self, job_id: int) -> SchedulerJob:
        self.get_job(job_id)
        saved = self.jobs.set_enabled(job_id, True)
        if saved is None:
            raise UnknownReferenceError("job", job_id)
        logger.info("job_enabled", job_id=job_id)
        self._schedule(saved)
        return saved

    def disable_job(self, job_id: int) -> SchedulerJob:
        self.get_job(job_id)
        saved = self.jobs.set_enabled(job_id, False)
        if saved is None:
            raise UnknownReferenceError("job", job_id)
        logger.info("job_disabled", job_id=job_id)
        self._unschedule(saved)
        return saved

    # === Engine synchronization ===

    def sync_job(self, job: SchedulerJob) -> None:
        """Register *job* if enabled, otherwise remove its registration."""
        if job.enabled:
            self._schedule(job)
        else:
            self._unschedule(job)

    def reschedule_jobs_for_strategy(self, strategy_id: int) -> int:
        """Re-sync every job bound to *strategy_id*.

        Returns:
            Number of jobs re-synced
        """
        jobs = self.jobs.list_by_strategy(strategy_id)
        logger.info("rescheduling_strategy_jobs", strategy_id=strategy_id, count=len(jobs))
        for job in jobs:
            self.sync_job(job)
        return len(jobs)

    def sync_all(self) -> int:
        """Re-sync every persisted job (used at process start)."""
        jobs = self.jobs.list_all()
        for job in jobs:
            self.sync_job(job)
        logger.info("jobs_synced", count=len(jobs))
        return len(jobs)

    def is_registered(self, job_id: int) -> bool:
        try:
            return self.engine.check_exists(job_key(job_id))
        except EngineError as exc:
            raise StateError(f"Failed to query trigger engine: {exc.message}", cause=exc) from exc

    # === Internals ===

    def _schedule(self, job: SchedulerJob) -> None:
        strategy = self.strategies.get(job.schedule_strategy_id)  # type: ignore[arg-type]
        if strategy is None:
            raise StateError(
                f"Strategy {job.schedule_strategy_id} bound to job {job.id} no longer exists"
            ).with_context(job_id=job.id, strategy_id=job.schedule_strategy_id)

        definition = JobDefinition(
            key=job_key(job.id),  # type: ignore[arg-type]
            data={
                JOB_ID_KEY: job.id,
                STRATEGY_ID_KEY: job.schedule_strategy_id,
                JOB_TYPE_KEY: job.job_type,
                RETRY_COUNT_KEY: 0,
            },
        )
        trigger = TriggerDefinition(
            key=trigger_key(job.id),  # type: ignore[arg-type]
            job_key=definition.key,
            trigger=self._build_trigger(strategy),
        )

        try:
            if self.engine.check_exists(definition.key):
                self.engine.add_job(definition, replace_existing=True)
                self.engine.reschedule(trigger.key, trigger)
            else:
                self.engine.schedule(definition, trigger)
        except EngineError as exc:
            logger.error("job_sync_failed", job_id=job.id, error=exc.message)
            raise StateError(
                f"Failed to register job {job.id} with trigger engine: {exc.message}",
                cause=exc,
            ).with_context(job_id=job.id) from exc
        logger.info(
            "job_scheduled",
            job_id=job.id,
            strategy_id=strategy.id,
            cron_expression=strategy.cron_expression,
            time_zone=strategy.time_zone,
        )

    def _unschedule(self, job: SchedulerJob) -> None:
        try:
            self.engine.unschedule(trigger_key(job.id))  # type: ignore[arg-type]
            removed = self.engine.delete_job(job_key(job.id))  # type: ignore[arg-type]
        except EngineError as exc:
            logger.error("job_unschedule_failed", job_id=job.id, error=exc.message)
            raise StateError(
                f"Failed to remove job {job.id} from trigger engine: {exc.message}",
                cause=exc,
            ).with_context(job_id=job.id) from exc
        logger.info("job_unscheduled", job_id=job.id, was_registered=removed)

    @staticmethod
    def _build_trigger(strategy: ScheduleStrategy):
        try:
            return build_cron_trigger(
                strategy.cron_expression or "",
                resolve_timezone(strategy.time_zone),
            )
        except ConfigurationError as exc:
            raise StateError(
                f"Strategy {strategy.id} has an unusable schedule: {exc.message}",
                cause=exc,
            ).with_context(strategy_id=strategy.id) from exc

    def _ensure_strategy_exists(self, strategy_id: int | None) -> None:
        if strategy_id is None:
            raise ConfigurationError("Job requires a schedule_strategy_id")
        if not self.strategies.exists(strategy_id):
            raise UnknownReferenceError("strategy", strategy_id)

    @staticmethod
    def _validate(job: SchedulerJob) -> None:
        if not job.name or not job.name.strip():
            raise ConfigurationError("Job name is required")
        if not job.job_type or not str(job.job_type).strip():
            raise ConfigurationError("Job type is required").with_context(job_name=job.name)
