"""Strategy manager - reusable schedules and their excluded dates.

The stored ``cron_expression`` is always the output of
``resolve_cron_expression`` for the strategy's structured fields; it is
recomputed on every create and update and never edited on its own.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from assoc_scheduler.errors import StateError, UnknownReferenceError
from assoc_scheduler.logging import get_logger
from assoc_scheduler.models import ScheduleExcludedDate, ScheduleStrategy

from .cron import build_cron_trigger, resolve_cron_expression, resolve_timezone
from .jobs import JobService
from .repository import ExcludedDateRepository, JobRepository, StrategyRepository

logger = get_logger(__name__)


class StrategyService:
    """CRUD for schedule strategies.

    Updating a strategy re-syncs every job bound to it through the
    ``JobService``.
    """

    def __init__(
        self,
        strategies: StrategyRepository,
        excluded_dates: ExcludedDateRepository,
        jobs: JobRepository,
        job_service: JobService,
    ) -> None:
        self.strategies = strategies
        self.excluded_dates = excluded_dates
        self.jobs = jobs
        self.job_service = job_service

    def create_strategy(
        self,
        strategy: ScheduleStrategy,
        excluded_dates: Iterable[date] | None = None,
    ) -> ScheduleStrategy:
        strategy.cron_expression = self._derive(strategy)
        saved = self.strategies.create(strategy)
        self.sync_excluded_dates(saved.id, excluded_dates)  # type: ignore[arg-type]
        logger.info(
            "strategy_created",
            strategy_id=saved.id,
            schedule_type=saved.schedule_type.value if saved.schedule_type else None,
            cron_expression=saved.cron_expression,
        )
        return saved

    def update_strategy(
        self,
        strategy_id: int,
        updated: ScheduleStrategy,
        excluded_dates: Iterable[date] | None = None,
    ) -> ScheduleStrategy:
        existing = self.get_strategy(strategy_id)
        existing.name = updated.name
        existing.description = updated.description
        existing.schedule_type = updated.schedule_type
        existing.start_time = updated.start_time
        existing.end_time = updated.end_time
        existing.time_zone = updated.time_zone
        existing.interval_seconds = updated.interval_seconds
        existing.days_of_week = updated.days_of_week
        # CRON strategies carry their expression as input
        existing.cron_expression = updated.cron_expression
        existing.cron_expression = self._derive(existing)

        saved = self.strategies.update(existing)
        if saved is None:
            raise UnknownReferenceError("strategy", strategy_id)
        self.sync_excluded_dates(strategy_id, excluded_dates)
        logger.info("strategy_updated", strategy_id=strategy_id, cron_expression=saved.cron_expression)
        self.job_service.reschedule_jobs_for_strategy(strategy_id)
        return saved

    def delete_strategy(self, strategy_id: int) -> None:
        self.get_strategy(strategy_id)
        in_use = self.jobs.count_by_strategy(strategy_id)
        if in_use:
            raise StateError(
                f"Strategy {strategy_id} is still used by {in_use} job(s) and cannot be deleted"
            ).with_context(strategy_id=strategy_id, job_count=in_use)
        self.excluded_dates.delete_for(strategy_id)
        self.strategies.delete(strategy_id)
        logger.info("strategy_deleted", strategy_id=strategy_id)

    def get_strategy(self, strategy_id: int) -> ScheduleStrategy:
        strategy = self.strategies.get(strategy_id)
        if strategy is None:
            raise UnknownReferenceError("strategy", strategy_id)
        return strategy

    def list_strategies(self) -> list[ScheduleStrategy]:
        return self.strategies.list_all()

    # === Excluded dates ===

    def list_excluded_dates(self, strategy_id: int) -> list[ScheduleExcludedDate]:
        return self.excluded_dates.list_for(strategy_id)

    def update_excluded_dates(self, strategy_id: int, dates: Iterable[date] | None) -> int:
        self.get_strategy(strategy_id)
        return self.sync_excluded_dates(strategy_id, dates)

    def sync_excluded_dates(self, strategy_id: int, dates: Iterable[date] | None) -> int:
        """Replace the strategy's excluded dates with the distinct *dates*.

        ``None`` or an empty iterable clears them.
        """
        count = self.excluded_dates.replace(strategy_id, dates)
        logger.debug("excluded_dates_synced", strategy_id=strategy_id, count=count)
        return count

    @staticmethod
    def _derive(strategy: ScheduleStrategy) -> str:
        expression = resolve_cron_expression(strategy)
        # Reject what the engine could not schedule before any job binds to it
        build_cron_trigger(expression, resolve_timezone(strategy.time_zone))
        return expression
