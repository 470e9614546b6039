"""Tests for StrategyService (strategy CRUD and excluded dates)."""

from __future__ import annotations

from datetime import UTC, date, time

import pytest

from assoc_scheduler.errors import ConfigurationError, StateError, UnknownReferenceError
from assoc_scheduler.models import ScheduleStrategy, ScheduleType
from assoc_scheduler.scheduling import trigger_key


class TestCreateStrategy:
    def test_derives_cron_expression(self, runtime):
        strategy = runtime.strategies.create_strategy(
            ScheduleStrategy(name="ninety", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=90)
        )
        assert strategy.id is not None
        assert strategy.cron_expression == "0 0/1 * * * ?"
        assert runtime.strategies.get_strategy(strategy.id).cron_expression == "0 0/1 * * * ?"

    def test_derived_expression_overrides_client_value(self, runtime):
        strategy = runtime.strategies.create_strategy(
            ScheduleStrategy(
                name="daily",
                schedule_type=ScheduleType.DAILY,
                start_time=time(8, 30),
                cron_expression="* * * * * ?",
            )
        )
        assert strategy.cron_expression == "0 30 8 * * ?"

    def test_round_trips_structured_fields(self, runtime):
        created = runtime.strategies.create_strategy(
            ScheduleStrategy(
                name="weekly",
                description="Weekday mornings",
                schedule_type=ScheduleType.WEEKLY,
                start_time=time(9, 0, 15),
                end_time=time(17, 0),
                time_zone="Europe/Berlin",
                days_of_week="MON,WED,FRI",
            )
        )
        loaded = runtime.strategies.get_strategy(created.id)
        assert loaded.schedule_type is ScheduleType.WEEKLY
        assert loaded.start_time == time(9, 0, 15)
        assert loaded.end_time == time(17, 0)
        assert loaded.time_zone == "Europe/Berlin"
        assert loaded.weekdays == ["MON", "WED", "FRI"]
        assert loaded.cron_expression == "15 0 9 ? * MON,WED,FRI"

    def test_invalid_definition_is_not_persisted(self, runtime):
        with pytest.raises(ConfigurationError):
            runtime.strategies.create_strategy(ScheduleStrategy(name="bad", schedule_type=ScheduleType.DAILY))
        assert runtime.strategies.list_strategies() == []

    def test_unschedulable_cron_is_rejected(self, runtime):
        with pytest.raises(ConfigurationError):
            runtime.strategies.create_strategy(
                ScheduleStrategy(name="bad", schedule_type=ScheduleType.CRON, cron_expression="0 99 * * * ?")
            )

    def test_unknown_time_zone_is_rejected(self, runtime):
        with pytest.raises(ConfigurationError, match="time zone"):
            runtime.strategies.create_strategy(
                ScheduleStrategy(
                    name="tz",
                    schedule_type=ScheduleType.DAILY,
                    start_time=time(8, 0),
                    time_zone="Nowhere/City",
                )
            )

    def test_stores_distinct_excluded_dates(self, runtime, make_strategy):
        strategy = make_strategy(excluded_dates=[date(2026, 12, 25), date(2026, 1, 1), date(2026, 12, 25)])
        dates = [d.excluded_date for d in runtime.strategies.list_excluded_dates(strategy.id)]
        assert dates == [date(2026, 1, 1), date(2026, 12, 25)]
        assert all(d.reason == "EXCLUDED" for d in runtime.strategies.list_excluded_dates(strategy.id))


class TestExcludedDates:
    def test_empty_list_clears(self, runtime, make_strategy):
        strategy = make_strategy(excluded_dates=[date(2026, 12, 25)])
        runtime.strategies.sync_excluded_dates(strategy.id, [])
        assert runtime.strategies.list_excluded_dates(strategy.id) == []

    def test_none_clears(self, runtime, make_strategy):
        strategy = make_strategy(excluded_dates=[date(2026, 12, 25)])
        assert runtime.strategies.sync_excluded_dates(strategy.id, None) == 0
        assert runtime.strategies.list_excluded_dates(strategy.id) == []

    def test_sync_is_idempotent(self, runtime, make_strategy):
        strategy = make_strategy()
        dates = [date(2026, 7, 4), date(2026, 11, 26)]
        runtime.strategies.sync_excluded_dates(strategy.id, dates)
        first = [d.excluded_date for d in runtime.strategies.list_excluded_dates(strategy.id)]
        runtime.strategies.sync_excluded_dates(strategy.id, dates)
        second = [d.excluded_date for d in runtime.strategies.list_excluded_dates(strategy.id)]
        assert first == second == dates

    def test_replaces_previous_set(self, runtime, make_strategy):
        strategy = make_strategy(excluded_dates=[date(2026, 1, 1)])
        count = runtime.strategies.update_excluded_dates(strategy.id, [date(2026, 2, 2), date(2026, 3, 3)])
        assert count == 2
        dates = [d.excluded_date for d in runtime.strategies.list_excluded_dates(strategy.id)]
        assert dates == [date(2026, 2, 2), date(2026, 3, 3)]

    def test_update_for_unknown_strategy(self, runtime):
        with pytest.raises(UnknownReferenceError):
            runtime.strategies.update_excluded_dates(404, [date(2026, 1, 1)])


class TestUpdateStrategy:
    def test_overwrites_fields_and_rederives(self, runtime, make_strategy):
        strategy = make_strategy()
        updated = runtime.strategies.update_strategy(
            strategy.id,
            ScheduleStrategy(name="renamed", schedule_type=ScheduleType.DAILY, start_time=time(6, 0)),
        )
        assert updated.name == "renamed"
        assert updated.schedule_type is ScheduleType.DAILY
        assert updated.interval_seconds is None
        assert updated.time_zone is None
        assert updated.cron_expression == "0 0 6 * * ?"

    def test_reschedules_bound_jobs(self, runtime, engine, make_strategy, make_job):
        strategy = make_strategy(schedule_type=ScheduleType.DAILY, start_time=time(8, 0), interval_seconds=None)
        job = make_job(strategy)
        before = engine.next_fire_time(trigger_key(job.id))
        assert before.astimezone(UTC).hour == 8

        runtime.strategies.update_strategy(
            strategy.id,
            ScheduleStrategy(
                name=strategy.name,
                schedule_type=ScheduleType.DAILY,
                start_time=time(9, 30),
                time_zone="UTC",
            ),
        )

        after = engine.next_fire_time(trigger_key(job.id))
        assert (after.astimezone(UTC).hour, after.astimezone(UTC).minute) == (9, 30)
        assert engine.list_trigger_keys() == [trigger_key(job.id)]

    def test_disabled_jobs_stay_unregistered(self, runtime, make_strategy, make_job):
        strategy = make_strategy()
        job = make_job(strategy, enabled=False)
        runtime.strategies.update_strategy(
            strategy.id,
            ScheduleStrategy(name="x", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=120),
        )
        assert runtime.jobs.is_registered(job.id) is False

    def test_replaces_excluded_dates(self, runtime, make_strategy):
        strategy = make_strategy(excluded_dates=[date(2026, 1, 1)])
        runtime.strategies.update_strategy(
            strategy.id,
            ScheduleStrategy(name="x", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=60),
            [date(2026, 5, 1)],
        )
        dates = [d.excluded_date for d in runtime.strategies.list_excluded_dates(strategy.id)]
        assert dates == [date(2026, 5, 1)]

    def test_unknown_strategy(self, runtime):
        with pytest.raises(UnknownReferenceError):
            runtime.strategies.update_strategy(
                404,
                ScheduleStrategy(name="x", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=60),
            )

    def test_invalid_update_leaves_row_unchanged(self, runtime, make_strategy):
        strategy = make_strategy()
        with pytest.raises(ConfigurationError):
            runtime.strategies.update_strategy(
                strategy.id,
                ScheduleStrategy(name="x", schedule_type=ScheduleType.WEEKLY, start_time=time(9, 0)),
            )
        assert runtime.strategies.get_strategy(strategy.id).cron_expression == "0 0/5 * * * ?"


class TestDeleteStrategy:
    def test_refuses_while_jobs_reference_it(self, runtime, make_strategy, make_job):
        strategy = make_strategy()
        make_job(strategy)
        make_job(strategy, name="second", enabled=False)

        with pytest.raises(StateError) as exc_info:
            runtime.strategies.delete_strategy(strategy.id)

        assert exc_info.value.context["job_count"] == 2
        assert runtime.strategies.get_strategy(strategy.id).id == strategy.id

    def test_deletes_strategy_and_its_dates(self, runtime, conn, make_strategy):
        strategy = make_strategy(excluded_dates=[date(2026, 12, 25)])
        runtime.strategies.delete_strategy(strategy.id)

        with pytest.raises(UnknownReferenceError):
            runtime.strategies.get_strategy(strategy.id)
        rows = conn.execute(
            "SELECT COUNT(*) FROM sch_schedule_excluded_date WHERE strategy_id = ?", (strategy.id,)
        ).fetchone()
        assert rows[0] == 0

    def test_deletable_after_jobs_removed(self, runtime, make_strategy, make_job):
        strategy = make_strategy()
        job = make_job(strategy)
        runtime.jobs.delete_job(job.id)
        runtime.strategies.delete_strategy(strategy.id)
        assert runtime.strategies.list_strategies() == []

    def test_unknown_strategy(self, runtime):
        with pytest.raises(UnknownReferenceError):
            runtime.strategies.delete_strategy(404)
