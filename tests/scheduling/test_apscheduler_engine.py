"""Tests for APSchedulerEngine (TriggerEngine over a BackgroundScheduler)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from assoc_scheduler.errors import EngineError
from assoc_scheduler.scheduling import (
    APSchedulerEngine,
    JobDefinition,
    TriggerDefinition,
    TriggerEngine,
)


def _definition(job_id: int = 1, **data) -> JobDefinition:
    return JobDefinition(key=f"job:{job_id}", data={"job_id": job_id, "retry_count": 0, **data})


def _cron(job_id: int = 1, minute: str = "*/5") -> TriggerDefinition:
    return TriggerDefinition(
        key=f"trigger:{job_id}",
        job_key=f"job:{job_id}",
        trigger=CronTrigger(minute=minute, timezone=UTC),
    )


def _retry(job_id: int = 1, stamp: int = 1, **data) -> TriggerDefinition:
    return TriggerDefinition(
        key=f"retry:{job_id}:{stamp}",
        job_key=f"job:{job_id}",
        trigger=DateTrigger(run_date=datetime.now(UTC) + timedelta(hours=1)),
        data=data,
        fire_now_on_misfire=True,
    )


class TestLifecycle:
    def test_satisfies_protocol(self):
        assert isinstance(APSchedulerEngine(), TriggerEngine)

    def test_start_and_shutdown(self):
        engine = APSchedulerEngine(start_paused=True)
        assert engine.running is False
        engine.start()
        assert engine.running is True
        engine.start()  # second start is a no-op
        engine.shutdown(wait=False)
        assert engine.running is False

    def test_shutdown_when_stopped_is_safe(self):
        APSchedulerEngine().shutdown()


class TestRegistration:
    def test_schedule_registers_definition_and_trigger(self, engine):
        engine.schedule(_definition(), _cron())

        assert engine.check_exists("job:1")
        assert engine.check_exists("trigger:1")
        assert engine.list_trigger_keys() == ["trigger:1"]
        assert engine.list_trigger_keys("job:1") == ["trigger:1"]
        assert engine.next_fire_time("trigger:1") is not None

    def test_schedule_twice_is_an_error(self, engine):
        engine.schedule(_definition(), _cron())
        with pytest.raises(EngineError, match="already exists"):
            engine.schedule(_definition(), _cron())

    def test_add_job_without_trigger(self, engine):
        engine.add_job(_definition())
        assert engine.check_exists("job:1")
        assert engine.list_trigger_keys("job:1") == []

    def test_add_job_duplicate_requires_replace(self, engine):
        engine.add_job(_definition())
        with pytest.raises(EngineError):
            engine.add_job(_definition())
        engine.add_job(_definition(strategy_id=9), replace_existing=True)

    def test_replacing_definition_updates_attached_triggers(self, engine):
        engine.schedule(_definition(strategy_id=1), _cron())
        engine.schedule_trigger(_retry(retry_count=2))

        engine.add_job(_definition(strategy_id=2), replace_existing=True)

        cron_data = engine._scheduler.get_job("trigger:1").kwargs["data"]
        retry_data = engine._scheduler.get_job("retry:1:1").kwargs["data"]
        assert cron_data["strategy_id"] == 2
        assert cron_data["retry_count"] == 0
        assert retry_data["strategy_id"] == 2
        assert retry_data["retry_count"] == 2

    def test_schedule_trigger_requires_definition(self, engine):
        with pytest.raises(EngineError, match="No job definition"):
            engine.schedule_trigger(_retry())

    def test_trigger_data_overrides_definition_data(self, engine):
        engine.schedule(_definition(), _cron())
        engine.schedule_trigger(_retry(retry_count=3))

        job = engine._scheduler.get_job("retry:1:1")
        assert job.kwargs["data"] == {"job_id": 1, "retry_count": 3}
        assert job.misfire_grace_time is None
        assert job.coalesce is True

    def test_reschedule_replaces_trigger(self, engine):
        engine.schedule(_definition(), _cron(minute="*/5"))
        before = engine.next_fire_time("trigger:1")

        engine.reschedule("trigger:1", _cron(minute="0"))

        after = engine.next_fire_time("trigger:1")
        assert after.minute == 0
        assert engine.list_trigger_keys() == ["trigger:1"]
        assert before is not None

    def test_reschedule_under_new_key(self, engine):
        engine.schedule(_definition(), _cron())
        engine.reschedule(
            "trigger:1",
            TriggerDefinition(key="trigger:1b", job_key="job:1", trigger=CronTrigger(hour=1, timezone=UTC)),
        )
        assert engine.list_trigger_keys() == ["trigger:1b"]

    def test_unschedule(self, engine):
        engine.schedule(_definition(), _cron())
        assert engine.unschedule("trigger:1") is True
        assert engine.unschedule("trigger:1") is False
        assert engine.check_exists("job:1")

    def test_delete_job_removes_every_trigger(self, engine):
        engine.schedule(_definition(1), _cron(1))
        engine.schedule_trigger(_retry(1, stamp=1))
        engine.schedule_trigger(_retry(1, stamp=2))
        engine.schedule(_definition(2), _cron(2))

        assert engine.delete_job("job:1") is True

        assert not engine.check_exists("job:1")
        assert engine.list_trigger_keys() == ["trigger:2"]
        assert engine.delete_job("job:1") is False

    def test_next_fire_time_unknown_trigger(self, engine):
        assert engine.next_fire_time("trigger:404") is None


class TestFailures:
    def test_scheduler_errors_become_engine_errors(self):
        scheduler = MagicMock()
        scheduler.add_job.side_effect = RuntimeError("jobstore offline")
        engine = APSchedulerEngine(scheduler)

        with pytest.raises(EngineError, match="jobstore offline") as exc_info:
            engine.schedule(_definition(), _cron())

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert "job:1" not in engine._definitions

    def test_check_exists_failure(self):
        scheduler = MagicMock()
        scheduler.get_job.side_effect = RuntimeError("jobstore offline")
        with pytest.raises(EngineError):
            APSchedulerEngine(scheduler).check_exists("trigger:1")


class TestFiring:
    def test_fire_builds_firing_for_callback(self, engine):
        received = []
        engine.bind(received.append)

        engine._fire("job:1", "trigger:1", {"job_id": 1, "retry_count": 0})

        [firing] = received
        assert firing.job_key == "job:1"
        assert firing.trigger_key == "trigger:1"
        assert firing.data == {"job_id": 1, "retry_count": 0}
        assert firing.scheduled_fire_time.microsecond == 0
        assert firing.fire_time.tzinfo is not None

    def test_cron_firing_reports_the_slot_it_was_due_for(self, engine):
        received = []
        engine.bind(received.append)
        engine.schedule(_definition(), _cron(minute="*/5"))

        engine._fire("job:1", "trigger:1", {"job_id": 1, "retry_count": 0})

        [firing] = received
        slot = firing.scheduled_fire_time
        assert (slot.minute % 5, slot.second, slot.microsecond) == (0, 0, 0)
        assert slot <= firing.fire_time < slot + timedelta(minutes=5)

    def test_retry_firing_reports_original_run_time(self, engine):
        received = []
        engine.bind(received.append)
        run_at = datetime(2026, 3, 2, 12, 1, tzinfo=UTC)

        engine._fire("job:1", "retry:1:5", {"job_id": 1, "scheduled_fire_time": run_at.isoformat()})

        assert received[0].scheduled_fire_time == run_at

    def test_fire_without_callback_is_ignored(self, engine):
        engine._fire("job:1", "trigger:1", {"job_id": 1})
