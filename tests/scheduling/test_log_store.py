"""Tests for the execution log store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from assoc_scheduler.errors import UnknownReferenceError
from assoc_scheduler.models import ExecutionStatus, JobExecutionLog
from assoc_scheduler.scheduling import ExecutionLogRepository

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _entry(job_id: int, scheduled: datetime, status=ExecutionStatus.SUCCESS, **kwargs) -> JobExecutionLog:
    fields = {
        "job_id": job_id,
        "strategy_id": None,
        "scheduled_fire_time": scheduled,
        "actual_fire_time": scheduled,
        "finished_time": scheduled + timedelta(seconds=1),
        "status": status,
        "duration_ms": 1000,
    }
    fields.update(kwargs)
    return JobExecutionLog(**fields)


@pytest.fixture
def job(make_strategy, make_job):
    return make_job(make_strategy())


class TestAppend:
    def test_assigns_id_and_round_trips(self, conn):
        repo = ExecutionLogRepository(conn)
        saved = repo.append(_entry(7, T0, ExecutionStatus.FAILED, error_message="boom", retry_count=2))

        assert saved.id is not None
        assert saved == repo.get(saved.id)
        assert saved.status is ExecutionStatus.FAILED
        assert saved.error_message == "boom"
        assert saved.retry_count == 2
        assert saved.scheduled_fire_time == T0

    def test_times_are_normalized_to_utc(self, conn):
        repo = ExecutionLogRepository(conn)
        berlin = timezone(timedelta(hours=1))
        saved = repo.append(_entry(7, datetime(2026, 3, 2, 10, 0, tzinfo=berlin)))
        assert saved.scheduled_fire_time == T0
        assert saved.scheduled_fire_time.utcoffset() == timedelta(0)

    def test_naive_times_are_read_as_utc(self, conn):
        repo = ExecutionLogRepository(conn)
        saved = repo.append(_entry(7, datetime(2026, 3, 2, 9, 0)))
        assert saved.scheduled_fire_time == T0

    def test_logs_outlive_their_job(self, runtime, conn, job):
        runtime.execution.execute(job.id)
        runtime.jobs.delete_job(job.id)
        assert ExecutionLogRepository(conn).count(job_id=job.id) == 1


class TestListLogs:
    def test_unknown_job_is_an_error(self, runtime):
        with pytest.raises(UnknownReferenceError) as exc_info:
            runtime.logs.list_logs(job_id=404)
        assert exc_info.value.context["job_id"] == 404

    def test_known_job_without_history_is_empty(self, runtime, job):
        assert runtime.logs.list_logs(job_id=job.id) == []

    def test_newest_scheduled_first(self, runtime, job):
        for offset in (5, 0, 10):
            runtime.logs.record(_entry(job.id, T0 + timedelta(minutes=offset)))

        logs = runtime.logs.list_logs(job_id=job.id)
        assert [entry.scheduled_fire_time for entry in logs] == [
            T0 + timedelta(minutes=10),
            T0 + timedelta(minutes=5),
            T0,
        ]

    def test_window_is_inclusive(self, runtime, job):
        for offset in (0, 5, 10, 15):
            runtime.logs.record(_entry(job.id, T0 + timedelta(minutes=offset)))

        logs = runtime.logs.list_logs(
            job_id=job.id,
            start_time=T0 + timedelta(minutes=5),
            end_time=T0 + timedelta(minutes=10),
        )
        assert [entry.scheduled_fire_time for entry in logs] == [
            T0 + timedelta(minutes=10),
            T0 + timedelta(minutes=5),
        ]

    def test_open_ended_window(self, runtime, job):
        for offset in (0, 5, 10):
            runtime.logs.record(_entry(job.id, T0 + timedelta(minutes=offset)))
        assert len(runtime.logs.list_logs(start_time=T0 + timedelta(minutes=5))) == 2
        assert len(runtime.logs.list_logs(end_time=T0 + timedelta(minutes=5))) == 2

    def test_filters_by_status_and_job(self, runtime, job, make_strategy, make_job):
        other = make_job(make_strategy(name="other"), name="other-job")
        runtime.logs.record(_entry(job.id, T0, ExecutionStatus.FAILED))
        runtime.logs.record(_entry(job.id, T0 + timedelta(minutes=1)))
        runtime.logs.record(_entry(other.id, T0, ExecutionStatus.FAILED))

        failed = runtime.logs.list_logs(status=ExecutionStatus.FAILED)
        assert {entry.job_id for entry in failed} == {job.id, other.id}

        mine = runtime.logs.list_logs(job_id=job.id, status="FAILED")
        assert [(entry.job_id, entry.status) for entry in mine] == [(job.id, ExecutionStatus.FAILED)]

    def test_limit(self, runtime, job):
        for offset in range(5):
            runtime.logs.record(_entry(job.id, T0 + timedelta(minutes=offset)))
        logs = runtime.logs.list_logs(job_id=job.id, limit=2)
        assert [entry.scheduled_fire_time for entry in logs] == [
            T0 + timedelta(minutes=4),
            T0 + timedelta(minutes=3),
        ]

    def test_same_scheduled_time_orders_by_insertion(self, runtime, job):
        first = runtime.logs.record(_entry(job.id, T0, ExecutionStatus.RETRIED))
        second = runtime.logs.record(_entry(job.id, T0, ExecutionStatus.SUCCESS))
        assert [entry.id for entry in runtime.logs.list_logs(job_id=job.id)] == [second.id, first.id]


def test_separate_log_connection(tmp_path, settings, engine, fake_handler):
    """Log rows written through their own connection are visible to readers."""
    from assoc_scheduler.connection import create_connection
    from assoc_scheduler.handlers.registry import HandlerRegistry
    from assoc_scheduler.models import ScheduleStrategy, SchedulerJob, ScheduleType
    from assoc_scheduler.scheduling import create_scheduler

    db = f"sqlite:///{tmp_path / 'scheduler.db'}"
    conn, _ = create_connection(db, init_schema=True)
    log_conn, _ = create_connection(db)
    registry = HandlerRegistry()
    registry.register(fake_handler)
    runtime = create_scheduler(conn, settings=settings, engine=engine, handlers=registry, log_conn=log_conn)
    try:
        strategy = runtime.strategies.create_strategy(
            ScheduleStrategy(name="s", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=60)
        )
        job = runtime.jobs.create_job(
            SchedulerJob(name="j", job_type="FAKE", schedule_strategy_id=strategy.id)
        )
        runtime.execution.execute(job.id)

        reader, _ = create_connection(db)
        try:
            assert ExecutionLogRepository(reader).count(job_id=job.id, status=ExecutionStatus.SUCCESS) == 1
        finally:
            reader.close()
    finally:
        log_conn.close()
        conn.close()
