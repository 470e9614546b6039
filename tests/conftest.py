"""
Shared pytest fixtures for assoc-scheduler tests.

This module provides:
- In-memory database connections with the scheduler schema
- A paused APScheduler engine (triggers are stored, never fired)
- A wired ``SchedulerRuntime`` with a recording fake handler
- A controllable clock for execution tests

Usage:
    def test_something(runtime, make_strategy, make_job):
        job = make_job(make_strategy())
        assert runtime.jobs.is_registered(job.id)
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from assoc_scheduler.connection import create_connection
from assoc_scheduler.handlers.registry import HandlerRegistry
from assoc_scheduler.models import ScheduleStrategy, SchedulerJob, ScheduleType
from assoc_scheduler.scheduling import APSchedulerEngine, create_scheduler
from assoc_scheduler.settings import SchedulerSettings

FIXED_NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)  # a Monday


# =============================================================================
# Test doubles
# =============================================================================


class FakeHandler:
    """Records every call; raises ``error`` when set."""

    job_type = "FAKE"

    def __init__(self) -> None:
        self.calls: list[tuple[SchedulerJob, object]] = []
        self.error: Exception | None = None

    def handle(self, job, context) -> None:
        self.calls.append((job, context))
        if self.error is not None:
            raise self.error


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# Infrastructure fixtures
# =============================================================================


@pytest.fixture
def conn():
    """In-memory SQLite connection with scheduler tables."""
    connection, _ = create_connection("memory", init_schema=True)
    yield connection
    connection.close()


@pytest.fixture
def engine():
    """Started, paused APScheduler engine."""
    eng = APSchedulerEngine(start_paused=True)
    eng.start()
    yield eng
    eng.shutdown(wait=False)


@pytest.fixture
def settings(tmp_path, monkeypatch) -> SchedulerSettings:
    monkeypatch.chdir(tmp_path)
    return SchedulerSettings(
        database_url="memory",
        start_engine=False,
        json_logs=False,
        log_level="WARNING",
        retry={"max_attempts": 3, "interval": 60},
    )


@pytest.fixture
def fake_handler() -> FakeHandler:
    return FakeHandler()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def runtime(conn, engine, settings, fake_handler, clock):
    """Fully wired runtime over the in-memory database and paused engine."""
    registry = HandlerRegistry()
    registry.register(fake_handler)
    rt = create_scheduler(conn, settings=settings, engine=engine, handlers=registry)
    rt.execution.clock = clock
    return rt


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_strategy(runtime):
    """Create a strategy (every 5 minutes, UTC unless overridden)."""

    def _make(excluded_dates=None, **overrides) -> ScheduleStrategy:
        fields = {
            "name": "every-5-min",
            "schedule_type": ScheduleType.FIXED_RATE,
            "interval_seconds": 300,
            "time_zone": "UTC",
        }
        fields.update(overrides)
        return runtime.strategies.create_strategy(ScheduleStrategy(**fields), excluded_dates)

    return _make


@pytest.fixture
def make_job(runtime):
    """Create a FAKE job bound to *strategy*."""

    def _make(strategy: ScheduleStrategy, **overrides) -> SchedulerJob:
        fields = {
            "name": "sample-job",
            "job_type": "FAKE",
            "job_config": "{}",
            "schedule_strategy_id": strategy.id,
        }
        fields.update(overrides)
        return runtime.jobs.create_job(SchedulerJob(**fields))

    return _make
