"""Fixtures for CLI tests: a seeded SQLite file and log-handler cleanup."""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime

import pytest

from assoc_scheduler.cli.utils import open_runtime
from assoc_scheduler.models import (
    ExecutionStatus,
    JobExecutionLog,
    ScheduleStrategy,
    SchedulerJob,
    ScheduleType,
)


@pytest.fixture(autouse=True)
def _rebind_log_handler():
    """The CLI points the root handler at CliRunner's stderr; point it back."""
    yield
    logging.basicConfig(stream=sys.stderr, level=logging.WARNING, force=True)


@pytest.fixture
def db(tmp_path, monkeypatch) -> str:
    monkeypatch.chdir(tmp_path)
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def seeded(db) -> dict:
    """One strategy, one enabled HTTP job and one log row."""
    with open_runtime(db) as runtime:
        strategy = runtime.strategies.create_strategy(
            ScheduleStrategy(name="every-5-min", schedule_type=ScheduleType.FIXED_RATE, interval_seconds=300)
        )
        job = runtime.jobs.create_job(
            SchedulerJob(
                name="ping",
                job_type="HTTP",
                job_config='{"url": "https://example.org"}',
                schedule_strategy_id=strategy.id,
            )
        )
        now = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
        runtime.logs.record(
            JobExecutionLog(
                job_id=job.id,
                strategy_id=strategy.id,
                scheduled_fire_time=now,
                actual_fire_time=now,
                finished_time=now,
                status=ExecutionStatus.SUCCESS,
                duration_ms=12,
            )
        )
    return {"db": db, "strategy_id": strategy.id, "job_id": job.id}
