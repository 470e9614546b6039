"""Scheduler repositories - CRUD over the strategy, excluded-date and job tables.

Manifesto:
    Persistence is a pure data concern.  Services decide *when* to write
    and what the writes mean; repositories only translate between rows and
    dataclasses.  Every write commits immediately.

┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULER REPOSITORIES                                                       │
│                                                                               │
│   StrategyRepository              ExcludedDateRepository                      │
│   ├── create(strategy)            ├── list_for(strategy_id)                  │
│   ├── get(id)                     ├── replace(strategy_id, dates)            │
│   ├── update(strategy)            └── delete_for(strategy_id)                │
│   ├── delete(id)                                                              │
│   └── list_all()                  JobRepository                              │
│                                   ├── create(job) / get(id) / update(job)    │
│                                   ├── delete(id) / list_all()                │
│                                   ├── list_by_strategy(strategy_id)          │
│                                   ├── count_by_strategy(strategy_id)         │
│                                   └── set_enabled(id, enabled)               │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    scheduling, repository, CRUD, sqlite

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, time
from typing import Any

from assoc_scheduler.models import (
    EXCLUDED_REASON,
    ScheduleExcludedDate,
    ScheduleStrategy,
    SchedulerJob,
    ScheduleType,
)
from assoc_scheduler.protocols import Connection


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _parse_time(value: str | None) -> time | None:
    if not value:
        return None
    return time.fromisoformat(value)


def _format_time(value: time | None) -> str | None:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# sch_schedule_strategy
# ---------------------------------------------------------------------------


class StrategyRepository:
    """Repository for ``sch_schedule_strategy``.

    Example:
        >>> repo = StrategyRepository(conn)
        >>> saved = repo.create(ScheduleStrategy(
        ...     name="nightly",
        ...     schedule_type=ScheduleType.DAILY,
        ...     cron_expression="0 30 2 * * ?",
        ...     start_time=time(2, 30),
        ... ))
        >>> repo.get(saved.id).cron_expression
        '0 30 2 * * ?'
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, strategy: ScheduleStrategy) -> ScheduleStrategy:
        now = _now()
        cursor = self.conn.execute(
            """
            INSERT INTO sch_schedule_strategy (
                name, description, schedule_type, cron_expression,
                start_time, end_time, time_zone, interval_seconds, days_of_week,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                strategy.name,
                strategy.description,
                _enum_value(strategy.schedule_type),
                strategy.cron_expression,
                _format_time(strategy.start_time),
                _format_time(strategy.end_time),
                strategy.time_zone,
                strategy.interval_seconds,
                strategy.days_of_week,
                now,
                now,
            ),
        )
        self.conn.commit()
        return self.get(cursor.lastrowid)  # type: ignore[return-value]

    def get(self, strategy_id: int) -> ScheduleStrategy | None:
        cursor = self.conn.execute(
            "SELECT * FROM sch_schedule_strategy WHERE id = ?",
            (strategy_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_strategy(row)

    def update(self, strategy: ScheduleStrategy) -> ScheduleStrategy | None:
        """Overwrite every mutable column of the strategy row.

        Returns:
            Updated strategy, or None if the id does not exist
        """
        cursor = self.conn.execute(
            """
            UPDATE sch_schedule_strategy SET
                name = ?, description = ?, schedule_type = ?, cron_expression = ?,
                start_time = ?, end_time = ?, time_zone = ?, interval_seconds = ?,
                days_of_week = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                strategy.name,
                strategy.description,
                _enum_value(strategy.schedule_type),
                strategy.cron_expression,
                _format_time(strategy.start_time),
                _format_time(strategy.end_time),
                strategy.time_zone,
                strategy.interval_seconds,
                strategy.days_of_week,
                _now(),
                strategy.id,
            ),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            return None
        return self.get(strategy.id)  # type: ignore[arg-type]

    def delete(self, strategy_id: int) -> bool:
        cursor = self.conn.execute(
            "DELETE FROM sch_schedule_strategy WHERE id = ?",
            (strategy_id,),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def list_all(self) -> list[ScheduleStrategy]:
        cursor = self.conn.execute("SELECT * FROM sch_schedule_strategy ORDER BY id")
        return [self._row_to_strategy(row) for row in cursor.fetchall()]

    def exists(self, strategy_id: int) -> bool:
        cursor = self.conn.execute(
            "SELECT 1 FROM sch_schedule_strategy WHERE id = ?",
            (strategy_id,),
        )
        return cursor.fetchone() is not None

    @staticmethod
    def _row_to_strategy(row: Any) -> ScheduleStrategy:
        return ScheduleStrategy(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            schedule_type=ScheduleType(row["schedule_type"]),
            cron_expression=row["cron_expression"],
            start_time=_parse_time(row["start_time"]),
            end_time=_parse_time(row["end_time"]),
            time_zone=row["time_zone"],
            interval_seconds=row["interval_seconds"],
            days_of_week=row["days_of_week"],
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )


# ---------------------------------------------------------------------------
# sch_schedule_excluded_date
# ---------------------------------------------------------------------------


class ExcludedDateRepository:
    """Repository for ``sch_schedule_excluded_date``.

    The set for one strategy is only ever replaced as a whole.
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def list_for(self, strategy_id: int) -> list[ScheduleExcludedDate]:
        cursor = self.conn.execute(
            """
            SELECT * FROM sch_schedule_excluded_date
            WHERE strategy_id = ?
            ORDER BY excluded_date
            """,
            (strategy_id,),
        )
        return [
            ScheduleExcludedDate(
                id=row["id"],
                strategy_id=row["strategy_id"],
                excluded_date=date.fromisoformat(row["excluded_date"]),
                reason=row["reason"] or EXCLUDED_REASON,
            )
            for row in cursor.fetchall()
        ]

    def contains(self, strategy_id: int, day: date) -> bool:
        cursor = self.conn.execute(
            """
            SELECT 1 FROM sch_schedule_excluded_date
            WHERE strategy_id = ? AND excluded_date = ?
            """,
            (strategy_id, day.isoformat()),
        )
        return cursor.fetchone() is not None

    def replace(
        self,
        strategy_id: int,
        dates: Iterable[date] | None,
        reason: str = EXCLUDED_REASON,
    ) -> int:
        """Delete every row for *strategy_id*, then insert the distinct *dates*.

        Returns:
            Number of rows inserted
        """
        distinct = sorted(set(dates or ()))
        try:
            self.conn.execute(
                "DELETE FROM sch_schedule_excluded_date WHERE strategy_id = ?",
                (strategy_id,),
            )
            if distinct:
                self.conn.executemany(
                    """
                    INSERT INTO sch_schedule_excluded_date (strategy_id, excluded_date, reason)
                    VALUES (?, ?, ?)
                    """,
                    [(strategy_id, day.isoformat(), reason) for day in distinct],
                )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return len(distinct)

    def delete_for(self, strategy_id: int) -> int:
        cursor = self.conn.execute(
            "DELETE FROM sch_schedule_excluded_date WHERE strategy_id = ?",
            (strategy_id,),
        )
        self.conn.commit()
        return cursor.rowcount


# ---------------------------------------------------------------------------
# sch_job
# ---------------------------------------------------------------------------


class JobRepository:
    """Repository for ``sch_job``."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, job: SchedulerJob) -> SchedulerJob:
        now = _now()
        cursor = self.conn.execute(
            """
            INSERT INTO sch_job (
                name, description, job_type, job_config, schedule_strategy_id,
                precondition_config, enabled, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                job.name,
                job.description,
                job.job_type,
                job.job_config or "{}",
                job.schedule_strategy_id,
                job.precondition_config,
                1 if job.enabled else 0,
                now,
                now,
            ),
        )
        self.conn.commit()
        return self.get(cursor.lastrowid)  # type: ignore[return-value]

    def get(self, job_id: int) -> SchedulerJob | None:
        cursor = self.conn.execute("SELECT * FROM sch_job WHERE id = ?", (job_id,))
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_job(row)

    def update(self, job: SchedulerJob) -> SchedulerJob | None:
        """Full-field overwrite of the job row."""
        cursor = self.conn.execute(
            """
            UPDATE sch_job SET
                name = ?, description = ?, job_type = ?, job_config = ?,
                schedule_strategy_id = ?, precondition_config = ?, enabled = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                job.name,
                job.description,
                job.job_type,
                job.job_config or "{}",
                job.schedule_strategy_id,
                job.precondition_config,
                1 if job.enabled else 0,
                _now(),
                job.id,
            ),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            return None
        return self.get(job.id)  # type: ignore[arg-type]

    def set_enabled(self, job_id: int, enabled: bool) -> SchedulerJob | None:
        cursor = self.conn.execute(
            "UPDATE sch_job SET enabled = ?, updated_at = ? WHERE id = ?",
            (1 if enabled else 0, _now(), job_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            return None
        return self.get(job_id)

    def delete(self, job_id: int) -> bool:
        cursor = self.conn.execute("DELETE FROM sch_job WHERE id = ?", (job_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def list_all(self) -> list[SchedulerJob]:
        cursor = self.conn.execute("SELECT * FROM sch_job ORDER BY id")
        return [self._row_to_job(row) for row in cursor.fetchall()]

    def list_by_strategy(self, strategy_id: int) -> list[SchedulerJob]:
        cursor = self.conn.execute(
            "SELECT * FROM sch_job WHERE schedule_strategy_id = ? ORDER BY id",
            (strategy_id,),
        )
        return [self._row_to_job(row) for row in cursor.fetchall()]

    def count_by_strategy(self, strategy_id: int) -> int:
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM sch_job WHERE schedule_strategy_id = ?",
            (strategy_id,),
        )
        return cursor.fetchone()[0]

    def exists(self, job_id: int) -> bool:
        cursor = self.conn.execute("SELECT 1 FROM sch_job WHERE id = ?", (job_id,))
        return cursor.fetchone() is not None

    @staticmethod
    def _row_to_job(row: Any) -> SchedulerJob:
        return SchedulerJob(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            job_type=row["job_type"],
            job_config=row["job_config"],
            schedule_strategy_id=row["schedule_strategy_id"],
            precondition_config=row["precondition_config"],
            enabled=bool(row["enabled"]),
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, ScheduleType) else value
