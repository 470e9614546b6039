"""Execution log store.

Append-only record of every firing.  ``ExecutionLogRepository.append``
commits on its own connection so a log row survives whatever happens to
the firing's other writes; hand it a dedicated connection (see
``create_scheduler(log_conn=...)``) for full isolation on file databases.

Queries always return newest scheduled fire time first.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from assoc_scheduler.errors import UnknownReferenceError
from assoc_scheduler.logging import get_logger
from assoc_scheduler.models import ExecutionStatus, JobExecutionLog
from assoc_scheduler.protocols import Connection

from .repository import JobRepository

logger = get_logger(__name__)


def _iso(value: datetime) -> str:
    """UTC ISO-8601 text, so stored values compare correctly as strings."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


class ExecutionLogRepository:
    """Repository for ``sch_job_execution_log``."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def append(self, entry: JobExecutionLog) -> JobExecutionLog:
        try:
            cursor = self.conn.execute(
                """
                INSERT INTO sch_job_execution_log (
                    job_id, strategy_id, scheduled_fire_time, actual_fire_time,
                    finished_time, status, error_message, retry_count, duration_ms
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.job_id,
                    entry.strategy_id,
                    _iso(entry.scheduled_fire_time),
                    _iso(entry.actual_fire_time),
                    _iso(entry.finished_time),
                    ExecutionStatus(entry.status).value,
                    entry.error_message,
                    entry.retry_count,
                    entry.duration_ms,
                ),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get(cursor.lastrowid)  # type: ignore[return-value]

    def get(self, log_id: int) -> JobExecutionLog | None:
        cursor = self.conn.execute(
            "SELECT * FROM sch_job_execution_log WHERE id = ?",
            (log_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_log(row)

    def query(
        self,
        job_id: int | None = None,
        status: ExecutionStatus | str | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        limit: int | None = None,
    ) -> list[JobExecutionLog]:
        """List log rows matching every given filter.

        The time window applies to ``scheduled_fire_time`` and is inclusive
        on both ends.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if job_id is not None:
            conditions.append("job_id = ?")
            params.append(job_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(ExecutionStatus(status).value)
        if start_time is not None:
            conditions.append("scheduled_fire_time >= ?")
            params.append(_iso(start_time))
        if end_time is not None:
            conditions.append("scheduled_fire_time <= ?")
            params.append(_iso(end_time))

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"SELECT * FROM sch_job_execution_log {where} ORDER BY scheduled_fire_time DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        cursor = self.conn.execute(sql, params)
        return [self._row_to_log(row) for row in cursor.fetchall()]

    def count(self, job_id: int | None = None, status: ExecutionStatus | str | None = None) -> int:
        conditions: list[str] = []
        params: list[Any] = []
        if job_id is not None:
            conditions.append("job_id = ?")
            params.append(job_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(ExecutionStatus(status).value)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        cursor = self.conn.execute(f"SELECT COUNT(*) FROM sch_job_execution_log {where}", params)
        return cursor.fetchone()[0]

    @staticmethod
    def _row_to_log(row: Any) -> JobExecutionLog:
        return JobExecutionLog(
            id=row["id"],
            job_id=row["job_id"],
            strategy_id=row["strategy_id"],
            scheduled_fire_time=datetime.fromisoformat(row["scheduled_fire_time"]),
            actual_fire_time=datetime.fromisoformat(row["actual_fire_time"]),
            finished_time=datetime.fromisoformat(row["finished_time"]),
            status=ExecutionStatus(row["status"]),
            error_message=row["error_message"],
            retry_count=row["retry_count"],
            duration_ms=row["duration_ms"],
        )


class ExecutionLogService:
    """Read side of the execution log.

    A job id that matches no job is an error rather than an empty result,
    so callers can tell "no such job" from "no history yet".
    """

    def __init__(self, logs: ExecutionLogRepository, jobs: JobRepository) -> None:
        self.logs = logs
        self.jobs = jobs

    def list_logs(
        self,
        job_id: int | None = None,
        status: ExecutionStatus | str | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        limit: int | None = None,
    ) -> list[JobExecutionLog]:
        if job_id is not None and not self.jobs.exists(job_id):
            raise UnknownReferenceError("job", job_id)
        return self.logs.query(
            job_id=job_id,
            status=status,
            start_time=start_time,
            end_time=end_time,
            limit=limit,
        )

    def record(self, entry: JobExecutionLog) -> JobExecutionLog:
        saved = self.logs.append(entry)
        logger.info(
            "execution_logged",
            log_id=saved.id,
            job_id=saved.job_id,
            status=saved.status.value,
            retry_count=saved.retry_count,
            duration_ms=saved.duration_ms,
        )
        return saved
