"""
Scheduler table definitions.

Four tables back the scheduler:

- ``sch_schedule_strategy``: reusable WHEN definitions (derived cron kept in sync)
- ``sch_schedule_excluded_date``: blackout dates, owned by one strategy
- ``sch_job``: WHAT to run, bound to one strategy by id
- ``sch_job_execution_log``: append-only outcome of every firing

The execution log has no foreign key to ``sch_job``; log rows outlive
the job they describe.
"""

from __future__ import annotations

from assoc_scheduler.protocols import Connection

TABLES = {
    "strategies": "sch_schedule_strategy",
    "excluded_dates": "sch_schedule_excluded_date",
    "jobs": "sch_job",
    "execution_logs": "sch_job_execution_log",
}

SCHEDULER_DDL = {
    "strategies": """
        CREATE TABLE IF NOT EXISTS sch_schedule_strategy (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            schedule_type TEXT NOT NULL,
            cron_expression TEXT NOT NULL,
            start_time TEXT,
            end_time TEXT,
            time_zone TEXT,
            interval_seconds INTEGER,
            days_of_week TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """,
    "excluded_dates": """
        CREATE TABLE IF NOT EXISTS sch_schedule_excluded_date (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            strategy_id INTEGER NOT NULL REFERENCES sch_schedule_strategy(id),
            excluded_date TEXT NOT NULL,
            reason TEXT,
            UNIQUE (strategy_id, excluded_date)
        )
    """,
    "jobs": """
        CREATE TABLE IF NOT EXISTS sch_job (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            job_type TEXT NOT NULL,
            job_config TEXT NOT NULL DEFAULT '{}',
            schedule_strategy_id INTEGER NOT NULL REFERENCES sch_schedule_strategy(id),
            precondition_config TEXT,
            enabled INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """,
    "jobs_idx_strategy": """
        CREATE INDEX IF NOT EXISTS idx_sch_job_strategy
        ON sch_job(schedule_strategy_id)
    """,
    "execution_logs": """
        CREATE TABLE IF NOT EXISTS sch_job_execution_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_id INTEGER NOT NULL,
            strategy_id INTEGER,
            scheduled_fire_time TEXT NOT NULL,
            actual_fire_time TEXT NOT NULL,
            finished_time TEXT NOT NULL,
            status TEXT NOT NULL,
            error_message TEXT,
            retry_count INTEGER NOT NULL DEFAULT 0,
            duration_ms INTEGER NOT NULL DEFAULT 0
        )
    """,
    "execution_logs_idx_job": """
        CREATE INDEX IF NOT EXISTS idx_sch_log_job_scheduled
        ON sch_job_execution_log(job_id, scheduled_fire_time)
    """,
    "execution_logs_idx_status": """
        CREATE INDEX IF NOT EXISTS idx_sch_log_status
        ON sch_job_execution_log(status)
    """,
}


def create_tables(conn: Connection) -> list[str]:
    """Create all scheduler tables and indexes (idempotent).

    Returns:
        Names of the DDL statements applied
    """
    applied = []
    for name, ddl in SCHEDULER_DDL.items():
        conn.execute(ddl)
        applied.append(name)
    conn.commit()
    return applied
