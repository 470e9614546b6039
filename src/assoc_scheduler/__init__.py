"""
assoc-scheduler - job scheduling core for the association platform.

Turns declarative schedule strategies into recurring triggers on an
APScheduler engine, keeps job registrations in sync with the database,
and runs jobs with excluded-date checks, bounded retries and an
append-only execution log.

Quick start::

    from assoc_scheduler import create_connection, create_scheduler

    conn, _ = create_connection("sqlite:///scheduler.db", init_schema=True)
    runtime = create_scheduler(conn)
    runtime.start()

Packages:
    scheduling  strategies, job registry, execution, log store, engine
    handlers    HTTP, COMMAND and INTERNAL_SERVICE job handlers
    api         FastAPI app factory
    cli         Typer CLI (``assoc-scheduler``)
"""

from assoc_scheduler.connection import ConnectionInfo, SqliteConnection, create_connection
from assoc_scheduler.errors import (
    ConfigurationError,
    EngineError,
    ErrorCategory,
    HandlerNotFoundError,
    SchedulerError,
    StateError,
    UnknownReferenceError,
)
from assoc_scheduler.models import (
    ExecutionStatus,
    FiringContext,
    JobExecutionLog,
    JobType,
    ScheduleExcludedDate,
    ScheduleStrategy,
    SchedulerJob,
    ScheduleType,
)
from assoc_scheduler.scheduling import SchedulerRuntime, create_scheduler
from assoc_scheduler.settings import RetrySettings, SchedulerSettings

__version__ = "0.3.0"

__all__ = [
    "__version__",
    # Composition
    "create_connection",
    "create_scheduler",
    "SchedulerRuntime",
    "SqliteConnection",
    "ConnectionInfo",
    "SchedulerSettings",
    "RetrySettings",
    # Models
    "ScheduleType",
    "ExecutionStatus",
    "JobType",
    "ScheduleStrategy",
    "ScheduleExcludedDate",
    "SchedulerJob",
    "JobExecutionLog",
    "FiringContext",
    # Errors
    "ErrorCategory",
    "SchedulerError",
    "ConfigurationError",
    "UnknownReferenceError",
    "StateError",
    "HandlerNotFoundError",
    "EngineError",
]
