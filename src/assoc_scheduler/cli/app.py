"""
Root Typer application for the assoc-scheduler CLI.

    assoc-scheduler db init
    assoc-scheduler strategy list|show
    assoc-scheduler job list|enable|disable
    assoc-scheduler logs [--job-id N] [--status FAILED] [--since ...] [--until ...]
    assoc-scheduler serve
"""

from __future__ import annotations

from datetime import datetime

import typer
from typer import Typer

from assoc_scheduler.cli.db import app as db_app
from assoc_scheduler.cli.job import app as job_app
from assoc_scheduler.cli.serve import serve
from assoc_scheduler.cli.strategy import app as strategy_app
from assoc_scheduler.cli.utils import handle_errors, open_runtime, output_items
from assoc_scheduler.models import ExecutionStatus

LOG_COLUMNS = [
    "id",
    "job_id",
    "status",
    "scheduled_fire_time",
    "retry_count",
    "duration_ms",
    "error_message",
]

app = Typer(
    name="assoc-scheduler",
    help="assoc-scheduler - schedule strategies, jobs and execution logs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("assoc-scheduler")
        except PackageNotFoundError:
            v = "0.3.0"
        typer.echo(f"assoc-scheduler {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for CLI commands"),
) -> None:
    """assoc-scheduler CLI - manage strategies, jobs and execution logs."""
    from assoc_scheduler.logging import configure_logging

    configure_logging(level=log_level, json_format=False)


@app.command("logs")
def list_logs(
    job_id: int | None = typer.Option(None, "--job-id", "-j", help="Only logs of this job"),
    status: ExecutionStatus | None = typer.Option(None, "--status", "-s", case_sensitive=False),
    since: datetime | None = typer.Option(None, "--since", help="Scheduled at or after"),
    until: datetime | None = typer.Option(None, "--until", help="Scheduled at or before"),
    limit: int | None = typer.Option(50, "--limit", "-n"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List execution logs, newest first."""
    with handle_errors(), open_runtime(database) as runtime:
        logs = runtime.logs.list_logs(
            job_id=job_id,
            status=status,
            start_time=since,
            end_time=until,
            limit=limit,
        )
        output_items(logs, as_json=json_out, title="Execution logs", columns=LOG_COLUMNS)


app.command("serve")(serve)

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(strategy_app, name="strategy", help="Schedule strategies.")
app.add_typer(job_app, name="job", help="Scheduler jobs.")
