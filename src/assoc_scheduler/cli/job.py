"""
CLI: ``assoc-scheduler job`` - job commands.
"""

from __future__ import annotations

import typer

from assoc_scheduler.cli.utils import console, handle_errors, open_runtime, output_item, output_items

app = typer.Typer(no_args_is_help=True)

JOB_COLUMNS = ["id", "name", "job_type", "schedule_strategy_id", "enabled"]


@app.command("list")
def list_jobs(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List scheduler jobs."""
    with handle_errors(), open_runtime(database) as runtime:
        output_items(runtime.jobs.list_jobs(), as_json=json_out, title="Jobs", columns=JOB_COLUMNS)


@app.command("enable")
def enable_job(
    job_id: int = typer.Argument(..., help="Job ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Enable a job (a running server registers it at its next start)."""
    with handle_errors(), open_runtime(database) as runtime:
        job = runtime.jobs.enable_job(job_id)
        if not json_out:
            console.print(f"[green]Job {job_id} enabled[/green]")
        output_item(job, as_json=json_out)


@app.command("disable")
def disable_job(
    job_id: int = typer.Argument(..., help="Job ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Disable a job.  Firings of a disabled job are logged as SKIPPED."""
    with handle_errors(), open_runtime(database) as runtime:
        job = runtime.jobs.disable_job(job_id)
        if not json_out:
            console.print(f"[yellow]Job {job_id} disabled[/yellow]")
        output_item(job, as_json=json_out)
