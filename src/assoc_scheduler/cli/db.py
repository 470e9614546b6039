"""
CLI: ``assoc-scheduler db`` - database management commands.
"""

from __future__ import annotations

import typer

from assoc_scheduler.cli.utils import console, output_item

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Initialise database schema (create tables)."""
    from assoc_scheduler.connection import create_connection
    from assoc_scheduler.schema import create_tables
    from assoc_scheduler.settings import SchedulerSettings

    conn, info = create_connection(database or SchedulerSettings().database_url)
    try:
        applied = create_tables(conn)
    finally:
        conn.close()
    if not json_out:
        console.print("[bold green]Database initialised[/bold green]")
    output_item(
        {"backend": info.backend, "path": info.resolved_path or info.url, "applied": applied},
        as_json=json_out,
    )
