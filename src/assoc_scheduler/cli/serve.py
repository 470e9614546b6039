"""
CLI: ``assoc-scheduler serve`` - start the API server with the scheduler.
"""

from __future__ import annotations

import typer

from assoc_scheduler.cli.utils import console


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the REST API and the trigger engine in one process.

    The engine lives in-process, so a single worker is always used.
    """
    import uvicorn

    from assoc_scheduler.settings import SchedulerSettings

    settings = SchedulerSettings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"[bold green]Starting assoc-scheduler API[/bold green] on {host}:{port}")
    uvicorn.run(
        "assoc_scheduler.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
        log_level=log_level,
    )
