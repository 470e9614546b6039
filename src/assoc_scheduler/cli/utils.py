"""
CLI utility helpers - output formatting, error reporting and runtime setup.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from assoc_scheduler.connection import create_connection
from assoc_scheduler.errors import SchedulerError
from assoc_scheduler.scheduling import APSchedulerEngine, SchedulerRuntime, create_scheduler
from assoc_scheduler.settings import SchedulerSettings

console = Console()
err_console = Console(stderr=True)


# ── Runtime helper ───────────────────────────────────────────────────────


@contextmanager
def open_runtime(database: str | None = None) -> Iterator[SchedulerRuntime]:
    """Yield a runtime over *database* with a paused, process-local engine.

    Registrations made here do not reach a running server; it picks up
    persisted changes at its next start (``sync_all``).
    """
    settings = SchedulerSettings()
    conn, _info = create_connection(database or settings.database_url, init_schema=True)
    engine = APSchedulerEngine(start_paused=True)
    runtime = create_scheduler(conn, settings=settings, engine=engine)
    engine.start()
    try:
        yield runtime
    finally:
        runtime.shutdown(wait=False)
        conn.close()


@contextmanager
def handle_errors() -> Iterator[None]:
    """Report ``SchedulerError`` in red and exit with status 1."""
    try:
        yield
    except SchedulerError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({type(exc).__name__}): {exc.message}")
        raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def output_items(
    items: list[Any],
    *,
    as_json: bool = False,
    title: str = "",
    columns: list[str] | None = None,
) -> None:
    """Render a list as a Rich table, or as JSON.

    *columns* picks the table columns (all fields when None); JSON output
    always carries every field.
    """
    if as_json:
        console.print_json(json.dumps([_to_dict(i) for i in items], default=str))
        return
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    names = columns or list(_to_dict(items[0]))
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in names:
        table.add_column(col, overflow="fold")
    for item in items:
        row = _to_dict(item)
        table.add_row(*(_cell(row.get(col)) for col in names))
    console.print(table)


def output_item(item: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a single object as key-value pairs, or as JSON."""
    data = _to_dict(item)
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {_cell(v)}")
