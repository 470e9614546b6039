"""Database connection factory and SQLite adapter.

``create_connection()`` is the one place that knows how to turn a URL
into a connection.  Repositories only see the ``Connection`` protocol.

Supported URLs:

- ``None`` / ``"memory"`` / ``":memory:"``: in-memory SQLite
- ``"sqlite:///path/to/file.db"``: file-based SQLite
- ``"path/to/file.db"``: bare path, treated as SQLite file

Usage::

    conn, info = create_connection("sqlite:///scheduler.db", init_schema=True)
    if info.persistent:
        log_conn, _ = create_connection(info.url)
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from assoc_scheduler.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    persistent: bool
    url: str
    resolved_path: str | None = None


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    The connection is opened with ``check_same_thread=False`` because
    trigger-engine callbacks run on engine worker threads.  Statement
    execution is serialized with a lock and every ``execute`` returns a
    fresh cursor, so concurrent callers never read each other's rows.
    """

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.RLock()
        self.path = path

    def execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._conn.execute(sql, params)

    def executemany(self, sql: str, params: list[tuple]) -> sqlite3.Cursor:
        with self._lock:
            return self._conn.executemany(sql, params)

    def executescript(self, script: str) -> None:
        with self._lock:
            self._conn.executescript(script)

    def commit(self) -> None:
        with self._lock:
            self._conn.commit()

    def rollback(self) -> None:
        with self._lock:
            self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"


def _parse_url(db: str | None) -> str:
    """Return the SQLite target (a path or ``:memory:``) for *db*."""
    if db is None or db in ("", "memory", ":memory:"):
        return ":memory:"
    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            return db[len(prefix):] or ":memory:"
    if "://" in db:
        raise ValueError(f"Unsupported database URL: {db!r} (only SQLite is supported)")
    return db


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
) -> tuple[SqliteConnection, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Args:
        db: Database URL or path (see module docstring)
        init_schema: Create scheduler tables if missing (idempotent)

    Returns:
        (connection, info) tuple
    """
    target = _parse_url(db)

    if target == ":memory:":
        conn = SqliteConnection(":memory:")
        info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
    else:
        path = Path(target).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = str(path.resolve())
        conn = SqliteConnection(resolved)
        info = ConnectionInfo(
            backend="sqlite",
            persistent=True,
            url=db or target,
            resolved_path=resolved,
        )

    if init_schema:
        from assoc_scheduler.schema import create_tables

        create_tables(conn)

    logger.debug("connection_opened", backend=info.backend, persistent=info.persistent)
    return conn, info
