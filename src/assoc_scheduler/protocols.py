"""Database connection protocol.

Repositories depend on this shape, not on ``sqlite3`` directly, so any
DB-API style adapter (SQLite today, a SQLAlchemy bridge tomorrow) can be
dropped in.

Guardrails:
    ❌ DON'T: Duplicate Connection(Protocol) in other modules
    ✅ DO: Import from assoc_scheduler.protocols
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous DB connection contract.

    ``execute`` returns a cursor-like object exposing ``fetchone``,
    ``fetchall``, ``rowcount`` and ``lastrowid``.
    """

    def execute(self, sql: str, params: tuple | list = ()) -> Any:
        """Execute a statement and return its cursor."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute a statement once per parameter tuple."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the current transaction."""
        ...
