"""Tests for create_connection() and the schema bootstrap."""

from __future__ import annotations

import pytest

from assoc_scheduler.connection import SqliteConnection, create_connection
from assoc_scheduler.protocols import Connection
from assoc_scheduler.schema import TABLES, create_tables


class TestCreateConnection:
    @pytest.mark.parametrize("url", [None, "", "memory", ":memory:", "sqlite://"])
    def test_in_memory(self, url):
        conn, info = create_connection(url)
        try:
            assert info.persistent is False
            assert info.url == ":memory:"
            assert isinstance(conn, SqliteConnection)
        finally:
            conn.close()

    def test_file_url_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "scheduler.db"
        conn, info = create_connection(f"sqlite:///{path}", init_schema=True)
        try:
            assert info.persistent is True
            assert info.resolved_path == str(path.resolve())
            assert path.exists()
        finally:
            conn.close()

    def test_bare_path(self, tmp_path):
        conn, info = create_connection(str(tmp_path / "bare.db"))
        conn.close()
        assert info.persistent is True

    def test_other_backends_rejected(self):
        with pytest.raises(ValueError, match="only SQLite"):
            create_connection("postgresql://localhost/scheduler")

    def test_satisfies_protocol(self):
        conn, _ = create_connection()
        try:
            assert isinstance(conn, Connection)
        finally:
            conn.close()


class TestSchema:
    def test_creates_all_tables(self, conn):
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        names = {row["name"] for row in rows}
        assert set(TABLES.values()) <= names

    def test_idempotent(self, conn):
        first = create_tables(conn)
        second = create_tables(conn)
        assert first == second

    def test_foreign_keys_enforced_for_jobs(self, conn):
        import sqlite3

        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO sch_job (name, job_type, job_config, schedule_strategy_id, enabled, created_at, updated_at)"
                " VALUES ('x', 'FAKE', '{}', 999, 1, '2026-01-01', '2026-01-01')"
            )
