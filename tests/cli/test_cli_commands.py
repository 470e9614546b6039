"""Tests for the ``assoc-scheduler`` CLI commands."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from assoc_scheduler.cli import app

runner = CliRunner(env={"COLUMNS": "200"})


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestRoot:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "strategy" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "assoc-scheduler" in result.output


class TestDb:
    def test_init(self, db, tmp_path):
        data = _json(runner.invoke(app, ["db", "init", "--database", db, "--json"]))
        assert data["backend"] == "sqlite"
        assert {"strategies", "excluded_dates", "jobs", "execution_logs"} <= set(data["applied"])
        assert (tmp_path / "cli.db").exists()

    def test_init_is_idempotent(self, db):
        runner.invoke(app, ["db", "init", "--database", db])
        result = runner.invoke(app, ["db", "init", "--database", db])
        assert result.exit_code == 0
        assert "Database initialised" in result.output


class TestStrategy:
    def test_list(self, seeded):
        data = _json(runner.invoke(app, ["strategy", "list", "--database", seeded["db"], "--json"]))
        assert [(s["name"], s["cron_expression"]) for s in data] == [("every-5-min", "0 0/5 * * * ?")]

    def test_list_table(self, seeded):
        result = runner.invoke(app, ["strategy", "list", "--database", seeded["db"]])
        assert result.exit_code == 0
        assert "every-5-min" in result.output

    def test_list_table_fits_a_standard_terminal(self, seeded):
        narrow = CliRunner(env={"COLUMNS": "80"})
        result = narrow.invoke(app, ["strategy", "list", "--database", seeded["db"]])
        assert result.exit_code == 0
        assert "every-5-min" in result.output
        assert "0 0/5 * * * ?" in result.output
        assert "interval_seconds" not in result.output

    def test_show(self, seeded):
        result = runner.invoke(app, ["strategy", "show", str(seeded["strategy_id"]), "-d", seeded["db"], "--json"])
        assert _json(result)["interval_seconds"] == 300

    def test_show_unknown(self, seeded):
        result = runner.invoke(app, ["strategy", "show", "999", "-d", seeded["db"]])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestJob:
    def test_list(self, seeded):
        data = _json(runner.invoke(app, ["job", "list", "-d", seeded["db"], "--json"]))
        assert [(j["id"], j["enabled"]) for j in data] == [(seeded["job_id"], True)]

    def test_disable_persists(self, seeded):
        job_id = str(seeded["job_id"])
        data = _json(runner.invoke(app, ["job", "disable", job_id, "-d", seeded["db"], "--json"]))
        assert data["enabled"] is False

        listed = _json(runner.invoke(app, ["job", "list", "-d", seeded["db"], "--json"]))
        assert listed[0]["enabled"] is False

        data = _json(runner.invoke(app, ["job", "enable", job_id, "-d", seeded["db"], "--json"]))
        assert data["enabled"] is True

    def test_list_table(self, seeded):
        result = CliRunner(env={"COLUMNS": "80"}).invoke(app, ["job", "list", "-d", seeded["db"]])
        assert result.exit_code == 0
        assert "ping" in result.output
        assert "job_config" not in result.output

    def test_enable_unknown(self, seeded):
        result = runner.invoke(app, ["job", "enable", "999", "-d", seeded["db"]])
        assert result.exit_code == 1


class TestLogs:
    def test_list(self, seeded):
        data = _json(runner.invoke(app, ["logs", "--job-id", str(seeded["job_id"]), "-d", seeded["db"], "--json"]))
        assert [(entry["status"], entry["duration_ms"]) for entry in data] == [("SUCCESS", 12)]

    def test_status_filter(self, seeded):
        data = _json(runner.invoke(app, ["logs", "--status", "failed", "-d", seeded["db"], "--json"]))
        assert data == []

    def test_unknown_job(self, seeded):
        result = runner.invoke(app, ["logs", "--job-id", "999", "-d", seeded["db"]])
        assert result.exit_code == 1
        assert "job not found: 999" in result.output
