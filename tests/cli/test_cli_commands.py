"""Tests for the ``metals-spine`` CLI commands."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from metals_spine import __version__
from metals_spine.cli import app
from metals_spine.core.temporal import resolve_run_date

runner = CliRunner()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'store' / 'metals.db'}"


@pytest.fixture
def today():
    return resolve_run_date("America/Chicago")


@pytest.fixture
def csv_file(tmp_path, curve_csv, today):
    path = tmp_path / "curve.csv"
    path.write_text(curve_csv(today), encoding="utf-8")
    return path


@pytest.fixture
def invoke(db_url):
    """Run the CLI against the test store with logging kept off stdout."""

    def _invoke(*args: str):
        return runner.invoke(app, ["--database", db_url, "--log-level", "ERROR", *args])

    return _invoke


def _json(result):
    return json.loads(result.stdout)


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_invalid_log_level(self, db_url):
        result = runner.invoke(app, ["--database", db_url, "--log-level", "LOUD", "status"])
        assert result.exit_code == 1

    def test_unsupported_database_scheme(self):
        result = runner.invoke(app, ["--database", "mysql://h/db", "--log-level", "ERROR", "status"])
        assert result.exit_code == 1

    def test_database_from_environment(self, monkeypatch, db_url, csv_file):
        monkeypatch.setenv("METALS_DATABASE_URL", db_url)
        result = runner.invoke(app, ["--log-level", "ERROR", "ingest", "--file", str(csv_file), "--json"])
        assert result.exit_code == 0
        assert _json(result)["status"] == "success"


class TestDbInit:
    def test_init(self, invoke):
        result = invoke("db", "init", "--json")
        assert result.exit_code == 0
        assert _json(result) == {
            "ok": True,
            "tables": ["metals_curve_latest", "metals_curve_history", "metals_ingest_log"],
        }

    def test_init_is_idempotent(self, invoke):
        assert invoke("db", "init").exit_code == 0
        assert invoke("db", "init").exit_code == 0


class TestIngest:
    def test_success(self, invoke, csv_file, today):
        result = invoke("ingest", "--file", str(csv_file), "--json")
        assert result.exit_code == 0
        payload = _json(result)
        assert payload["ok"] is True
        assert payload["status"] == "success"
        assert payload["as_of_date"] == today
        assert payload["row_count"] == 6
        assert payload["trigger_source"] == "manual"

    def test_success_rich_output(self, invoke, csv_file):
        result = invoke("ingest", "--file", str(csv_file))
        assert result.exit_code == 0
        assert "SUCCESS" in result.stdout

    def test_manual_rerun_conflicts(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file))
        result = invoke("ingest", "--file", str(csv_file), "--json")
        assert result.exit_code == 2
        payload = _json(result)
        assert payload["status"] == "conflict"
        assert payload["reason"] == "history_exists_for_date"
        assert len(payload["existing_rows"]) == 6

    def test_conflict_rich_output_suggests_force(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file))
        result = invoke("ingest", "--file", str(csv_file))
        assert result.exit_code == 2
        assert "--force" in result.stdout

    def test_scheduled_rerun_skips(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file), "--source", "cron-daily")
        result = invoke("ingest", "--file", str(csv_file), "--source", "cron-daily", "--json")
        assert result.exit_code == 0
        payload = _json(result)
        assert payload["skipped"] is True
        assert payload["reason"] == "already_ingested_today"

    def test_force(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file))
        result = invoke("ingest", "--file", str(csv_file), "--force", "--json")
        assert result.exit_code == 0
        assert _json(result)["forced"] is True

    def test_date_mismatch_exits_1(self, invoke, tmp_path, curve_csv):
        path = tmp_path / "old.csv"
        path.write_text(curve_csv("2001-01-01"), encoding="utf-8")
        result = invoke("ingest", "--file", str(path), "--json")
        assert result.exit_code == 1
        assert _json(result)["reason"] == "date_mismatch"

    def test_no_source_configured(self, invoke):
        result = invoke("ingest", "--json")
        assert result.exit_code == 1
        assert _json(result)["reason"] == "source_not_configured"

    def test_file_and_url_are_exclusive(self, invoke, csv_file):
        result = invoke("ingest", "--file", str(csv_file), "--url", "https://example.com/c.csv")
        assert result.exit_code == 1

    def test_blank_source_rejected(self, invoke, csv_file):
        result = invoke("ingest", "--file", str(csv_file), "--source", " ")
        assert result.exit_code == 1


class TestStatus:
    def test_empty_store(self, invoke):
        result = invoke("status", "--json")
        assert result.exit_code == 0
        payload = _json(result)
        assert payload["as_of_date"] is None
        assert payload["total_rows"] == 0

    def test_after_ingest(self, invoke, csv_file, today):
        invoke("ingest", "--file", str(csv_file))
        payload = _json(invoke("status", "--json"))
        assert payload["as_of_date"] == today
        assert payload["per_metal"] == {"gold": 3, "silver": 3}
        assert payload["last_run"]["status"] == "success"

    def test_date_option(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file))
        payload = _json(invoke("status", "--date", "2000-01-01", "--json"))
        assert payload["as_of_date"] == "2000-01-01"
        assert payload["total_rows"] == 0

    def test_invalid_date(self, invoke):
        result = invoke("status", "--date", "01/02/2024")
        assert result.exit_code == 2


class TestRuns:
    def test_list_and_filter(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file))
        invoke("ingest", "--file", str(csv_file))

        runs = _json(invoke("runs", "list", "--json"))
        assert [r["status"] for r in runs] == ["skipped", "success"]

        only_success = _json(invoke("runs", "list", "--status", "SUCCESS", "--json"))
        assert len(only_success) == 1

        limited = _json(invoke("runs", "list", "--limit", "1", "--json"))
        assert len(limited) == 1

    def test_list_table(self, invoke, csv_file):
        invoke("ingest", "--file", str(csv_file))
        result = invoke("runs", "list")
        assert result.exit_code == 0
        assert "success" in result.stdout

    def test_show(self, invoke, csv_file):
        run_id = _json(invoke("ingest", "--file", str(csv_file), "--json"))["run_id"]
        result = invoke("runs", "show", run_id, "--json")
        assert result.exit_code == 0
        payload = _json(result)
        assert payload["id"] == run_id
        assert payload["detail"]["source"] == "curve.csv"

    def test_show_missing(self, invoke):
        assert invoke("runs", "show", "nope").exit_code == 1


class TestHealth:
    def test_healthy_after_init(self, invoke):
        invoke("db", "init")
        result = invoke("health", "--json")
        assert result.exit_code == 0
        payload = _json(result)
        assert payload["ok"] is True
        assert payload["tables"]["metals_ingest_log"] == 0

    def test_uninitialised_store_is_unhealthy(self, invoke):
        result = invoke("health")
        assert result.exit_code == 1
        assert "missing" in result.stdout
