"""Tests for the ingest audit trail."""

from __future__ import annotations

import sqlite3

import pytest

from metals_spine.domains.metals_curve.audit import IngestRun, IngestRunLog, encode_detail
from metals_spine.domains.metals_curve.schema import RunStatus


def _run(run_id, second, status=RunStatus.SUCCESS, run_date="2024-01-02", **kwargs):
    return IngestRun(
        id=run_id,
        run_date=run_date,
        trigger_source=kwargs.pop("trigger_source", "manual"),
        status=status,
        run_timestamp=f"2024-01-02T15:00:{second:02d}.000000+00:00",
        **kwargs,
    )


@pytest.fixture
def runs(conn):
    log = IngestRunLog(conn)
    log.record(_run("a", 1, RunStatus.ERROR, reason="date_mismatch", detail='{"sheet_date": "2024-01-01"}'))
    log.record(_run("b", 2, RunStatus.SUCCESS, row_count=6, dropped_count=1, forced=True))
    log.record(_run("c", 3, RunStatus.SKIPPED, run_date="2024-01-03", reason="already_ingested_today"))
    conn.commit()
    return log


class TestEncodeDetail:
    def test_dict_is_sorted_json(self):
        assert encode_detail({"b": 1, "a": [1, 2]}) == '{"a": [1, 2], "b": 1}'

    def test_empty_is_none(self):
        assert encode_detail(None) is None
        assert encode_detail({}) is None

    def test_text_passthrough(self):
        assert encode_detail("plain") == "plain"


class TestIngestRun:
    def test_detail_dict(self):
        assert _run("x", 0, detail='{"k": 1}').detail_dict() == {"k": 1}
        assert _run("x", 0, detail="oops").detail_dict() == {"message": "oops"}
        assert _run("x", 0, detail="[1]").detail_dict() == {"message": "[1]"}
        assert _run("x", 0).detail_dict() == {}

    def test_to_dict(self):
        data = _run("x", 0, forced=True).to_dict()
        assert data["status"] == "success"
        assert data["forced"] is True


class TestIngestRunLog:
    def test_round_trip(self, runs):
        run = runs.get("b")
        assert run.status is RunStatus.SUCCESS
        assert run.row_count == 6
        assert run.dropped_count == 1
        assert run.forced is True

    def test_get_missing(self, runs):
        assert runs.get("nope") is None

    def test_recent_newest_first(self, runs):
        assert [r.id for r in runs.recent()] == ["c", "b", "a"]

    def test_recent_filters(self, runs):
        assert [r.id for r in runs.recent(run_date="2024-01-02")] == ["b", "a"]
        assert [r.id for r in runs.recent(status="error")] == ["a"]
        assert [r.id for r in runs.recent(status=RunStatus.SKIPPED)] == ["c"]
        assert [r.id for r in runs.recent(limit=1)] == ["c"]

    def test_latest_and_count(self, runs):
        assert runs.latest().id == "c"
        assert runs.count() == 3

    def test_has_success(self, runs):
        assert runs.has_success("2024-01-02")
        assert not runs.has_success("2024-01-03")

    def test_latest_on_empty_log(self, conn):
        assert IngestRunLog(conn).latest() is None

    def test_duplicate_id_rejected(self, runs, conn):
        with pytest.raises(sqlite3.IntegrityError):
            runs.record(_run("a", 9))
