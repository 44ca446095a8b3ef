"""Tests for the transactional curve writer."""

from __future__ import annotations

import sqlite3
from decimal import Decimal

import pytest

from metals_spine.core.errors import TransactionFailure
from metals_spine.domains.metals_curve.audit import IngestRun, IngestRunLog
from metals_spine.domains.metals_curve.connector import CurveRow
from metals_spine.domains.metals_curve.schema import (
    TABLE_HISTORY,
    TABLE_INGEST_LOG,
    TABLE_LATEST,
    RunStatus,
)
from metals_spine.domains.metals_curve.writer import CurveWriter


def _batch(as_of_date, prices):
    return [CurveRow(as_of_date, metal, tenor, Decimal(price)) for (metal, tenor), price in prices.items()]


def _latest(conn):
    conn.execute(f"SELECT metal, tenor_months, as_of_date, price FROM {TABLE_LATEST} ORDER BY metal, tenor_months")
    return [tuple(row) for row in conn.fetchall()]


class TestCurveWriter:
    def test_first_write(self, conn, clock, count_rows):
        rows = _batch("2024-01-02", {("gold", 0): "2050.10", ("gold", 3): "2071.45"})

        result = CurveWriter(conn, clock).write(rows, "2024-01-02")

        assert result.row_count == 2
        assert result.history_purged == 0
        assert result.latest_cleared == 0
        assert result.written_at == "2024-01-02T15:00:00.000000+00:00"
        assert _latest(conn) == [("gold", 0, "2024-01-02", "2050.10"), ("gold", 3, "2024-01-02", "2071.45")]
        assert count_rows(conn, TABLE_HISTORY) == 2

    def test_newer_batch_replaces_latest_and_appends_history(self, conn, clock, count_rows):
        writer = CurveWriter(conn, clock)
        writer.write(_batch("2024-01-01", {("gold", 0): "2040", ("gold", 3): "2060"}), "2024-01-01")
        writer.write(_batch("2024-01-02", {("gold", 0): "2050", ("silver", 0): "23"}), "2024-01-02")

        latest = _latest(conn)
        # gold/3 was not in the new batch and keeps its older value
        assert latest == [
            ("gold", 0, "2024-01-02", "2050"),
            ("gold", 3, "2024-01-01", "2060"),
            ("silver", 0, "2024-01-02", "23"),
        ]
        assert count_rows(conn, TABLE_HISTORY) == 4

    def test_same_date_rewrite_clears_latest_for_date(self, conn, clock):
        writer = CurveWriter(conn, clock)
        writer.write(_batch("2024-01-02", {("gold", 0): "1", ("gold", 3): "2"}), "2024-01-02")

        result = writer.write(_batch("2024-01-02", {("gold", 0): "5"}), "2024-01-02", purge_history=True)

        assert result.latest_cleared == 2
        assert result.history_purged == 2
        assert _latest(conn) == [("gold", 0, "2024-01-02", "5")]

    def test_purge_limited_to_sheet_date(self, conn, clock, count_rows):
        writer = CurveWriter(conn, clock)
        writer.write(_batch("2024-01-01", {("gold", 0): "1"}), "2024-01-01")
        writer.write(_batch("2024-01-02", {("gold", 0): "2"}), "2024-01-02")

        writer.write(_batch("2024-01-02", {("gold", 0): "3"}), "2024-01-02", purge_history=True)

        conn.execute(f"SELECT as_of_date, price FROM {TABLE_HISTORY} ORDER BY as_of_date")
        assert [tuple(r) for r in conn.fetchall()] == [("2024-01-01", "1"), ("2024-01-02", "3")]

    def test_audit_written_in_same_transaction(self, conn, clock):
        record = IngestRun(
            id="run-1",
            run_date="2024-01-02",
            trigger_source="manual",
            status=RunStatus.SUCCESS,
            run_timestamp="2024-01-02T15:00:00.000000+00:00",
            row_count=1,
        )
        CurveWriter(conn, clock).write(_batch("2024-01-02", {("gold", 0): "1"}), "2024-01-02", audit=record)
        conn.rollback()
        assert IngestRunLog(conn).get("run-1") == record

    def test_stray_dates_rejected(self, conn, clock, count_rows):
        rows = _batch("2024-01-01", {("gold", 0): "1"})
        with pytest.raises(ValueError, match="2024-01-01"):
            CurveWriter(conn, clock).write(rows, "2024-01-02")
        assert count_rows(conn, TABLE_LATEST) == 0

    def test_failure_rolls_back_everything(self, conn, clock, count_rows):
        writer = CurveWriter(conn, clock)
        writer.write(_batch("2024-01-02", {("gold", 0): "1"}), "2024-01-02")
        record = IngestRun(
            id="run-2",
            run_date="2024-01-02",
            trigger_source="manual",
            status=RunStatus.SUCCESS,
            run_timestamp="2024-01-02T15:00:05.000000+00:00",
        )
        # The latest upsert absorbs a repeated key; the history UNIQUE constraint does not
        duplicate = _batch("2024-01-02", {("gold", 0): "7"}) * 2

        with pytest.raises(TransactionFailure) as excinfo:
            writer.write(duplicate, "2024-01-02", purge_history=True, audit=record)

        assert isinstance(excinfo.value.cause, sqlite3.IntegrityError)
        assert excinfo.value.details()["error_type"] == "IntegrityError"
        assert excinfo.value.sheet_date == "2024-01-02"
        assert _latest(conn) == [("gold", 0, "2024-01-02", "1")]
        assert count_rows(conn, TABLE_HISTORY) == 1
        assert count_rows(conn, TABLE_INGEST_LOG) == 0
