"""
Audit trail for curve ingest runs.

Every invocation of the ingest pipeline writes exactly one
``metals_ingest_log`` record, whatever the outcome.  Records are
insert-only; nothing in the codebase updates or deletes them.

The duplicate-run guard reads this table, so a ``success`` record is
what makes a later scheduled run for the same date a no-op.

``IngestRunLog.record`` does not commit: the caller decides which unit
of work the record belongs to (the data transaction on success, a
separate one after rollback on failure).
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any

from metals_spine.core.dialect import dialect_for
from metals_spine.core.protocols import Connection
from metals_spine.domains.metals_curve.schema import TABLE_INGEST_LOG, RunStatus

_COLUMNS = [
    "id",
    "run_date",
    "trigger_source",
    "status",
    "reason",
    "detail",
    "row_count",
    "dropped_count",
    "forced",
    "run_timestamp",
]


@dataclass(frozen=True)
class IngestRun:
    """One immutable audit record."""

    id: str
    run_date: str
    trigger_source: str
    status: RunStatus
    run_timestamp: str
    reason: str | None = None
    detail: str | None = None
    row_count: int = 0
    dropped_count: int = 0
    forced: bool = False

    @classmethod
    def from_row(cls, row: Any) -> IngestRun:
        return cls(
            id=str(row["id"]),
            run_date=str(row["run_date"]),
            trigger_source=row["trigger_source"],
            status=RunStatus(row["status"]),
            run_timestamp=str(row["run_timestamp"]),
            reason=row["reason"],
            detail=row["detail"],
            row_count=int(row["row_count"]),
            dropped_count=int(row["dropped_count"]),
            forced=bool(row["forced"]),
        )

    def detail_dict(self) -> dict[str, Any]:
        """Structured detail, or ``{"message": text}`` for plain-text detail."""
        if not self.detail:
            return {}
        try:
            parsed = json.loads(self.detail)
        except json.JSONDecodeError:
            return {"message": self.detail}
        return parsed if isinstance(parsed, dict) else {"message": self.detail}

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["status"] = self.status.value
        return result


def encode_detail(detail: dict[str, Any] | str | None) -> str | None:
    """Audit ``detail`` column text: JSON for structured detail."""
    if detail is None or detail == {}:
        return None
    if isinstance(detail, str):
        return detail
    return json.dumps(detail, sort_keys=True, default=str)


class IngestRunLog:
    """Repository over ``metals_ingest_log``."""

    def __init__(self, conn: Connection):
        self.conn = conn
        self.dialect = dialect_for(conn)

    def record(self, run: IngestRun) -> IngestRun:
        """Insert one record (no commit)."""
        self.conn.execute(
            self.dialect.insert(TABLE_INGEST_LOG, _COLUMNS),
            (
                run.id,
                run.run_date,
                run.trigger_source,
                run.status.value,
                run.reason,
                run.detail,
                run.row_count,
                run.dropped_count,
                run.forced,
                run.run_timestamp,
            ),
        )
        return run

    def has_success(self, run_date: str) -> bool:
        ph = self.dialect.placeholder(0)
        self.conn.execute(
            f"SELECT 1 AS hit FROM {TABLE_INGEST_LOG} WHERE run_date = {ph} AND status = {ph} LIMIT 1",
            (run_date, RunStatus.SUCCESS.value),
        )
        return self.conn.fetchone() is not None

    def recent(
        self,
        limit: int = 20,
        run_date: str | None = None,
        status: RunStatus | str | None = None,
    ) -> list[IngestRun]:
        """Newest first, optionally filtered by run date and status."""
        ph = self.dialect.placeholder(0)
        filters: list[str] = []
        params: list[Any] = []
        if run_date:
            filters.append(f"run_date = {ph}")
            params.append(run_date)
        if status:
            filters.append(f"status = {ph}")
            params.append(RunStatus(status).value)

        where = f"WHERE {' AND '.join(filters)}" if filters else ""
        params.append(limit)
        self.conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_INGEST_LOG} {where} "
            f"ORDER BY run_timestamp DESC, id DESC LIMIT {ph}",
            tuple(params),
        )
        return [IngestRun.from_row(row) for row in self.conn.fetchall()]

    def latest(self) -> IngestRun | None:
        runs = self.recent(limit=1)
        return runs[0] if runs else None

    def get(self, run_id: str) -> IngestRun | None:
        ph = self.dialect.placeholder(0)
        self.conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_INGEST_LOG} WHERE id = {ph}",
            (run_id,),
        )
        row = self.conn.fetchone()
        return IngestRun.from_row(row) if row is not None else None

    def count(self) -> int:
        self.conn.execute(f"SELECT COUNT(*) AS n FROM {TABLE_INGEST_LOG}")
        return int(self.conn.fetchone()["n"])
