"""
Read-side reporting: curve status and store health.

Status and health are read-only; neither writes to the store nor to the
audit trail.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from metals_spine.core.dialect import dialect_for
from metals_spine.core.protocols import Connection
from metals_spine.domains.metals_curve.audit import IngestRun, IngestRunLog
from metals_spine.domains.metals_curve.schema import TABLE_LATEST, TABLES
from metals_spine.framework.logging import get_logger, log_timing

log = get_logger(__name__)


@dataclass
class CurveStatus:
    """Snapshot of the latest projection for one as-of date."""

    as_of_date: str | None = None
    total_rows: int = 0
    per_metal: dict[str, int] = field(default_factory=dict)
    last_run: IngestRun | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "as_of_date": self.as_of_date,
            "total_rows": self.total_rows,
            "per_metal": dict(self.per_metal),
            "last_run": self.last_run.to_dict() if self.last_run else None,
        }


def latest_as_of_date(conn: Connection) -> str | None:
    conn.execute(f"SELECT MAX(as_of_date) AS as_of_date FROM {TABLE_LATEST}")
    row = conn.fetchone()
    if row is None or row["as_of_date"] is None:
        return None
    return str(row["as_of_date"])


@log_timing("status.report", log_start=False, level="debug")
def curve_status(conn: Connection, as_of_date: str | None = None) -> CurveStatus:
    """
    Row counts of the latest projection for ``as_of_date``.

    With no date the newest as-of date in the projection is reported.  An
    empty store gives ``as_of_date=None`` and zero counts.
    """
    target = as_of_date or latest_as_of_date(conn)
    status = CurveStatus(as_of_date=target, last_run=IngestRunLog(conn).latest())
    if target is None:
        return status

    ph = dialect_for(conn).placeholder(0)
    conn.execute(
        f"SELECT metal, COUNT(*) AS n FROM {TABLE_LATEST} "
        f"WHERE as_of_date = {ph} GROUP BY metal ORDER BY metal",
        (target,),
    )
    status.per_metal = {row["metal"]: int(row["n"]) for row in conn.fetchall()}
    status.total_rows = sum(status.per_metal.values())
    return status


@dataclass
class HealthReport:
    """Store reachability and table sizes."""

    ok: bool
    latency_ms: float | None = None
    tables: dict[str, int | None] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "latency_ms": self.latency_ms,
            "tables": dict(self.tables),
            "error": self.error,
        }


def check_health(conn: Connection) -> HealthReport:
    """
    Ping the store and count rows in each domain table.

    A table that does not exist is reported as ``None`` and makes the
    report unhealthy.  Driver errors are captured on the report rather
    than raised.
    """
    dialect = dialect_for(conn)
    try:
        start = time.perf_counter()
        conn.execute("SELECT 1 AS ping")
        conn.fetchone()
        latency = round((time.perf_counter() - start) * 1000, 2)

        tables: dict[str, int | None] = {}
        for table in TABLES:
            conn.execute(dialect.table_exists_query(), (table,))
            if conn.fetchone() is None:
                tables[table] = None
                continue
            conn.execute(f"SELECT COUNT(*) AS n FROM {table}")  # noqa: S608
            tables[table] = int(conn.fetchone()["n"])
    except Exception as exc:
        log.exception("health.check_failed", error=str(exc))
        return HealthReport(ok=False, error=str(exc))

    missing = [name for name, count in tables.items() if count is None]
    return HealthReport(
        ok=not missing,
        latency_ms=latency,
        tables=tables,
        error=f"missing tables: {', '.join(missing)}" if missing else None,
    )
