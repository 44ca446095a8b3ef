"""
Pre-write guards: duplicate-run suppression and history conflict lookup.

Neither guard raises.  Each returns a value the pipeline turns into an
outcome, because a skipped run and a history conflict are expected
operating conditions rather than defects.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from metals_spine.core.dialect import dialect_for
from metals_spine.core.protocols import Connection
from metals_spine.domains.metals_curve.audit import IngestRunLog
from metals_spine.domains.metals_curve.schema import CURVE_COLUMNS, TABLE_HISTORY, Reason
from metals_spine.domains.metals_curve.validators import NO_FORCE, ForceOverride


@dataclass(frozen=True)
class GuardDecision:
    """Proceed, or skip with a reason code."""

    proceed: bool
    reason: str | None = None

    @classmethod
    def go(cls) -> GuardDecision:
        return cls(proceed=True)

    @classmethod
    def skip(cls, reason: Reason) -> GuardDecision:
        return cls(proceed=False, reason=reason.value)


def is_scheduled(trigger_source: str, scheduled_prefix: str = "cron") -> bool:
    """Scheduled triggers are identified by a reserved source-name prefix."""
    return trigger_source.startswith(scheduled_prefix)


def check_duplicate_run(
    conn: Connection,
    run_date: str,
    trigger_source: str,
    force: ForceOverride | bool = NO_FORCE,
    scheduled_prefix: str = "cron",
) -> GuardDecision:
    """
    Skip a scheduled run when a successful run already exists for ``run_date``.

    Manual triggers are never skipped, and a forced run always proceeds.
    """
    force = ForceOverride.coerce(force)
    if not is_scheduled(trigger_source, scheduled_prefix):
        return GuardDecision.go()
    if force.allows(Reason.ALREADY_INGESTED_TODAY):
        return GuardDecision.go()
    if IngestRunLog(conn).has_success(run_date):
        return GuardDecision.skip(Reason.ALREADY_INGESTED_TODAY)
    return GuardDecision.go()


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    return value


def find_history_conflict(conn: Connection, sheet_date: str) -> list[dict[str, Any]]:
    """
    History rows already stored for ``sheet_date``, oldest insert first.

    An empty list means the date has never been ingested.
    """
    ph = dialect_for(conn).placeholder(0)
    conn.execute(
        f"SELECT {', '.join(CURVE_COLUMNS)}, inserted_at FROM {TABLE_HISTORY} "
        f"WHERE as_of_date = {ph} ORDER BY inserted_at, metal, tenor_months",
        (sheet_date,),
    )
    rows = []
    for row in conn.fetchall():
        entry = {col: _plain(row[col]) for col in (*CURVE_COLUMNS, "inserted_at")}
        entry["as_of_date"] = str(entry["as_of_date"])
        if entry["deficit_gdp_flag"] is not None:
            entry["deficit_gdp_flag"] = bool(entry["deficit_gdp_flag"])
        rows.append(entry)
    return rows
