"""
Transactional writer for the latest projection and the history log.

Both tables change together or not at all:

    ┌─────────────────────── one transaction ───────────────────────┐
    │ 1. purge history for sheet_date        (forced re-ingest only) │
    │ 2. clear latest rows dated sheet_date                          │
    │ 3. upsert each row into latest on (metal, tenor_months)        │
    │ 4. insert each row into history with one batch inserted_at     │
    │ 5. success audit record                                        │
    └──────────────────────────── commit ───────────────────────────┘

Any exception rolls back every step, the audit record included, and is
re-raised as ``TransactionFailure`` for the pipeline to audit in its own
unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass

from metals_spine.core.dialect import dialect_for
from metals_spine.core.errors import TransactionFailure
from metals_spine.core.idempotency import IdempotencyHelper, LogicalKey
from metals_spine.core.protocols import Connection
from metals_spine.core.temporal import Clock, utc_now, utc_timestamp
from metals_spine.core.transaction import transaction
from metals_spine.domains.metals_curve.audit import IngestRun, IngestRunLog
from metals_spine.domains.metals_curve.connector import CurveRow
from metals_spine.domains.metals_curve.schema import (
    CURVE_COLUMNS,
    CURVE_KEY,
    TABLE_HISTORY,
    TABLE_LATEST,
)
from metals_spine.framework.logging import get_logger, log_step

log = get_logger(__name__)


@dataclass(frozen=True)
class WriteResult:
    """What one committed write did."""

    sheet_date: str
    row_count: int
    history_purged: int
    latest_cleared: int
    written_at: str


class CurveWriter:
    """Writes one validated batch to the latest and history tables."""

    def __init__(self, conn: Connection, clock: Clock = utc_now):
        self.conn = conn
        self.clock = clock
        self.dialect = dialect_for(conn)

    def write(
        self,
        rows: list[CurveRow],
        sheet_date: str,
        purge_history: bool = False,
        audit: IngestRun | None = None,
    ) -> WriteResult:
        """
        Replace the batch for ``sheet_date`` atomically.

        Args:
            rows: Validated rows, all dated ``sheet_date``
            sheet_date: The batch's as-of date
            purge_history: Delete existing history for the date first
            audit: Success record written inside the same transaction
        """
        stray = {row.as_of_date for row in rows} - {sheet_date}
        if stray:
            raise ValueError(f"Rows dated {sorted(stray)} in batch for {sheet_date}")

        written_at = utc_timestamp(self.clock())
        key = LogicalKey(as_of_date=sheet_date)
        helper = IdempotencyHelper(self.conn, self.dialect)

        latest_sql = self.dialect.upsert(
            TABLE_LATEST, [*CURVE_COLUMNS, "updated_at"], list(CURVE_KEY)
        )
        history_sql = self.dialect.insert(TABLE_HISTORY, [*CURVE_COLUMNS, "inserted_at"])

        with log_step("ingest.write", rows=len(rows), sheet_date=sheet_date) as timer:
            try:
                with transaction(self.conn):
                    purged = helper.delete_for_key(TABLE_HISTORY, key) if purge_history else 0
                    cleared = helper.delete_for_key(TABLE_LATEST, key)

                    for row in rows:
                        self.conn.execute(latest_sql, (*row.to_params(), written_at))
                    for row in rows:
                        self.conn.execute(history_sql, (*row.to_params(), written_at))

                    if audit is not None:
                        IngestRunLog(self.conn).record(audit)
            except Exception as e:
                raise TransactionFailure(sheet_date, cause=e) from e

            timer.add_metric("history_purged", purged)
            timer.add_metric("latest_cleared", cleared)

        return WriteResult(
            sheet_date=sheet_date,
            row_count=len(rows),
            history_purged=purged,
            latest_cleared=cleared,
            written_at=written_at,
        )
