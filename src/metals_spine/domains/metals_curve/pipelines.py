"""
Metals curve ingest pipeline.

One engine serves every trigger: the scheduler, an operator at the CLI
and tests all call ``IngestCurvePipeline.run`` and differ only in
``trigger_source`` and ``force``.

Control flow:
    ::

        resolve run date ─ bind log context (run_id, trigger, run_date, forced)
              │
        duplicate-run guard ──────────────► SKIPPED  already_ingested_today
              │
        fetch source ─────────────────────► ERROR    source_not_configured / fetch_failed
              │
        parse rows ───────────────────────► ERROR    schema_mismatch / no_rows_in_source
              │
        date consistency ─────────────────► ERROR    ambiguous_as_of_date / date_mismatch
              │
        key uniqueness ───────────────────► ERROR    duplicate_curve_key (after any re-dating)
              │
        history conflict ─────────────────► CONFLICT history_exists_for_date
              │
        transactional write + audit ──────► SUCCESS
              │
        anything else ────────────────────► ERROR    unhandled_exception (rolled back)

Every path writes exactly one ``metals_ingest_log`` record.  The success
record commits with the data; every other record is written in its own
unit of work after any rollback.

Usage:
    with open_connection(settings.database_url) as conn:
        outcome = IngestCurvePipeline(conn, settings).run(
            FileSource("curve.csv"), trigger_source="manual"
        )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from metals_spine.core.errors import (
    NoRowsError,
    SourceNotConfiguredError,
    SpineError,
    reason_code_for,
)
from metals_spine.core.execution import ExecutionContext, new_context
from metals_spine.core.protocols import Connection
from metals_spine.core.settings import Settings, get_settings
from metals_spine.core.temporal import Clock, resolve_run_date, utc_now, utc_timestamp
from metals_spine.core.transaction import transaction
from metals_spine.domains.metals_curve.audit import IngestRun, IngestRunLog, encode_detail
from metals_spine.domains.metals_curve.connector import dropped_by_reason, parse_curve_csv
from metals_spine.domains.metals_curve.guards import check_duplicate_run, find_history_conflict
from metals_spine.domains.metals_curve.schema import Reason, RunStatus
from metals_spine.domains.metals_curve.validators import (
    ForceOverride,
    check_unique_keys,
    resolve_sheet_date,
)
from metals_spine.domains.metals_curve.writer import CurveWriter
from metals_spine.framework.logging import bind_context, get_logger, log_step, push_context
from metals_spine.framework.sources import Source, source_for

log = get_logger(__name__)


class OutcomeStatus(str, Enum):
    """Caller-facing result of one run."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass
class IngestOutcome:
    """What happened, for the caller (CLI output, scheduler exit code)."""

    status: OutcomeStatus
    run_id: str
    run_date: str
    trigger_source: str
    forced: bool = False
    reason: str | None = None
    as_of_date: str | None = None
    row_count: int = 0
    dropped_count: int = 0
    details: dict[str, Any] = field(default_factory=dict)
    existing_rows: list[dict[str, Any]] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.SUCCESS, OutcomeStatus.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready payload; keys that do not apply to the status are omitted."""
        payload: dict[str, Any] = {
            "ok": self.ok,
            "status": self.status.value,
            "run_id": self.run_id,
            "run_date": self.run_date,
            "trigger_source": self.trigger_source,
            "forced": self.forced,
        }
        if self.status is OutcomeStatus.SKIPPED:
            payload["skipped"] = True
        if self.reason:
            payload["reason"] = self.reason
        if self.as_of_date:
            payload["as_of_date"] = self.as_of_date
        if self.status is OutcomeStatus.SUCCESS:
            payload["row_count"] = self.row_count
        if self.status is not OutcomeStatus.SKIPPED:
            payload["dropped_count"] = self.dropped_count
        if self.details:
            payload["details"] = self.details
        if self.status is OutcomeStatus.CONFLICT:
            payload["existing_rows"] = self.existing_rows
        if self.error is not None:
            payload["error"] = str(self.error)
        return payload


@dataclass
class _RunState:
    """Facts accumulated while a run progresses."""

    context: ExecutionContext
    run_date: str
    trigger_source: str
    force: ForceOverride
    dropped_count: int = 0
    as_of_date: str | None = None

    def outcome(self, status: OutcomeStatus, **kwargs: Any) -> IngestOutcome:
        kwargs.setdefault("as_of_date", self.as_of_date)
        kwargs.setdefault("dropped_count", self.dropped_count)
        return IngestOutcome(
            status=status,
            run_id=self.context.execution_id,
            run_date=self.run_date,
            trigger_source=self.trigger_source,
            forced=bool(self.force),
            **kwargs,
        )


class IngestCurvePipeline:
    """
    Ingest one curve snapshot into the latest projection and history log.

    Args:
        conn: Open store connection, owned by the caller
        settings: Timezone, scheduled prefix and default source location
        clock: Returns the current aware datetime (injectable for tests)
    """

    name = "metals_curve.ingest"

    def __init__(self, conn: Connection, settings: Settings | None = None, clock: Clock = utc_now):
        self.conn = conn
        self.settings = settings or get_settings()
        self.clock = clock

    def run(
        self,
        source: Source | None = None,
        trigger_source: str = "manual",
        force: ForceOverride | bool = False,
    ) -> IngestOutcome:
        """
        Execute one ingest run.

        Args:
            source: Where the CSV comes from; ``settings.csv_url`` when None
            trigger_source: Caller identity; the scheduled prefix enables skip-on-duplicate
            force: Bypass the date, mismatch, conflict and duplicate-run policies

        Returns:
            IngestOutcome. Batch-level failures are reported, not raised.

        Raises:
            ValueError: Blank ``trigger_source``. Arguments are checked before
                the run starts, so no run id or audit record exists yet.
        """
        if not trigger_source or not trigger_source.strip():
            raise ValueError("trigger_source must be a non-empty string")

        force = ForceOverride.coerce(force)
        context = new_context()
        run_date = resolve_run_date(self.settings.timezone, self.clock())
        state = _RunState(context, run_date, trigger_source, force)

        token = push_context(
            run_id=context.execution_id,
            trigger_source=trigger_source,
            run_date=run_date,
            forced=bool(force),
        )
        try:
            log.info("ingest.started", pipeline=self.name)
            return self._execute(state, source)
        finally:
            token.restore()

    # ── Steps ────────────────────────────────────────────────────────

    def _execute(self, state: _RunState, source: Source | None) -> IngestOutcome:
        try:
            decision = check_duplicate_run(
                self.conn,
                state.run_date,
                state.trigger_source,
                state.force,
                self.settings.scheduled_prefix,
            )
            if not decision.proceed:
                log.info("ingest.skipped", reason=decision.reason)
                self._audit_separately(state, RunStatus.SKIPPED, reason=decision.reason)
                return state.outcome(OutcomeStatus.SKIPPED, reason=decision.reason)

            source = self._resolve_source(source)
            with log_step("ingest.fetch", source=source.name) as timer:
                fetched = source.fetch()
                timer.add_metric("bytes", fetched.metadata.bytes_fetched)

            with log_step("ingest.parse") as timer:
                parsed = parse_curve_csv(fetched.text)
                timer.add_metric("rows", parsed.row_count)
                timer.add_metric("dropped", parsed.dropped_count)
            state.dropped_count = parsed.dropped_count
            if not parsed.rows:
                raise NoRowsError(parsed.dropped_count)

            resolution = resolve_sheet_date(parsed.rows, state.run_date, state.force)
            state.as_of_date = resolution.sheet_date
            bind_context(as_of_date=resolution.sheet_date)
            check_unique_keys(resolution.rows)

            existing = find_history_conflict(self.conn, resolution.sheet_date)
            if existing and not state.force.allows(Reason.HISTORY_EXISTS_FOR_DATE):
                reason = Reason.HISTORY_EXISTS_FOR_DATE.value
                log.warning("ingest.conflict", reason=reason, existing_rows=len(existing))
                self._audit_separately(
                    state,
                    RunStatus.SKIPPED,
                    reason=reason,
                    detail={"existing_rows": len(existing), "as_of_date": resolution.sheet_date},
                )
                return state.outcome(OutcomeStatus.CONFLICT, reason=reason, existing_rows=existing)

            detail: dict[str, Any] = {
                "source": fetched.metadata.source_name,
                "content_hash": fetched.metadata.content_hash,
                **resolution.audit_detail(),
            }
            if parsed.drops:
                detail["dropped_by_reason"] = dropped_by_reason(parsed.drops)
            if existing:
                detail["history_purged"] = len(existing)

            record = self._record(
                state,
                RunStatus.SUCCESS,
                row_count=len(resolution.rows),
                detail=detail,
            )
            result = CurveWriter(self.conn, self.clock).write(
                resolution.rows,
                resolution.sheet_date,
                purge_history=bool(existing),
                audit=record,
            )
            log.info(
                "ingest.completed",
                as_of_date=result.sheet_date,
                row_count=result.row_count,
                dropped_count=state.dropped_count,
                history_purged=result.history_purged,
            )
            return state.outcome(
                OutcomeStatus.SUCCESS,
                row_count=result.row_count,
                details={
                    "history_purged": result.history_purged,
                    "latest_cleared": result.latest_cleared,
                    **resolution.audit_detail(),
                },
            )

        except SpineError as e:
            self.conn.rollback()
            details = e.details()
            log.warning("ingest.rejected", reason=e.reason_code, error=e.message, **details)
            self._audit_separately(
                state,
                RunStatus.ERROR,
                reason=e.reason_code,
                detail={"message": e.message, **details},
            )
            return state.outcome(OutcomeStatus.ERROR, reason=e.reason_code, details=details, error=e)

        except Exception as e:
            self.conn.rollback()
            reason = reason_code_for(e)
            log.exception("ingest.failed", reason=reason, error_type=type(e).__name__)
            self._audit_separately(
                state,
                RunStatus.ERROR,
                reason=reason,
                detail={"message": str(e), "error_type": type(e).__name__},
            )
            return state.outcome(
                OutcomeStatus.ERROR,
                reason=reason,
                details={"error_type": type(e).__name__},
                error=e,
            )

    def _resolve_source(self, source: Source | None) -> Source:
        if source is not None:
            return source
        if not self.settings.csv_url:
            raise SourceNotConfiguredError(
                "csv_url",
                "No source given and METALS_CSV_URL is not configured",
            )
        return source_for(self.settings.csv_url, timeout=self.settings.http_timeout)

    # ── Audit ────────────────────────────────────────────────────────

    def _record(
        self,
        state: _RunState,
        status: RunStatus,
        reason: str | None = None,
        row_count: int = 0,
        detail: dict[str, Any] | None = None,
    ) -> IngestRun:
        return IngestRun(
            id=state.context.execution_id,
            run_date=state.run_date,
            trigger_source=state.trigger_source,
            status=status,
            run_timestamp=utc_timestamp(self.clock()),
            reason=reason,
            detail=encode_detail(detail),
            row_count=row_count,
            dropped_count=state.dropped_count,
            forced=bool(state.force),
        )

    def _audit_separately(self, state: _RunState, status: RunStatus, **kwargs: Any) -> IngestRun:
        """Write a non-success record in its own committed unit of work."""
        record = self._record(state, status, **kwargs)
        with transaction(self.conn):
            IngestRunLog(self.conn).record(record)
        return record
