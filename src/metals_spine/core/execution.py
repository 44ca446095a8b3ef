"""
Execution context for run lineage.

Every ingest invocation gets one ``ExecutionContext``.  Its
``execution_id`` becomes the audit record's id and is bound into the log
context, so a single id ties together the log stream, the audit trail
and the caller-facing outcome.

Examples:
    >>> ctx = new_context()
    >>> len(ctx.execution_id)
    36
    >>> ctx.started_at.tzinfo is not None
    True
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ExecutionContext:
    """Identity and start time of one run."""

    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=_utc_now)

    def elapsed_ms(self, now: datetime | None = None) -> float:
        """Milliseconds since the run started."""
        return ((now or _utc_now()) - self.started_at).total_seconds() * 1000


def new_context(execution_id: str | None = None) -> ExecutionContext:
    """Create a root context, optionally with a caller-supplied id."""
    if execution_id is None:
        return ExecutionContext()
    return ExecutionContext(execution_id=execution_id)


__all__ = ["ExecutionContext", "new_context"]
