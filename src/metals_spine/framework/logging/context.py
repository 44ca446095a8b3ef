"""
Logging context management using contextvars.

Run identifiers bound here are attached to every log entry by
``add_context_processor`` without being passed through each call.
"""

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


@dataclass
class LogContext:
    """
    Run context attached to all log entries.

    Core identifiers:
        run_id: Ingest run (execution) identifier
        trigger_source: Who asked for the run ("cron-daily", "manual", ...)

    Data context:
        run_date: Calendar date the run was resolved to
        as_of_date: Date the ingested batch represents
        forced: Whether the operator override is active

    Tracing:
        step: Current processing step name
        span_id: Current span identifier
        parent_span_id: Parent span for nested steps
    """

    run_id: str | None = None
    trigger_source: str | None = None

    run_date: str | None = None
    as_of_date: str | None = None
    forced: bool | None = None

    step: str | None = None
    span_id: str | None = None
    parent_span_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "LogContext":
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def set_context(**kwargs) -> LogContext:
    """
    Replace the current log context.

    Use bind_context() to add to the existing one.
    """
    ctx = LogContext(**kwargs)
    _log_context.set(ctx)
    return ctx


def bind_context(**kwargs) -> LogContext:
    """Merge values into the current context and return it."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Clear the current context (reset to empty)."""
    _log_context.set(LogContext())


class _ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token):
        self._token = token

    def restore(self):
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> _ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(run_id=ctx.execution_id)
        try:
            do_work()
        finally:
            token.restore()
    """
    token = _log_context.set(get_context().merge(**kwargs))
    return _ContextToken(token)


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that adds the run context to every log entry."""
    for key, value in get_context().to_dict().items():
        # Explicit event keys win
        if key not in event_dict:
            event_dict[key] = value
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
