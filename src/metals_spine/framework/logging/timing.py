"""
Timing utilities for performance logging.

- Context manager: with log_step("step_name"):
- Decorator: @log_timing("step_name")

Start events log at DEBUG, end events at INFO with ``duration_ms``.
Failures log ``<event>.error`` and re-raise.
"""

import functools
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from metals_spine.framework.logging.context import get_context, get_logger, push_context

F = TypeVar("F", bound=Callable[..., Any])


def _generate_span_id() -> str:
    """Generate a short span ID (8 hex chars)."""
    return uuid.uuid4().hex[:8]


@dataclass
class TimingResult:
    """Result of a timed operation with tracing support."""

    step: str
    span_id: str = field(default_factory=_generate_span_id)
    parent_span_id: str | None = None
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    status: str = "ok"  # ok, error
    error_info: dict[str, Any] | None = None

    def stop(self) -> "TimingResult":
        """Record end time."""
        if self.ended_at is None:
            self.ended_at = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> "TimingResult":
        """Add a metric to include in the end event."""
        self.metrics[key] = value
        return self

    def set_error(self, e: Exception) -> "TimingResult":
        """Record error information."""
        self.status = "error"
        self.error_info = {
            "error_type": type(e).__name__,
            "error_message": str(e),
        }
        return self

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dict for logging."""
        result = {
            "duration_ms": round(self.duration_ms, 2),
            "span_id": self.span_id,
        }
        if self.parent_span_id:
            result["parent_span_id"] = self.parent_span_id
        result.update(self.metrics)
        return result

    def to_error_dict(self) -> dict[str, Any]:
        """Convert to dict for error logging."""
        result = self.to_log_dict()
        result["status"] = "error"
        if self.error_info:
            result.update(self.error_info)
        return result


@contextmanager
def log_step(event: str, log_start: bool = True, level: str = "info", **extra_metrics) -> Iterator[TimingResult]:
    """
    Context manager that logs step start/end with timing and tracing.

    Usage:
        with log_step("ingest.parse", bytes_in=2048) as timer:
            result = parse_curve_csv(text)
            timer.add_metric("rows", len(result.rows))

        # DEBUG ingest.parse.start span_id=a1b2c3d4 bytes_in=2048
        # INFO  ingest.parse.end   span_id=a1b2c3d4 duration_ms=4.2 rows=42

    Args:
        event: Event name (e.g., "ingest.write")
        log_start: Whether to log at start (DEBUG)
        level: Log level for end message ("info" or "debug")
        **extra_metrics: Additional metrics to include in logs
    """
    log = get_logger("metals_spine.timing")

    parent_span = get_context().span_id
    timer = TimingResult(step=event, parent_span_id=parent_span, metrics=dict(extra_metrics))

    # Nested steps see this span as their parent
    context_token = push_context(span_id=timer.span_id, parent_span_id=parent_span, step=event)

    try:
        if log_start:
            log.debug(f"{event}.start", span_id=timer.span_id, **extra_metrics)
        yield timer
    except Exception as e:
        timer.stop()
        timer.set_error(e)
        log.error(f"{event}.error", **timer.to_error_dict())
        raise
    finally:
        timer.stop()
        context_token.restore()

    getattr(log, level)(f"{event}.end", **timer.to_log_dict())


def log_timing(
    step: str | None = None,
    log_start: bool = True,
    level: str = "info",
) -> Callable[[F], F]:
    """
    Decorator that logs function execution time.

    Usage:
        @log_timing("status.report", log_start=False, level="debug")
        def curve_status(conn):
            ...
    """

    def decorator(func: F) -> F:
        step_name = step or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with log_step(step_name, log_start=log_start, level=level):
                return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
