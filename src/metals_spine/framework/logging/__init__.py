"""
Metals Spine Logging - Structured, run-aware logging.

This module provides:
- Structured logging with structlog
- Run context propagation via contextvars
- Timing utilities for step durations
- Settings-based configuration (METALS_LOG_LEVEL, METALS_LOG_FORMAT)

Usage:
    from metals_spine.framework.logging import get_logger, configure_logging, log_step, bind_context

    # Configure once at startup
    configure_logging()

    log = get_logger(__name__)

    # Attach run identifiers to every subsequent event
    bind_context(run_id="abc-123", trigger_source="cron-daily")

    with log_step("ingest.write", rows=42):
        writer.write(rows, sheet_date)
"""

from metals_spine.framework.logging.config import configure_logging, is_configured
from metals_spine.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)
from metals_spine.framework.logging.timing import TimingResult, log_step, log_timing

__all__ = [
    # Configuration
    "configure_logging",
    "is_configured",
    # Context
    "get_logger",
    "set_context",
    "clear_context",
    "get_context",
    "bind_context",
    "push_context",
    "LogContext",
    # Timing
    "TimingResult",
    "log_step",
    "log_timing",
]
