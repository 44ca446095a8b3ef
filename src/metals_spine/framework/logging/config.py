"""
Logging configuration.

Provides a single entry point for configuring structured logging.
Level and format come from explicit arguments, falling back to settings:

- METALS_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- METALS_LOG_FORMAT: json | console (default: console)

Usage:
    from metals_spine.framework.logging import configure_logging
    configure_logging()

    # Or with explicit settings
    configure_logging(level="DEBUG", format="json")
"""

import logging
import sys

import structlog
from structlog.types import Processor

from metals_spine.core.settings import get_settings
from metals_spine.framework.logging.context import add_context_processor

_configured = False

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(
    level: str | None = None,
    format: str | None = None,
    force: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Should be called once at startup (CLI entry, scheduler wrapper).
    Subsequent calls are no-ops unless force=True.

    Args:
        level: Log level (overrides METALS_LOG_LEVEL)
        format: "json" or "console" (overrides METALS_LOG_FORMAT)
        force: Reconfigure even if already configured

    Raises:
        ValueError: If the level or format is not recognised.
    """
    global _configured

    if _configured and not force:
        return

    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    log_format = (format or settings.log_format).lower()

    if log_level not in _LEVELS:
        raise ValueError(f"Unknown log level {log_level!r}; expected one of {', '.join(_LEVELS)}")
    if log_format not in ("json", "console"):
        raise ValueError(f"Unknown log format {log_format!r}; expected 'json' or 'console'")

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        # Run context from contextvars
        add_context_processor,
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Events go to stderr so --json command output stays clean on stdout
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("metals_spine").setLevel(getattr(logging, log_level))

    _configured = True


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
