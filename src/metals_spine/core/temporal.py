"""
Run-date resolution.

The run date is "today" as seen by the desk that owns the curve, not by
the server clock.  The current instant is projected into a named IANA
zone and reduced to a calendar date.

Examples:
    >>> from datetime import UTC, datetime
    >>> resolve_run_date("America/Chicago", datetime(2024, 1, 2, 3, 30, tzinfo=UTC))
    '2024-01-01'
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: current UTC instant."""
    return datetime.now(UTC)


def resolve_run_date(tz_name: str, now: datetime | None = None) -> str:
    """
    Calendar date (``YYYY-MM-DD``) of ``now`` in the zone ``tz_name``.

    Raises:
        ValueError: if ``now`` is naive (its zone would be a guess).
        zoneinfo.ZoneInfoNotFoundError: if ``tz_name`` is unknown.
    """
    instant = now if now is not None else utc_now()
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError("resolve_run_date requires a timezone-aware datetime")
    return instant.astimezone(ZoneInfo(tz_name)).date().isoformat()


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp for audit and write columns."""
    instant = now if now is not None else utc_now()
    if instant.tzinfo is None:
        raise ValueError("utc_timestamp requires a timezone-aware datetime")
    return instant.astimezone(UTC).isoformat(timespec="microseconds")


def parse_iso_date(value: str) -> date:
    """Strict ``YYYY-MM-DD`` parse used for CLI date options."""
    return date.fromisoformat(value)


__all__ = ["Clock", "parse_iso_date", "resolve_run_date", "utc_now", "utc_timestamp"]
