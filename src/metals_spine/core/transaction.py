"""
Unit-of-work context manager.

Everything executed inside ``transaction(conn)`` is committed together
when the block exits normally and rolled back when it raises.  The
exception is re-raised after rollback.

Usage:
    with transaction(conn):
        helper.delete_for_key("metals_curve_history", key)
        conn.executemany(insert_sql, rows)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from metals_spine.core.protocols import Connection
from metals_spine.framework.logging import get_logger

log = get_logger(__name__)


@contextmanager
def transaction(conn: Connection) -> Iterator[Connection]:
    """Commit on success, roll back and re-raise on failure."""
    try:
        yield conn
    except BaseException as e:
        conn.rollback()
        log.debug("db.transaction.rolled_back", error_type=type(e).__name__)
        raise
    else:
        conn.commit()


__all__ = ["transaction"]
