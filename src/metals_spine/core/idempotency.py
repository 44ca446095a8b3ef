"""
Idempotency helpers for re-runnable ingestion.

A batch write must leave the store in the same final state no matter how
often it is replayed.  The curve writer follows the delete+insert pattern:
remove every row sharing the batch's logical key, then insert the batch,
both inside one transaction.

Manifesto:
    The delete+insert pattern is deceptively simple but easy to get wrong:
    - Delete must use the exact logical key (not partial matches)
    - Delete and insert must be in the same transaction
    - Key columns must match between delete and insert

Guardrails:
    ❌ DON'T: Delete without transaction (partial state on failure)
    ✅ DO: Wrap delete+insert in ``transaction()``

    ❌ DON'T: Use a partial key for delete (deletes too much)
    ✅ DO: Build the key with LogicalKey
"""

from __future__ import annotations

from typing import Any

from metals_spine.core.dialect import Dialect, dialect_for
from metals_spine.core.protocols import Connection


class LogicalKey:
    """
    Natural key for domain-driven data access.

    Examples:
        >>> key = LogicalKey(as_of_date="2024-01-02")
        >>> key
        LogicalKey(as_of_date='2024-01-02')
        >>> key.where_clause()
        'as_of_date = ?'
        >>> key.values()
        ('2024-01-02',)
    """

    def __init__(self, **parts):
        if not parts:
            raise ValueError("LogicalKey needs at least one part")
        self._parts = parts

    def where_clause(self, placeholder: str = "?") -> str:
        """SQL WHERE clause (without WHERE keyword)."""
        return " AND ".join(f"{k} = {placeholder}" for k in self._parts.keys())

    def values(self) -> tuple:
        """Parameter values for WHERE clause."""
        return tuple(self._parts.values())

    def as_dict(self) -> dict[str, Any]:
        """Key as dictionary."""
        return dict(self._parts)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LogicalKey) and self._parts == other._parts

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._parts.items())))

    def __repr__(self) -> str:
        parts = ", ".join(f"{k}={v!r}" for k, v in self._parts.items())
        return f"LogicalKey({parts})"


class IdempotencyHelper:
    """
    Database operations for the delete+insert (re-run → same state) pattern.

    Usage:
        helper = IdempotencyHelper(conn)
        purged = helper.delete_for_key("metals_curve_history", LogicalKey(as_of_date=d))
        # ... insert new rows, same transaction ...
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None):
        self.conn = conn
        self.dialect = dialect or dialect_for(conn)

    def delete_for_key(self, table: str, key: LogicalKey | dict[str, Any]) -> int:
        """
        Delete all rows matching key.

        Returns:
            Number of rows deleted
        """
        key = key if isinstance(key, LogicalKey) else LogicalKey(**key)
        cursor = self.conn.execute(
            f"DELETE FROM {table} WHERE {key.where_clause(self.dialect.placeholder(0))}",
            key.values(),
        )
        return cursor.rowcount


__all__ = ["IdempotencyHelper", "LogicalKey"]
