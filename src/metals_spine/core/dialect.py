"""SQL dialect abstraction for database-agnostic domain code.

Provides a ``Dialect`` protocol and concrete implementations for the two
supported backends.  Curve repositories use ``Dialect`` methods to build
SQL fragments (placeholders, upserts, surrogate keys) without importing
or referencing a specific database driver.

Manifesto:
    The ingest engine runs against SQLite in tests and development and
    against PostgreSQL in production.  Without a dialect layer the
    upsert into ``metals_curve_latest`` and every parameterized query
    would be written twice.

    - **One interface:** Dialect protocol for all SQL generation
    - **Zero coupling:** Domain code never imports database drivers
    - **Testable:** SQLiteDialect for tests, PostgreSQLDialect for prod

Architecture::

    Domain Code:
    ┌────────────────────────────────────────────────────────────────┐
    │  sql = d.upsert("metals_curve_latest", cols, ["metal", ...])   │
    │  conn.execute(sql, params)                                     │
    └────────────────────────────────────────────────────────────────┘
                              │
                              ▼
              ┌──────────────┐     ┌──────────────────┐
              │ SQLite       │     │ PostgreSQL       │
              │ ?, ?, ?      │     │ %s, %s, %s       │
              │ AUTOINCREMENT│     │ SERIAL           │
              └──────────────┘     └──────────────────┘

Examples:
    >>> from metals_spine.core.dialect import get_dialect, SQLiteDialect
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'

Guardrails:
    ❌ DON'T: Write backend-specific SQL in domain repositories
    ✅ DO: Use Dialect methods for placeholders and upserts
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) that is valid for
    the target database.  Domain code interpolates these fragments into
    its SQL templates.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    # -- Placeholder generation --------------------------------------------

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list.

        >>> dialect.placeholders(3)
        '?, ?, ?'          # SQLite
        '%s, %s, %s'       # PostgreSQL
        """
        ...

    # -- DML helpers -------------------------------------------------------

    def insert(self, table: str, columns: list[str]) -> str:
        """Plain ``INSERT INTO table (cols) VALUES (...)`` statement."""
        ...

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
    ) -> str:
        """``INSERT … ON CONFLICT (keys) DO UPDATE SET …``

        Returns the full SQL statement with placeholders.
        """
        ...

    # -- DDL helpers -------------------------------------------------------

    def auto_increment(self) -> str:
        """DDL fragment for an auto-incrementing primary key column type."""
        ...

    def boolean_type(self) -> str:
        """DDL column type used for flags."""
        ...

    def decimal_type(self) -> str:
        """DDL column type that round-trips exact decimals."""
        ...

    def table_exists_query(self) -> str:
        """Query with one placeholder for the table name; returns rows if it exists."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect with ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def insert(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        return f"INSERT INTO {table} ({cols}) VALUES ({self.placeholders(len(columns))})"

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        keys = ", ".join(key_columns)
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c not in key_columns)
        return f"{self.insert(table, columns)} ON CONFLICT ({keys}) DO UPDATE SET {updates}"

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def boolean_type(self) -> str:
        return "INTEGER"

    def decimal_type(self) -> str:
        # NUMERIC affinity would coerce decimal text to REAL
        return "TEXT"

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name = ?"


class PostgreSQLDialect:
    """PostgreSQL dialect with ``%s`` placeholders (psycopg2)."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def insert(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        return f"INSERT INTO {table} ({cols}) VALUES ({self.placeholders(len(columns))})"

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        keys = ", ".join(key_columns)
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns if c not in key_columns)
        return f"{self.insert(table, columns)} ON CONFLICT ({keys}) DO UPDATE SET {updates}"

    def auto_increment(self) -> str:
        return "SERIAL PRIMARY KEY"

    def boolean_type(self) -> str:
        return "BOOLEAN"

    def decimal_type(self) -> str:
        return "NUMERIC"

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = 'public' AND table_name = %s"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.

    Example:
        >>> get_dialect("postgresql").placeholders(2)
        '%s, %s'
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def dialect_for(conn: object) -> Dialect:
    """Dialect matching a connection adapter (``conn.dialect_name``), SQLite by default."""
    return get_dialect(getattr(conn, "dialect_name", "sqlite"))


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "dialect_for",
]
