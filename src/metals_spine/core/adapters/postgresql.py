"""PostgreSQL connection adapter (psycopg2).

Same single-cursor shape as :class:`SqliteConnection`.  Rows come back
from a ``RealDictCursor`` so domain code reads columns by name on both
backends.
"""

from __future__ import annotations

from typing import Any

import psycopg2
import psycopg2.extras

from metals_spine.core.errors import DatabaseConnectionError


class PostgresConnection:
    """Adapter: ``psycopg2`` connection → ``Connection`` protocol."""

    dialect_name = "postgresql"

    def __init__(self, dsn: str, *, connect_timeout: int = 10) -> None:
        try:
            self._conn = psycopg2.connect(dsn, connect_timeout=connect_timeout)
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ) from e
        self._cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params)
        return self._cursor

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        self._cursor.executemany(sql, params)
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._cursor.close()
        self._conn.close()

    @property
    def raw(self) -> Any:
        return self._conn

    def __repr__(self) -> str:
        return f"PostgresConnection(dsn={self._conn.dsn!r})"
