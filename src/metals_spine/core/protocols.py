"""
Canonical protocol definitions for metals-spine.

This module is the single source of truth for the structural Connection
protocol. Every module that touches the relational store imports it from
here instead of depending on sqlite3 or psycopg2 directly.

Architecture:
    ::

        protocols.py
        └── Connection   : sync DB protocol (SqliteConnection, PostgresConnection)

    Consumers:
        idempotency.py, transaction.py, domains/metals_curve/{audit,guards,
        writer,status}.py

Guardrails:
    ❌ DON'T: Import sqlite3 or psycopg2 in domain code
    ✅ DO: Type domain functions against Connection
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for database operations.

    Defines the minimum operations domain code needs. Rows returned by
    ``fetchone``/``fetchall`` must support access by column name
    (``row["metal"]``).

    Architecture:
        ::

            Connection Protocol:
            ┌────────────────────────────────────────────────────────┐
            │ execute(sql, params)   → Execute single statement      │
            │ executemany(sql, list) → Execute for multiple params   │
            │ fetchone()             → Get one result row            │
            │ fetchall()             → Get all result rows           │
            │ commit()               → Commit transaction            │
            │ rollback()             → Rollback transaction          │
            │ close()                → Release the handle            │
            └────────────────────────────────────────────────────────┘

            Implementations:
            ┌────────────────────────────────────────────────────────┐
            │ sqlite  → SqliteConnection (stdlib sqlite3)            │
            │ postgres → PostgresConnection (psycopg2)               │
            └────────────────────────────────────────────────────────┘
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a single SQL statement. Returns a cursor."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL for each parameter tuple."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from the last executed statement."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from the last executed statement."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the current transaction."""
        ...

    def close(self) -> None:
        """Close the connection."""
        ...


__all__ = ["Connection"]
