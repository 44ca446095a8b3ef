"""Connection factory: create database connections from URL strings.

This is the **single entry point** for creating database connections.
Every caller that needs a store handle should use ``create_connection()``
or the scoped ``open_connection()`` rather than importing backend classes.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/metals.db``                         SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
==================  ==========================================  ============

Usage
-----
::

    from metals_spine.core.connection import open_connection

    with open_connection("sqlite:///metals.db") as conn:
        outcome = IngestCurvePipeline(conn).run(source, "manual")
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from metals_spine.core.adapters import PostgresConnection, SqliteConnection
from metals_spine.core.errors import ConfigError
from metals_spine.core.protocols import Connection
from metals_spine.framework.logging import get_logger

log = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or ``"postgresql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.backend == "postgresql"


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into (scheme, target).

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if db.startswith(("postgresql://", "postgres://")):
        return "postgresql", db

    if db.startswith(("postgresql+", "postgres+")):
        # postgresql+psycopg2://... → postgresql://...
        scheme, _, rest = db.partition("://")
        return "postgresql", f"{scheme.split('+')[0]}://{rest}"

    if "://" in db:
        raise ConfigError(f"Unsupported database URL scheme: {db.split('://', 1)[0]!r}")

    # Bare file path
    return "sqlite", db


# ── Factory ──────────────────────────────────────────────────────────────


def create_connection(db: str | None = None) -> tuple[Connection, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Returns:
        ``(conn, info)``: the connection satisfies the ``Connection``
        protocol and ``info`` describes the backend.

    Raises:
        ConfigError: for an unsupported URL scheme.
        DatabaseConnectionError: if PostgreSQL cannot be reached.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn: Connection = SqliteConnection(":memory:")
        info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
    elif scheme == "sqlite":
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = str(path.resolve())
        conn = SqliteConnection(resolved)
        info = ConnectionInfo(backend="sqlite", persistent=True, url=db or target, resolved_path=resolved)
    else:
        conn = PostgresConnection(target)
        info = ConnectionInfo(backend="postgresql", persistent=True, url=target)

    log.debug("db.connected", backend=info.backend, persistent=info.persistent)
    return conn, info


@contextmanager
def open_connection(db: str | None = None) -> Iterator[Connection]:
    """Scoped connection: acquired on entry, closed on every exit path."""
    conn, _ = create_connection(db)
    try:
        yield conn
    finally:
        conn.close()


__all__ = ["ConnectionInfo", "create_connection", "open_connection"]
