"""Connection adapters satisfying the ``Connection`` protocol."""

from metals_spine.core.adapters.postgresql import PostgresConnection
from metals_spine.core.adapters.sqlite import SqliteConnection

__all__ = ["PostgresConnection", "SqliteConnection"]
