"""Tests for metals_spine.core.dialect module."""

import pytest

from metals_spine.core.adapters import SqliteConnection
from metals_spine.core.dialect import (
    Dialect,
    PostgreSQLDialect,
    SQLiteDialect,
    dialect_for,
    get_dialect,
)


class TestSQLiteDialect:
    def test_placeholders(self):
        d = SQLiteDialect()
        assert d.placeholder(0) == "?"
        assert d.placeholders(3) == "?, ?, ?"

    def test_insert(self):
        sql = SQLiteDialect().insert("t", ["a", "b"])
        assert sql == "INSERT INTO t (a, b) VALUES (?, ?)"

    def test_upsert_updates_non_key_columns(self):
        sql = SQLiteDialect().upsert("t", ["k", "v", "w"], ["k"])
        assert sql.endswith("ON CONFLICT (k) DO UPDATE SET v = excluded.v, w = excluded.w")

    def test_decimal_type_is_text(self):
        assert SQLiteDialect().decimal_type() == "TEXT"

    def test_satisfies_protocol(self):
        assert isinstance(SQLiteDialect(), Dialect)


class TestPostgreSQLDialect:
    def test_placeholders(self):
        d = PostgreSQLDialect()
        assert d.placeholders(2) == "%s, %s"

    def test_upsert(self):
        sql = PostgreSQLDialect().upsert("t", ["k", "v"], ["k"])
        assert sql == "INSERT INTO t (k, v) VALUES (%s, %s) ON CONFLICT (k) DO UPDATE SET v = EXCLUDED.v"

    def test_types(self):
        d = PostgreSQLDialect()
        assert d.auto_increment() == "SERIAL PRIMARY KEY"
        assert d.boolean_type() == "BOOLEAN"
        assert d.decimal_type() == "NUMERIC"


class TestRegistry:
    @pytest.mark.parametrize("name, cls", [("sqlite", SQLiteDialect), ("postgres", PostgreSQLDialect), ("PostgreSQL", PostgreSQLDialect)])
    def test_get_dialect(self, name, cls):
        assert isinstance(get_dialect(name), cls)

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match="Unknown dialect"):
            get_dialect("oracle")

    def test_dialect_for_connection(self):
        conn = SqliteConnection(":memory:")
        try:
            assert dialect_for(conn).name == "sqlite"
        finally:
            conn.close()

    def test_dialect_for_defaults_to_sqlite(self):
        assert dialect_for(object()).name == "sqlite"

    def test_upsert_runs_on_sqlite(self):
        conn = SqliteConnection(":memory:")
        d = SQLiteDialect()
        conn.execute("CREATE TABLE t (k TEXT UNIQUE, v INTEGER)")
        sql = d.upsert("t", ["k", "v"], ["k"])
        conn.execute(sql, ("a", 1))
        conn.execute(sql, ("a", 2))
        conn.execute("SELECT k, v FROM t")
        rows = [tuple(r) for r in conn.fetchall()]
        conn.close()
        assert rows == [("a", 2)]
