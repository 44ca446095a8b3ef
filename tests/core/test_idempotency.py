"""Tests for LogicalKey and IdempotencyHelper."""

import pytest

from metals_spine.core.adapters import SqliteConnection
from metals_spine.core.idempotency import IdempotencyHelper, LogicalKey


class TestLogicalKey:
    def test_where_clause_and_values(self):
        key = LogicalKey(as_of_date="2024-01-02", metal="gold")
        assert key.where_clause() == "as_of_date = ? AND metal = ?"
        assert key.where_clause("%s") == "as_of_date = %s AND metal = %s"
        assert key.values() == ("2024-01-02", "gold")
        assert key.as_dict() == {"as_of_date": "2024-01-02", "metal": "gold"}

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            LogicalKey()

    def test_equality_and_hash(self):
        a = LogicalKey(as_of_date="2024-01-02")
        b = LogicalKey(as_of_date="2024-01-02")
        assert a == b
        assert len({a, b}) == 1
        assert a != LogicalKey(as_of_date="2024-01-03")

    def test_repr(self):
        assert repr(LogicalKey(as_of_date="2024-01-02")) == "LogicalKey(as_of_date='2024-01-02')"


class TestIdempotencyHelper:
    @pytest.fixture
    def db(self):
        conn = SqliteConnection(":memory:")
        conn.execute("CREATE TABLE t (as_of_date TEXT, v INTEGER)")
        conn.executemany(
            "INSERT INTO t VALUES (?, ?)",
            [("2024-01-01", 1), ("2024-01-02", 2), ("2024-01-02", 3)],
        )
        conn.commit()
        yield conn
        conn.close()

    def test_delete_for_key_removes_only_matching(self, db):
        helper = IdempotencyHelper(db)
        assert helper.delete_for_key("t", {"as_of_date": "2024-01-02"}) == 2
        db.execute("SELECT as_of_date FROM t")
        assert [r["as_of_date"] for r in db.fetchall()] == ["2024-01-01"]
