"""Unit tests for core/database.py -- the pooled persistence gateway.

Covers:
- execute() returns rows for SELECT and a result for DML
- transaction() commits on success and rolls back on error
- run_in_transaction() returns the body's value
- scope() reuses a caller connection
- ping() reports connectivity
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from core.database import Database


@pytest.fixture
def table_db(db: Database) -> Database:
    db.execute("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    return db


def _names(db: Database) -> list[str]:
    return [row.name for row in db.execute("SELECT name FROM items ORDER BY id")]


def test_execute_select_returns_rows(table_db: Database) -> None:
    table_db.execute("INSERT INTO items (name) VALUES (:name)", {"name": "a"})
    rows = table_db.execute("SELECT id, name FROM items")
    assert len(rows) == 1
    assert rows[0].name == "a"


def test_execute_dml_returns_result(table_db: Database) -> None:
    table_db.execute("INSERT INTO items (name) VALUES ('a')")
    table_db.execute("INSERT INTO items (name) VALUES ('b')")
    result = table_db.execute("DELETE FROM items")
    assert result.rowcount == 2


def test_transaction_commits(table_db: Database) -> None:
    with table_db.transaction() as conn:
        conn.execute(text("INSERT INTO items (name) VALUES ('a')"))
        conn.execute(text("INSERT INTO items (name) VALUES ('b')"))
    assert _names(table_db) == ["a", "b"]


def test_transaction_rolls_back_and_reraises(table_db: Database) -> None:
    with pytest.raises(ValueError, match="boom"):
        with table_db.transaction() as conn:
            conn.execute(text("INSERT INTO items (name) VALUES ('a')"))
            raise ValueError("boom")
    assert _names(table_db) == []


def test_run_in_transaction_returns_value(table_db: Database) -> None:
    def body(conn):
        conn.execute(text("INSERT INTO items (name) VALUES ('a')"))
        return conn.execute(text("SELECT COUNT(*) FROM items")).scalar()

    assert table_db.run_in_transaction(body) == 1


def test_run_in_transaction_rolls_back(table_db: Database) -> None:
    def body(conn):
        conn.execute(text("INSERT INTO items (name) VALUES ('a')"))
        conn.execute(text("INSERT INTO items (id, name) VALUES (1, 'dup')"))

    with pytest.raises(Exception):
        table_db.run_in_transaction(body)
    assert _names(table_db) == []


def test_scope_reuses_connection(table_db: Database) -> None:
    with table_db.transaction() as conn:
        with table_db.scope(conn) as inner:
            assert inner is conn


def test_ping(table_db: Database) -> None:
    assert table_db.ping() is True


def test_ping_false_after_failure(monkeypatch: pytest.MonkeyPatch, table_db: Database) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(table_db, "execute", broken)
    assert table_db.ping() is False
