"""
core/database.py -- Connection-pooled persistence gateway.

Wraps a SQLAlchemy engine so repositories share one pool and one way of
running statements. Uses SQLAlchemy Core (not ORM): repositories own their
Table definitions and row mappers, this module only owns connections.

Pool policy:
  PostgreSQL/MySQL URLs get a fixed-size QueuePool (pool_size, max_overflow=0,
  pool_pre_ping=True). When every connection is checked out, the next caller
  blocks in the pool's wait queue instead of failing fast.

  SQLite URLs use the dialect's default pool. check_same_thread is disabled
  because Starlette runs sync route handlers on a worker threadpool.

Transactions:
  transaction() is the only atomicity boundary in the application. Any
  exception raised inside the block rolls back before it propagates, and the
  connection goes back to the pool on every exit path.

Usage:
    db = Database("sqlite:///apnisec.db")
    rows = db.execute(text("SELECT 1"))
    with db.transaction() as conn:
        conn.execute(...)
        conn.execute(...)
    db.close()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger("apnisec.database")

T = TypeVar("T")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


class Database:
    """Persistence gateway: pooled execute / transaction over one engine."""

    def __init__(self, db_url: str, pool_size: int = 10, echo: bool = False) -> None:
        self.url = db_url
        if db_url.startswith("sqlite"):
            self.engine: Engine = create_engine(
                db_url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        else:
            self.engine = create_engine(
                db_url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=0,
                pool_pre_ping=True,
            )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside BEGIN ... COMMIT.

        On any exception from the body the transaction is rolled back and the
        exception re-raised unchanged. The connection is closed (returned to
        the pool) whether the body succeeded or not.
        """
        conn = self.engine.connect()
        trans = conn.begin()
        try:
            yield conn
            trans.commit()
        except BaseException:
            trans.rollback()
            logger.debug("Transaction rolled back")
            raise
        finally:
            conn.close()

    def run_in_transaction(self, body: Callable[[Connection], T]) -> T:
        """Run body(conn) inside transaction() and return its result."""
        with self.transaction() as conn:
            return body(conn)

    @contextmanager
    def scope(self, conn: Connection | None = None) -> Iterator[Connection]:
        """Reuse the caller's open connection, or open a new transaction.

        Repositories take an optional conn argument and route it through here,
        so a service can compose several repository calls inside one
        transaction() block.
        """
        if conn is not None:
            yield conn
            return
        with self.transaction() as new_conn:
            yield new_conn

    # ------------------------------------------------------------------
    # One-shot execution
    # ------------------------------------------------------------------

    def execute(self, statement: Any, params: dict | None = None) -> Any:
        """Execute one statement in its own transaction.

        Plain SQL strings are wrapped in text() and must use :name bind
        parameters. Returns the list of rows for row-returning statements and
        the CursorResult otherwise (rowcount, inserted_primary_key).
        """
        if isinstance(statement, str):
            statement = text(statement)
        with self.transaction() as conn:
            result = conn.execute(statement, params or {})
            if result.returns_rows:
                return result.fetchall()
            return result

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by GET /health."""
        try:
            self.execute("SELECT 1")
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
