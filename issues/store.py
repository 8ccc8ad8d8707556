"""
issues/store.py -- SQLAlchemy Core persistence for security issues.

Pattern: Repository + Data Mapper (same as auth/store.py).

Owner scoping: every statement that touches an existing row has
`userId = :user_id` in its WHERE clause. A caller that knows another tenant's
issue id still gets no row back, so cross-tenant reads and writes are
impossible at the storage layer regardless of what the service checks.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    repo = IssueRepository(db)
    issue = repo.create(Issue(user_id=1, type="vapt", title="T", description="D"))
    repo.find_all(1, issue_type="vapt")
    repo.update(issue.id, 1, {"status": "resolved"})
    repo.delete(issue.id, 1)
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text

from core.database import Database
from issues.models import DEFAULT_PRIORITY, DEFAULT_STATUS, MUTABLE_FIELDS, Issue

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_issues = Table(
    "issues",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("userId", Integer, nullable=False),
    Column("type", String(30), nullable=False),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False),
    Column("priority", String(10), nullable=False, server_default=DEFAULT_PRIORITY),
    Column("status", String(20), nullable=False, server_default=DEFAULT_STATUS),
    Column("createdAt", String(32), nullable=False),
    Column("updatedAt", String(32), nullable=False),
    Index("ix_issues_user_created", "userId", "createdAt"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class IssueRepository:
    """Owner-scoped CRUD for Issue rows."""

    def __init__(self, db: Database) -> None:
        self._db = db
        _metadata.create_all(db.engine)

    def find_all(self, user_id: int, issue_type: str | None = None) -> list[Issue]:
        """Return the user's issues, newest first, optionally filtered by type.

        id breaks ties between rows created within the same clock tick.
        """
        stmt = _issues.select().where(_issues.c.userId == user_id)
        if issue_type:
            stmt = stmt.where(_issues.c.type == issue_type)
        stmt = stmt.order_by(_issues.c.createdAt.desc(), _issues.c.id.desc())
        with self._db.transaction() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_issue(r) for r in rows]

    def find_by_id(self, issue_id: int, user_id: int) -> Issue | None:
        """Return the issue only if it exists AND belongs to user_id."""
        with self._db.transaction() as conn:
            row = conn.execute(
                _issues.select().where((_issues.c.id == issue_id) & (_issues.c.userId == user_id))
            ).fetchone()
        return _row_to_issue(row) if row is not None else None

    def create(self, issue: Issue) -> Issue:
        """Insert an issue and return the stored row.

        createdAt and updatedAt are stamped from the same instant.
        Missing priority/status fall back to medium/open.
        """
        now = _now_iso()
        with self._db.transaction() as conn:
            result = conn.execute(
                _issues.insert().values(
                    userId=issue.user_id,
                    type=issue.type,
                    title=issue.title,
                    description=issue.description,
                    priority=issue.priority or DEFAULT_PRIORITY,
                    status=issue.status or DEFAULT_STATUS,
                    createdAt=now,
                    updatedAt=now,
                )
            )
            issue_id = result.inserted_primary_key[0]
            row = conn.execute(
                _issues.select().where((_issues.c.id == issue_id) & (_issues.c.userId == issue.user_id))
            ).fetchone()
        return _row_to_issue(row)

    def update(self, issue_id: int, user_id: int, fields: dict) -> Issue | None:
        """Read-merge-write a partial update, then re-read the stored row.

        Only keys of MUTABLE_FIELDS whose value is not None overlay the
        existing row; updatedAt is refreshed. Returns None if the issue does
        not exist for this owner.

        Not wrapped in one transaction: a concurrent writer may interleave
        between the read and the write (last writer wins).
        """
        existing = self.find_by_id(issue_id, user_id)
        if existing is None:
            return None

        merged = {
            name: fields[name] if fields.get(name) is not None else getattr(existing, name)
            for name in MUTABLE_FIELDS
        }
        with self._db.transaction() as conn:
            conn.execute(
                _issues.update()
                .where((_issues.c.id == issue_id) & (_issues.c.userId == user_id))
                .values(updatedAt=_now_iso(), **merged)
            )
        return self.find_by_id(issue_id, user_id)

    def delete(self, issue_id: int, user_id: int) -> bool:
        """Delete an owned issue. Returns False if nothing matched."""
        with self._db.transaction() as conn:
            result = conn.execute(
                _issues.delete().where((_issues.c.id == issue_id) & (_issues.c.userId == user_id))
            )
            deleted = result.rowcount
        return deleted > 0


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_issue(row) -> Issue:
    return Issue(
        id=row.id,
        user_id=row.userId,
        type=row.type,
        title=row.title,
        description=row.description,
        priority=row.priority,
        status=row.status,
        created_at=row.createdAt,
        updated_at=row.updatedAt,
    )
