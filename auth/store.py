"""
auth/store.py -- SQLAlchemy Core persistence for users and profiles.

Pattern: Repository + Data Mapper. UserRepository is the repository;
_row_to_user / _row_to_profile are the mappers. Services never touch SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Profile queries always filter on userId, so one account can never read or
  write another account's profile even if a service check is skipped.

Every method accepts an optional conn so AuthService can run the
duplicate-email check and the insert inside one transaction.

Layer rule: no imports from api/, issues/ or notify/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Connection

from auth.models import PROFILE_FIELDS, User, UserProfile
from core.database import Database

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("createdAt", String(32), nullable=False),
    Column("updatedAt", String(32), nullable=False),
)

_profiles = Table(
    "user_profiles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("userId", Integer, nullable=False, unique=True),
    Column("firstName", String(100)),
    Column("lastName", String(100)),
    Column("phone", String(20)),
    Column("company", String(200)),
    Column("position", String(200)),
    Column("bio", Text),
    Column("updatedAt", String(32), nullable=False),
)

# Domain attribute -> column name
_PROFILE_COLUMNS: dict[str, str] = {
    "first_name": "firstName",
    "last_name": "lastName",
    "phone": "phone",
    "company": "company",
    "position": "position",
    "bio": "bio",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserRepository:
    """Repository for User and UserProfile entities.

    Usage:
        repo = UserRepository(db)
        user = repo.create("alice@example.com", hash_password("secret1"))
        repo.update_profile(user.id, {"first_name": "Alice"})
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        _metadata.create_all(db.engine)

    def transaction(self):
        """Open a transaction on the shared gateway (see Database.transaction)."""
        return self._db.transaction()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_by_email(self, email: str, conn: Connection | None = None) -> User | None:
        """Look up a user by exact (already normalized) email."""
        with self._db.scope(conn) as c:
            row = c.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int, conn: Connection | None = None) -> User | None:
        with self._db.scope(conn) as c:
            row = c.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def create(self, email: str, hashed_password: str, conn: Connection | None = None) -> User:
        """Insert a user and return the stored row.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        now = _now_iso()
        with self._db.scope(conn) as c:
            result = c.execute(
                _users.insert().values(email=email, password=hashed_password, createdAt=now, updatedAt=now)
            )
            user_id = result.inserted_primary_key[0]
            row = c.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, user_id: int, conn: Connection | None = None) -> UserProfile | None:
        with self._db.scope(conn) as c:
            row = c.execute(_profiles.select().where(_profiles.c.userId == user_id)).fetchone()
        return _row_to_profile(row) if row is not None else None

    def create_profile(self, user_id: int, fields: dict, conn: Connection | None = None) -> UserProfile:
        """Insert the profile row for user_id with the given fields (others NULL)."""
        values = {_PROFILE_COLUMNS[k]: fields.get(k) for k in PROFILE_FIELDS}
        with self._db.scope(conn) as c:
            c.execute(_profiles.insert().values(userId=user_id, updatedAt=_now_iso(), **values))
            row = c.execute(_profiles.select().where(_profiles.c.userId == user_id)).fetchone()
        return _row_to_profile(row)

    def update_profile(self, user_id: int, fields: dict) -> UserProfile:
        """Upsert: create the profile if absent, else merge and write back.

        Only keys of fields whose value is not None overlay the stored row.
        The final re-read returns what the database actually stored.
        Read and write are separate round-trips; a concurrent writer can
        interleave between them.
        """
        existing = self.get_profile(user_id)
        if existing is None:
            return self.create_profile(user_id, fields)

        values = {
            _PROFILE_COLUMNS[k]: fields[k] if fields.get(k) is not None else getattr(existing, k)
            for k in PROFILE_FIELDS
        }
        with self._db.transaction() as c:
            c.execute(_profiles.update().where(_profiles.c.userId == user_id).values(updatedAt=_now_iso(), **values))

        updated = self.get_profile(user_id)
        if updated is None:
            raise RuntimeError("Profile disappeared during update")
        return updated


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password=row.password,
        created_at=row.createdAt,
        updated_at=row.updatedAt,
    )


def _row_to_profile(row) -> UserProfile:
    return UserProfile(
        id=row.id,
        user_id=row.userId,
        first_name=row.firstName,
        last_name=row.lastName,
        phone=row.phone,
        company=row.company,
        position=row.position,
        bio=row.bio,
        updated_at=row.updatedAt,
    )
