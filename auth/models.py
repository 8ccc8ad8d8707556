"""
auth/models.py -- Domain dataclasses for account entities.

Pattern: Data class (pure data container, zero logic). Repositories and
services do the work; api/models.py owns the HTTP shape.

Layer rule: no imports from api/, issues/ or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is stored lower-cased; uniqueness is enforced by the users table.
    password holds the bcrypt hash and never leaves the service layer --
    response models are built field by field and omit it.
    """

    email: str
    password: str
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass
class UserProfile:
    """Optional personal details, one row per user.

    id == 0 marks the synthetic default returned before the user has saved a
    profile for the first time (see UserService.get_profile).
    """

    user_id: int
    id: int = 0
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    bio: str | None = None
    updated_at: str = ""


@dataclass(frozen=True)
class TokenPayload:
    """Identity carried by a verified access token."""

    user_id: int
    email: str


# Profile columns a user may edit, in display order.
PROFILE_FIELDS: tuple[str, ...] = ("first_name", "last_name", "phone", "company", "position", "bio")
