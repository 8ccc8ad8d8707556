"""
auth/profiles.py -- Profile read/update rules (UserService).

A user has at most one profile row, created the first time they save one.
Before that, get_profile() returns a synthetic empty profile with id=0
instead of raising -- callers treat id=0 as "not created yet".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from auth.models import PROFILE_FIELDS, UserProfile
from auth.store import UserRepository
from core.errors import ValidationError

if TYPE_CHECKING:
    from notify.email import EmailNotifier

logger = logging.getLogger("apnisec.profiles")

# Maximum lengths per editable field, with the label used in error messages.
PROFILE_LIMITS: dict[str, tuple[int, str]] = {
    "first_name": (100, "First name"),
    "last_name": (100, "Last name"),
    "phone": (20, "Phone number"),
    "company": (200, "Company name"),
    "position": (200, "Position"),
    "bio": (1000, "Bio"),
}


class UserService:
    def __init__(self, users: UserRepository, notifier: EmailNotifier) -> None:
        self._users = users
        self._notifier = notifier

    def get_profile(self, user_id: int) -> UserProfile:
        profile = self._users.get_profile(user_id)
        if profile is None:
            return UserProfile(user_id=user_id, id=0, updated_at=datetime.now(timezone.utc).isoformat())
        return profile

    def update_profile(self, user_id: int, fields: dict) -> UserProfile:
        """Validate and upsert profile fields.

        Unknown keys are ignored. None means "leave unchanged"; strings are
        trimmed before the length check.

        Raises:
            ValidationError: a field exceeds its length cap.
        """
        cleaned: dict[str, str] = {}
        errors: list[str] = []
        for name in PROFILE_FIELDS:
            value = fields.get(name)
            if value is None:
                continue
            value = str(value).strip()
            limit, label = PROFILE_LIMITS[name]
            if len(value) > limit:
                errors.append(f"{label} must be less than {limit} characters")
            cleaned[name] = value
        if errors:
            raise ValidationError(", ".join(errors))

        profile = self._users.update_profile(user_id, cleaned)

        user = self._users.get_by_id(user_id)
        if user is not None:
            try:
                self._notifier.send_profile_updated(user.email)
            except Exception:
                logger.exception("Profile email dispatch failed for user id=%d", user_id)
        return profile
