"""
auth/service.py -- Registration, login and current-user lookup.

Business rules:
  - Email and password are required; passwords need at least 6 characters
    and at most 72 bytes once UTF-8 encoded.
  - Emails are compared in normalized (trimmed, lower-case) form, so
    "Alice@Example.com" and "alice@example.com" are the same account.
  - Login failures never say which half was wrong: an unknown email and a
    wrong password raise the identical AuthenticationError, and both paths
    pay the same bcrypt cost (DUMMY_HASH) so timing does not leak it either.
  - The welcome email is fire-and-forget. If dispatch fails the
    registration still succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserRepository
from auth.tokens import DUMMY_HASH, hash_password, issue_token, verify_password
from core.errors import AuthenticationError, ValidationError

if TYPE_CHECKING:
    from notify.email import EmailNotifier

logger = logging.getLogger("apnisec.auth")

MIN_PASSWORD_LENGTH = 6
# bcrypt refuses longer input
MAX_PASSWORD_BYTES = 72
_BAD_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class AuthResult:
    """A user (password hash included -- strip it at the API boundary) and a fresh token."""

    user: User
    token: str


class AuthService:
    def __init__(self, users: UserRepository, notifier: EmailNotifier) -> None:
        self._users = users
        self._notifier = notifier

    def register(self, email: str, password: str) -> AuthResult:
        """Create an account and return it with a token.

        Raises:
            ValidationError: missing fields, short password, or email taken.
        """
        email = normalize_email(email or "")
        if not email or not password:
            raise ValidationError("Email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        # Hash before opening the transaction so the connection is not held
        # for the bcrypt round.
        hashed = hash_password(password)
        try:
            with self._users.transaction() as conn:
                if self._users.get_by_email(email, conn=conn) is not None:
                    raise ValidationError("User with this email already exists")
                user = self._users.create(email, hashed, conn=conn)
        except IntegrityError as exc:
            # A concurrent registration won the UNIQUE(email) race.
            raise ValidationError("User with this email already exists") from exc

        token = issue_token(user.id, user.email)
        logger.info("Registered user id=%d", user.id)

        try:
            self._notifier.send_welcome(user.email)
        except Exception:
            logger.exception("Welcome email dispatch failed for user id=%d", user.id)

        return AuthResult(user=user, token=token)

    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and return the user with a token.

        Raises:
            ValidationError: missing fields.
            AuthenticationError: unknown email or wrong password (same message).
        """
        email = normalize_email(email or "")
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self._users.get_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt
            verify_password(password, DUMMY_HASH)
            raise AuthenticationError(_BAD_CREDENTIALS)
        if not verify_password(password, user.password):
            raise AuthenticationError(_BAD_CREDENTIALS)

        return AuthResult(user=user, token=issue_token(user.id, user.email))

    def get_current_user(self, user_id: int) -> User:
        """Resolve the token's user id to a stored account.

        A valid token for a deleted account is treated as unauthenticated.
        """
        user = self._users.get_by_id(user_id)
        if user is None:
            raise AuthenticationError("User not found")
        return user
