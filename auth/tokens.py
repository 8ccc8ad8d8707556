"""
auth/tokens.py -- Password hashing and JWT utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       userId, email, iat and exp. There is no server-side session or
       revocation list: a token is valid exactly when its signature checks
       out and exp has not passed. verify_token() raises AuthenticationError
       on any failure so callers never see a partially trusted payload.

  Passwords: bcrypt used directly with a fixed work factor of 10. The
       _DUMMY_HASH constant lets AuthService.login() run bcrypt even when the
       email is unknown, so response time does not reveal which emails exist.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup.

Layer rule: no imports from api/, issues/ or notify/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenPayload
from core.config import get_settings
from core.errors import AuthenticationError

logger = logging.getLogger("apnisec.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"
_WORK_FACTOR = 10

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt raises ValueError for input longer than 72 bytes. AuthService
    and the register request model reject such passwords before they get
    here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_WORK_FACTOR)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed hash verifies as False rather than raising.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
DUMMY_HASH: str = hash_password("apnisec_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(user_id: int, email: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for the given identity.

    Args:
        user_id:        Numeric user ID stored in the DB.
        email:          Account email, carried so handlers need no DB lookup.
        expire_seconds: Lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds. Negative values mint
                        an already-expired token (used by tests).
    """
    duration = expire_seconds if expire_seconds != 0 else _settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_token(token: str) -> TokenPayload:
    """Decode and verify a JWT.

    Raises:
        AuthenticationError: bad signature, expired, malformed, or missing
            the userId/email claims. The message is the same in every case.
    """
    try:
        claims = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        raise AuthenticationError("Invalid or expired token") from exc

    user_id = claims.get("userId")
    email = claims.get("email")
    if not isinstance(user_id, int) or not isinstance(email, str):
        raise AuthenticationError("Invalid or expired token")
    return TokenPayload(user_id=user_id, email=email)
