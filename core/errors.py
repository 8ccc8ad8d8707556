"""
core/errors.py -- Typed application faults.

Domain services raise these; route handlers never catch them. api/main.py
registers one exception handler for AppError that turns any of them into the
standard error envelope with the matching status code.

AuthorizationError exists for completeness. Ownership failures surface as
NotFoundError so a caller cannot probe for other tenants' record ids.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for faults that map to a known HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class RateLimitError(AppError):
    status_code = 429
