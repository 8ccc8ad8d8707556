"""
API request and response models for the ApniSec REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in auth/models.py and
issues/models.py, which own the internal domain representation. Route
handlers map between the two with the from_domain() factories below.

Wire format: JSON keys are camelCase (userId, createdAt, firstName).
Request bodies accept either camelCase or the snake_case field name.

Validation split: these models check shape (types, presence, email syntax,
password strength). Business rules -- enumerations, length caps, ownership --
are enforced by the services so they hold for every caller, not just HTTP.
"""

from __future__ import annotations

import re
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User, UserProfile
from issues.models import Issue

DataT = TypeVar("DataT")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel, Generic[DataT]):
    """Uniform response envelope: {success, data?, message?, error?}.

    Routes are registered with response_model_exclude_none=True so absent
    members are dropped from the JSON rather than sent as null.
    """

    success: bool = True
    data: Optional[DataT] = None
    message: Optional[str] = None
    error: Optional[str] = None
    # Exception text for 500s, only populated when DEBUG=true.
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    timestamp: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr = Field(max_length=255)
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        # bcrypt rejects input longer than 72 bytes
        if len(value.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        if not re.search(r"[A-Za-z]", value):
            raise ValueError("Password must contain at least one letter")
        if not re.search(r"[0-9]", value):
            raise ValueError("Password must contain at least one number")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserResponse(_CamelModel):
    """An account as seen by clients. The password hash is never included."""

    id: int
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, created_at=user.created_at, updated_at=user.updated_at)


class AuthPayload(BaseModel):
    """data member of register/login responses."""

    user: UserResponse
    token: str


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


class IssueCreate(_CamelModel):
    """Request body for POST /api/issues."""

    type: str
    title: str
    description: str
    priority: Optional[str] = None
    status: Optional[str] = None


class IssueUpdate(_CamelModel):
    """Request body for PUT /api/issues/{id}. Every field is optional."""

    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None


class IssueResponse(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    user_id: int
    type: str
    title: str
    description: str
    priority: str
    status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, issue: Issue) -> "IssueResponse":
        return cls(
            id=issue.id,
            user_id=issue.user_id,
            type=issue.type,
            title=issue.title,
            description=issue.description,
            priority=issue.priority,
            status=issue.status,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class ProfileUpdate(_CamelModel):
    """Request body for PUT /api/users/profile. Omitted fields stay unchanged."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    bio: Optional[str] = None


class ProfileResponse(_CamelModel):
    """A stored profile, or the id=0 placeholder before the first save."""

    id: int
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    bio: Optional[str] = None
    updated_at: str

    @classmethod
    def from_domain(cls, profile: UserProfile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            first_name=profile.first_name,
            last_name=profile.last_name,
            phone=profile.phone,
            company=profile.company,
            position=profile.position,
            bio=profile.bio,
            updated_at=profile.updated_at,
        )
