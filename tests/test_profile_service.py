"""Unit tests for auth/profiles.py -- UserService profile rules."""

from __future__ import annotations

import pytest

from auth.profiles import UserService
from auth.store import UserRepository
from core.errors import ValidationError


@pytest.fixture
def user_id(users: UserRepository) -> int:
    return users.create("alice@example.com", "hash").id


def test_placeholder_before_first_save(user_service: UserService, user_id: int) -> None:
    profile = user_service.get_profile(user_id)
    assert profile.id == 0
    assert profile.user_id == user_id
    assert profile.first_name is None
    assert profile.updated_at


def test_update_creates_then_merges(user_service: UserService, notifier, user_id: int) -> None:
    created = user_service.update_profile(user_id, {"first_name": " Alice ", "phone": "555-0100"})
    assert created.id > 0
    assert created.first_name == "Alice"

    merged = user_service.update_profile(user_id, {"company": "Acme"})
    assert merged.id == created.id
    assert merged.first_name == "Alice"
    assert merged.phone == "555-0100"
    assert merged.company == "Acme"

    assert user_service.get_profile(user_id) == merged
    assert notifier.kinds() == ["profile_updated", "profile_updated"]


def test_unknown_keys_ignored(user_service: UserService, user_id: int) -> None:
    profile = user_service.update_profile(user_id, {"bio": "hi", "email": "evil@example.com"})
    assert profile.bio == "hi"


@pytest.mark.parametrize(
    ("field", "limit", "label"),
    [
        ("first_name", 100, "First name"),
        ("last_name", 100, "Last name"),
        ("phone", 20, "Phone number"),
        ("company", 200, "Company name"),
        ("position", 200, "Position"),
        ("bio", 1000, "Bio"),
    ],
)
def test_length_caps(user_service: UserService, user_id: int, field: str, limit: int, label: str) -> None:
    user_service.update_profile(user_id, {field: "x" * limit})
    with pytest.raises(ValidationError, match=f"{label} must be less than {limit} characters"):
        user_service.update_profile(user_id, {field: "x" * (limit + 1)})


def test_all_errors_reported_together(user_service: UserService, user_id: int) -> None:
    with pytest.raises(ValidationError) as exc_info:
        user_service.update_profile(user_id, {"phone": "1" * 21, "bio": "b" * 1001})
    assert exc_info.value.message == "Phone number must be less than 20 characters, Bio must be less than 1000 characters"


def test_failed_validation_writes_nothing(user_service: UserService, user_id: int) -> None:
    with pytest.raises(ValidationError):
        user_service.update_profile(user_id, {"first_name": "ok", "phone": "1" * 21})
    assert user_service.get_profile(user_id).id == 0
