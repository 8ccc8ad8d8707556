"""Unit tests for core/config.py -- SECRET_KEY policy and defaults."""

from __future__ import annotations

import pytest

from core.config import Settings


def test_dev_mode_generates_key() -> None:
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_production_requires_key() -> None:
    with pytest.raises(ValueError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_key_rejected() -> None:
    with pytest.raises(ValueError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short")


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RATE_LIMIT_MAX_REQUESTS", raising=False)
    monkeypatch.delenv("LOGIN_RATE_LIMIT", raising=False)
    settings = Settings(debug=True, secret_key="k" * 32, _env_file=None)
    assert settings.token_expire_seconds == 86400
    assert settings.rate_limit_window_ms == 900_000
    assert settings.rate_limit_max_requests == 100
    assert settings.login_rate_limit == "10/minute"
    assert settings.db_pool_size == 10
