"""
tests/conftest.py -- Shared test fixtures for ApniSec.

This module provides:
  - db / users / issue_repo: a fresh in-memory Database and repositories per test
  - RecordingNotifier / FailingNotifier: stand-ins for EmailNotifier
  - auth_service / user_service / issue_service: services wired to the above
  - api_client: TestClient over the real app with a patched lifespan
  - register_user: helper that registers through the API and returns auth headers

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. Each fixture instance gets its own name so tests never share rows.

DEBUG and the limiter settings must be set before any app import:
get_settings() is cached at first call and the login limit string is read
when api.routes.auth is imported.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any auth/core import so get_settings() auto-generates
# SECRET_KEY in dev mode and the quotas do not interfere with ordinary tests.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "10000")
os.environ.setdefault("RESEND_API_KEY", "")

import pytest
from fastapi.testclient import TestClient

from api.limiter import FixedWindowRateLimiter
from api.main import app
from auth.profiles import UserService
from auth.service import AuthService
from auth.store import UserRepository
from core.database import Database
from issues.models import Issue
from issues.service import IssueService
from issues.store import IssueRepository

# ---------------------------------------------------------------------------
# Notifier doubles
# ---------------------------------------------------------------------------


class RecordingNotifier:
    """Collects (kind, to, extra) tuples instead of sending email."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, object]] = []

    @property
    def enabled(self) -> bool:
        return True

    def send_welcome(self, to: str, name: str | None = None) -> None:
        self.sent.append(("welcome", to, name))

    def send_issue_created(self, to: str, issue: Issue) -> None:
        self.sent.append(("issue_created", to, issue.id))

    def send_profile_updated(self, to: str) -> None:
        self.sent.append(("profile_updated", to, None))

    def close(self) -> None:
        pass

    def kinds(self) -> list[str]:
        return [kind for kind, _to, _extra in self.sent]


class FailingNotifier(RecordingNotifier):
    """Every send raises, as a broken mail integration would."""

    def send_welcome(self, to: str, name: str | None = None) -> None:
        raise RuntimeError("mail down")

    def send_issue_created(self, to: str, issue: Issue) -> None:
        raise RuntimeError("mail down")

    def send_profile_updated(self, to: str) -> None:
        raise RuntimeError("mail down")


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def memory_db_url(prefix: str = "apnisec") -> str:
    """Return a unique named shared-memory SQLite URL."""
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database(memory_db_url("unit"))
    yield database
    database.close()


@pytest.fixture
def users(db: Database) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def issue_repo(db: Database) -> IssueRepository:
    return IssueRepository(db)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest.fixture
def auth_service(users: UserRepository, notifier: RecordingNotifier) -> AuthService:
    return AuthService(users, notifier)


@pytest.fixture
def user_service(users: UserRepository, notifier: RecordingNotifier) -> UserService:
    return UserService(users, notifier)


@pytest.fixture
def issue_service(issue_repo: IssueRepository, users: UserRepository, notifier: RecordingNotifier) -> IssueService:
    return IssueService(issue_repo, users, notifier)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(db: Database, notifier: RecordingNotifier):
    """Return an async context manager that replaces the real lifespan.

    Wires the test database and a recording notifier into app.state so
    TestClient routes never touch the real database file or the network.

    The sweep_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        users = UserRepository(db)
        issues = IssueRepository(db)
        app.state.db = db
        app.state.notifier = notifier
        app.state.auth_service = AuthService(users, notifier)
        app.state.user_service = UserService(users, notifier)
        app.state.issue_service = IssueService(issues, users, notifier)
        app.state.rate_limiter = FixedWindowRateLimiter(max_requests=10_000, window_ms=900_000)
        app.state.sweep_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.sweep_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, RecordingNotifier], None, None]:
    """Yield (client, notifier) over a fresh database.

    The TestClient uses the real FastAPI app, middleware and exception
    handlers; only the lifespan is swapped.
    """
    database = Database(memory_db_url("api"))
    notifier = RecordingNotifier()
    app.router.lifespan_context = _patch_lifespan(database, notifier)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, notifier

    database.close()


@pytest.fixture
def register_user(api_client: tuple[TestClient, RecordingNotifier]) -> Callable[..., dict[str, str]]:
    """Return a function that registers an account and yields its auth headers."""
    client, _notifier = api_client

    def _register(email: str = "alice@example.com", password: str = "secret123") -> dict[str, str]:
        resp = client.post("/api/auth/register", json={"email": email, "password": password})
        assert resp.status_code == 201, resp.text
        return {"Authorization": f"Bearer {resp.json()['data']['token']}"}

    return _register
