"""Unit tests for notify/email.py -- EmailNotifier.

Covers:
- disabled mode (no API key) sends nothing
- enabled mode posts to the Resend API with bearer auth
- user input is HTML-escaped in message bodies
- HTTP failures and unexpected errors are logged, never raised
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from unittest.mock import MagicMock

import pytest
import requests

from issues.models import Issue
from notify.email import RESEND_API, EmailNotifier


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def email(session: MagicMock) -> EmailNotifier:
    return EmailNotifier(
        api_key="re_test",
        from_email="noreply@apnisec.test",
        frontend_url="https://app.apnisec.test/",
        session=session,
        executor=ImmediateExecutor(),
    )


def _issue() -> Issue:
    return Issue(
        id=1,
        user_id=1,
        type="vapt",
        title="<script>alert(1)</script>",
        description="a & b",
        priority="high",
        status="open",
    )


def test_disabled_mode_sends_nothing(session: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
    notifier = EmailNotifier(api_key="", from_email="x@y.z", session=session, executor=ImmediateExecutor())
    assert not notifier.enabled
    with caplog.at_level(logging.INFO, logger="apnisec.notify"):
        notifier.send_welcome("alice@example.com")
    session.post.assert_not_called()
    assert "Email service disabled" in caplog.text


def test_welcome_posts_to_resend(email: EmailNotifier, session: MagicMock) -> None:
    email.send_welcome("alice@example.com")
    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == RESEND_API
    assert kwargs["headers"] == {"Authorization": "Bearer re_test"}
    assert kwargs["json"]["to"] == ["alice@example.com"]
    assert kwargs["json"]["from"] == "noreply@apnisec.test"
    assert "Welcome to ApniSec" in kwargs["json"]["subject"]
    assert "https://app.apnisec.test/dashboard" in kwargs["json"]["html"]
    assert kwargs["timeout"] == 10


def test_issue_created_escapes_user_input(email: EmailNotifier, session: MagicMock) -> None:
    email.send_issue_created("alice@example.com", _issue())
    body = session.post.call_args.kwargs["json"]["html"]
    assert "<script>" not in body
    assert "&lt;script&gt;" in body
    assert "a &amp; b" in body
    assert "VAPT" in body


def test_profile_updated(email: EmailNotifier, session: MagicMock) -> None:
    email.send_profile_updated("alice@example.com")
    assert session.post.call_args.kwargs["json"]["subject"] == "Profile Updated Successfully"


def test_http_error_is_logged_not_raised(
    email: EmailNotifier, session: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError("422 Unprocessable")
    with caplog.at_level(logging.WARNING, logger="apnisec.notify"):
        email.send_welcome("alice@example.com")
    assert "Failed to send email" in caplog.text


def test_unexpected_error_is_logged_not_raised(
    email: EmailNotifier, session: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    session.post.side_effect = KeyError("boom")
    with caplog.at_level(logging.ERROR, logger="apnisec.notify"):
        email.send_profile_updated("alice@example.com")
    assert "Unexpected error sending email" in caplog.text


def test_close_keeps_injected_executor(session: MagicMock) -> None:
    executor = MagicMock(spec=Executor)
    notifier = EmailNotifier(api_key="k", from_email="x@y.z", session=session, executor=executor)
    notifier.close()
    executor.shutdown.assert_not_called()
    session.close.assert_called_once()
