"""
notify/email.py -- Best-effort transactional email via the Resend HTTP API.

Delivery model: fire-and-forget. Each send_* method hands the message to a
small thread pool and returns immediately; the request that triggered it
never waits on the network. Any failure inside the worker (HTTP error,
timeout, unexpected exception) is logged and dropped. There is no retry and
no delivery guarantee.

When RESEND_API_KEY is empty the notifier runs in disabled mode: it logs the
message it would have sent and does nothing else. This keeps local
development and tests free of network calls.

Message bodies are minimal HTML; every interpolated value goes through
html.escape() because issue titles and descriptions are user input.
"""

from __future__ import annotations

import html
import logging
from concurrent.futures import Executor, ThreadPoolExecutor

import requests

from issues.models import TYPE_LABELS, Issue

logger = logging.getLogger("apnisec.notify")

RESEND_API = "https://api.resend.com/emails"


class EmailNotifier:
    """Sends welcome / issue-created / profile-updated emails.

    Args:
        api_key:      Resend API key. Empty string disables delivery.
        from_email:   Sender address.
        frontend_url: Base URL used for dashboard links in message bodies.
        session:      requests.Session to send with (injectable for tests).
        executor:     Executor that runs deliveries. Defaults to a private
                      two-worker thread pool owned (and shut down) by this object.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        frontend_url: str = "http://localhost:3000",
        session: requests.Session | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._dashboard_url = f"{frontend_url.rstrip('/')}/dashboard"
        self._session = session or requests.Session()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="email")
        if not api_key:
            logger.warning("RESEND_API_KEY not set. Email functionality will be disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Public API -- each call returns immediately
    # ------------------------------------------------------------------

    def send_welcome(self, to: str, name: str | None = None) -> None:
        greeting = html.escape(name or "there")
        body = (
            "<h1>Welcome to ApniSec!</h1>"
            f"<h2>Hello {greeting}!</h2>"
            "<p>Thank you for joining ApniSec, your trusted partner in cybersecurity solutions.</p>"
            "<ul>"
            "<li><strong>Cloud Security</strong> - Protect your cloud infrastructure</li>"
            "<li><strong>Reteam Assessment</strong> - Evaluate your security team's capabilities</li>"
            "<li><strong>VAPT</strong> - Vulnerability Assessment and Penetration Testing</li>"
            "</ul>"
            "<p>Get started by logging into your dashboard and creating your first security issue.</p>"
            f'<p><a href="{html.escape(self._dashboard_url)}">Go to Dashboard</a></p>'
        )
        self._dispatch(to, "Welcome to ApniSec - Your Cybersecurity Partner", body)

    def send_issue_created(self, to: str, issue: Issue) -> None:
        label = TYPE_LABELS.get(issue.type, issue.type)
        body = (
            "<h1>New Issue Created</h1>"
            "<p>Your security issue has been successfully created and is now being tracked.</p>"
            f"<p><strong>Type:</strong> {html.escape(label)}</p>"
            f"<p><strong>Title:</strong> {html.escape(issue.title)}</p>"
            f"<p><strong>Description:</strong> {html.escape(issue.description)}</p>"
            f"<p><strong>Priority:</strong> {html.escape(issue.priority)}</p>"
            f"<p><strong>Status:</strong> {html.escape(issue.status)}</p>"
            f'<p><a href="{html.escape(self._dashboard_url)}">View Dashboard</a></p>'
        )
        self._dispatch(to, f"New Issue Created: {issue.title}", body)

    def send_profile_updated(self, to: str) -> None:
        body = (
            "<h1>Profile Updated</h1>"
            "<p>Your profile has been successfully updated.</p>"
            "<p>If you did not make this change, please contact our support team immediately.</p>"
        )
        self._dispatch(to, "Profile Updated Successfully", body)

    def close(self) -> None:
        """Wait for queued deliveries and release the worker threads."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self._session.close()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _dispatch(self, to: str, subject: str, body: str) -> None:
        if not self.enabled:
            logger.info("Email service disabled. Would send %r to %s", subject, to)
            return
        try:
            self._executor.submit(self._deliver, to, subject, body)
        except RuntimeError as exc:
            # Executor already shut down (application is stopping).
            logger.warning("Email to %s not queued: %s", to, exc)

    def _deliver(self, to: str, subject: str, body: str) -> None:
        """Worker body. Never raises."""
        try:
            resp = self._session.post(
                RESEND_API,
                json={"from": self._from_email, "to": [to], "subject": subject, "html": body},
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=10,
            )
            resp.raise_for_status()
            logger.info("Email %r sent to %s", subject, to)
        except requests.RequestException as exc:
            logger.warning("Failed to send email %r to %s: %s", subject, to, exc)
        except Exception:
            logger.exception("Unexpected error sending email %r to %s", subject, to)
