"""
issues/service.py -- Business rules for security issues (IssueService).

Every lookup goes through IssueRepository with the caller's user id, so an
issue owned by someone else is indistinguishable from one that does not
exist: both raise NotFoundError("Issue not found") and surface as HTTP 404.
A 403 would confirm the id exists; the 404 keeps other tenants' ids opaque.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.store import UserRepository
from core.errors import NotFoundError, ValidationError
from issues.models import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    DESCRIPTION_MAX_LENGTH,
    ISSUE_PRIORITIES,
    ISSUE_STATUSES,
    ISSUE_TYPES,
    MUTABLE_FIELDS,
    TITLE_MAX_LENGTH,
    Issue,
)
from issues.store import IssueRepository

if TYPE_CHECKING:
    from notify.email import EmailNotifier

logger = logging.getLogger("apnisec.issues")


def _check_enum(value: str | None, allowed: tuple[str, ...], label: str) -> None:
    if value is not None and value not in allowed:
        raise ValidationError(f"Invalid {label}. Must be: {', '.join(allowed)}")


def _check_text(value: str | None, max_length: int, label: str) -> None:
    if value is None:
        return
    if not value.strip():
        raise ValidationError(f"{label} is required")
    if len(value.strip()) > max_length:
        raise ValidationError(f"{label} is too long (max {max_length} characters)")


class IssueService:
    def __init__(self, issues: IssueRepository, users: UserRepository, notifier: EmailNotifier) -> None:
        self._issues = issues
        self._users = users
        self._notifier = notifier

    def get_all_issues(self, user_id: int, issue_type: str | None = None) -> list[Issue]:
        if issue_type:
            _check_enum(issue_type, ISSUE_TYPES, "filter type")
        return self._issues.find_all(user_id, issue_type or None)

    def get_issue(self, issue_id: int, user_id: int) -> Issue:
        issue = self._issues.find_by_id(issue_id, user_id)
        if issue is None:
            raise NotFoundError("Issue not found")
        return issue

    def create_issue(self, user_id: int, data: dict) -> Issue:
        """Validate and insert a new issue, then send the confirmation email.

        Required: type, title, description. Optional: priority (medium),
        status (open).
        """
        if not data.get("type"):
            raise ValidationError(f"Invalid issue type. Must be: {', '.join(ISSUE_TYPES)}")
        _check_enum(data["type"], ISSUE_TYPES, "issue type")
        _check_text(data.get("title") or "", TITLE_MAX_LENGTH, "Title")
        _check_text(data.get("description") or "", DESCRIPTION_MAX_LENGTH, "Description")
        _check_enum(data.get("priority"), ISSUE_PRIORITIES, "priority")
        _check_enum(data.get("status"), ISSUE_STATUSES, "status")

        issue = self._issues.create(
            Issue(
                user_id=user_id,
                type=data["type"],
                title=data["title"].strip(),
                description=data["description"].strip(),
                priority=data.get("priority") or DEFAULT_PRIORITY,
                status=data.get("status") or DEFAULT_STATUS,
            )
        )
        logger.info("Issue id=%d created by user id=%d", issue.id, user_id)

        user = self._users.get_by_id(user_id)
        if user is not None:
            try:
                self._notifier.send_issue_created(user.email, issue)
            except Exception:
                logger.exception("Issue email dispatch failed for issue id=%d", issue.id)
        return issue

    def update_issue(self, issue_id: int, user_id: int, data: dict) -> Issue:
        """Apply a partial update to an owned issue.

        Fields absent from data (or None) keep their stored value.

        Raises:
            NotFoundError: missing or owned by another user.
            ValidationError: a present field fails its rule.
        """
        self.get_issue(issue_id, user_id)

        fields = {name: data.get(name) for name in MUTABLE_FIELDS if data.get(name) is not None}
        _check_enum(fields.get("type"), ISSUE_TYPES, "issue type")
        _check_enum(fields.get("priority"), ISSUE_PRIORITIES, "priority")
        _check_enum(fields.get("status"), ISSUE_STATUSES, "status")
        _check_text(fields.get("title"), TITLE_MAX_LENGTH, "Title")
        _check_text(fields.get("description"), DESCRIPTION_MAX_LENGTH, "Description")
        for name in ("title", "description"):
            if name in fields:
                fields[name] = fields[name].strip()

        updated = self._issues.update(issue_id, user_id, fields)
        if updated is None:
            # Deleted between the ownership check and the write.
            raise NotFoundError("Issue not found")
        return updated

    def delete_issue(self, issue_id: int, user_id: int) -> None:
        self.get_issue(issue_id, user_id)
        if not self._issues.delete(issue_id, user_id):
            raise NotFoundError("Issue not found")
