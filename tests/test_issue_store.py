"""Unit tests for issues/store.py -- owner-scoped IssueRepository.

Covers:
- create() defaults and identical timestamps
- find_all() newest-first ordering and type filter
- every lookup/update/delete is scoped to the owner
"""

from __future__ import annotations

from issues.models import Issue
from issues.store import IssueRepository


def _issue(user_id: int, title: str = "Open S3 bucket", issue_type: str = "cloud-security") -> Issue:
    return Issue(user_id=user_id, type=issue_type, title=title, description="details")


def test_create_defaults(issue_repo: IssueRepository) -> None:
    issue = issue_repo.create(_issue(1))
    assert issue.id is not None
    assert issue.priority == "medium"
    assert issue.status == "open"
    assert issue.created_at == issue.updated_at


def test_find_all_newest_first(issue_repo: IssueRepository) -> None:
    first = issue_repo.create(_issue(1, "first"))
    second = issue_repo.create(_issue(1, "second"))
    third = issue_repo.create(_issue(1, "third"))
    assert [i.id for i in issue_repo.find_all(1)] == [third.id, second.id, first.id]


def test_find_all_type_filter(issue_repo: IssueRepository) -> None:
    issue_repo.create(_issue(1, "a", "vapt"))
    issue_repo.create(_issue(1, "b", "cloud-security"))
    result = issue_repo.find_all(1, issue_type="vapt")
    assert [i.title for i in result] == ["a"]


def test_find_all_only_owner(issue_repo: IssueRepository) -> None:
    issue_repo.create(_issue(1, "mine"))
    issue_repo.create(_issue(2, "theirs"))
    assert [i.title for i in issue_repo.find_all(1)] == ["mine"]


def test_find_by_id_other_owner_is_none(issue_repo: IssueRepository) -> None:
    issue = issue_repo.create(_issue(1))
    assert issue_repo.find_by_id(issue.id, 1) is not None
    assert issue_repo.find_by_id(issue.id, 2) is None


def test_update_merges_present_fields(issue_repo: IssueRepository) -> None:
    issue = issue_repo.create(_issue(1))
    updated = issue_repo.update(issue.id, 1, {"status": "resolved", "title": None})
    assert updated is not None
    assert updated.status == "resolved"
    assert updated.title == issue.title
    assert updated.created_at == issue.created_at
    assert updated.updated_at >= issue.updated_at


def test_update_other_owner_is_none(issue_repo: IssueRepository) -> None:
    issue = issue_repo.create(_issue(1))
    assert issue_repo.update(issue.id, 2, {"status": "closed"}) is None
    assert issue_repo.find_by_id(issue.id, 1).status == "open"


def test_delete_scoped(issue_repo: IssueRepository) -> None:
    issue = issue_repo.create(_issue(1))
    assert issue_repo.delete(issue.id, 2) is False
    assert issue_repo.delete(issue.id, 1) is True
    assert issue_repo.find_by_id(issue.id, 1) is None
    assert issue_repo.delete(issue.id, 1) is False
