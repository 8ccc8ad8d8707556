"""
issues/models.py -- Domain dataclass and closed vocabularies for issues.

The enumerations live here as plain tuples so both the service (validation)
and the API models (documentation) read from one source.
"""

from __future__ import annotations

from dataclasses import dataclass

ISSUE_TYPES: tuple[str, ...] = ("cloud-security", "reteam-assessment", "vapt")
ISSUE_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
ISSUE_STATUSES: tuple[str, ...] = ("open", "in-progress", "resolved", "closed")

DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "open"

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 5000

# Human labels used in notification emails
TYPE_LABELS: dict[str, str] = {
    "cloud-security": "Cloud Security",
    "reteam-assessment": "Reteam Assessment",
    "vapt": "VAPT",
}

# Fields a partial update may change
MUTABLE_FIELDS: tuple[str, ...] = ("type", "title", "description", "priority", "status")


@dataclass
class Issue:
    """A security issue owned by exactly one user.

    id is None before the record is written to the database.
    """

    user_id: int
    type: str  # one of ISSUE_TYPES
    title: str
    description: str
    priority: str = DEFAULT_PRIORITY
    status: str = DEFAULT_STATUS
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
