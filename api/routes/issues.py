"""
api/routes/issues.py -- Owner-scoped CRUD for security issues.

Routes:
  GET    /api/issues?type=<type>  -- caller's issues, newest first
  POST   /api/issues              -- create; 201
  GET    /api/issues/{issue_id}   -- one issue
  PUT    /api/issues/{issue_id}   -- partial update
  DELETE /api/issues/{issue_id}   -- delete

Every route requires auth and passes the fixed-window quota keyed by user.
An id that belongs to another account returns 404, exactly like an id that
does not exist.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.limiter import rate_limit
from api.models import ApiResponse, IssueCreate, IssueResponse, IssueUpdate
from auth.dependencies import get_current_user
from auth.models import TokenPayload
from issues.service import IssueService

# Router-level dependencies run in order: authenticate, then count the
# request against the caller's quota.
router = APIRouter(prefix="/issues", dependencies=[Depends(get_current_user), Depends(rate_limit)])


def _service(request: Request) -> IssueService:
    return request.app.state.issue_service


@router.get("", response_model=ApiResponse[list[IssueResponse]], response_model_exclude_none=True)
def list_issues(
    request: Request,
    type: Optional[str] = None,
    current_user: TokenPayload = Depends(get_current_user),
) -> ApiResponse[list[IssueResponse]]:
    """List the caller's issues, optionally filtered by type."""
    issues = _service(request).get_all_issues(current_user.user_id, type)
    return ApiResponse(data=[IssueResponse.from_domain(i) for i in issues])


@router.post("", response_model=ApiResponse[IssueResponse], response_model_exclude_none=True, status_code=201)
def create_issue(
    request: Request,
    body: IssueCreate,
    current_user: TokenPayload = Depends(get_current_user),
) -> ApiResponse[IssueResponse]:
    issue = _service(request).create_issue(current_user.user_id, body.model_dump())
    return ApiResponse(data=IssueResponse.from_domain(issue), message="Issue created successfully")


@router.get("/{issue_id}", response_model=ApiResponse[IssueResponse], response_model_exclude_none=True)
def get_issue(
    request: Request,
    issue_id: int,
    current_user: TokenPayload = Depends(get_current_user),
) -> ApiResponse[IssueResponse]:
    issue = _service(request).get_issue(issue_id, current_user.user_id)
    return ApiResponse(data=IssueResponse.from_domain(issue))


@router.put("/{issue_id}", response_model=ApiResponse[IssueResponse], response_model_exclude_none=True)
def update_issue(
    request: Request,
    issue_id: int,
    body: IssueUpdate,
    current_user: TokenPayload = Depends(get_current_user),
) -> ApiResponse[IssueResponse]:
    """Apply the fields present in the body; omitted fields keep their value."""
    issue = _service(request).update_issue(issue_id, current_user.user_id, body.model_dump(exclude_none=True))
    return ApiResponse(data=IssueResponse.from_domain(issue), message="Issue updated successfully")


@router.delete("/{issue_id}", response_model=ApiResponse[None], response_model_exclude_none=True)
def delete_issue(
    request: Request,
    issue_id: int,
    current_user: TokenPayload = Depends(get_current_user),
) -> ApiResponse[None]:
    _service(request).delete_issue(issue_id, current_user.user_id)
    return ApiResponse(message="Issue deleted successfully")
