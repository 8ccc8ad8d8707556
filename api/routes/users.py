"""
api/routes/users.py -- Profile endpoints for the authenticated user.

Routes:
  GET /api/users/profile  -- stored profile, or the id=0 placeholder
  PUT /api/users/profile  -- create-or-merge the profile
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.limiter import rate_limit
from api.models import ApiResponse, ProfileResponse, ProfileUpdate
from auth.dependencies import get_current_user
from auth.models import TokenPayload
from auth.profiles import UserService

router = APIRouter(prefix="/users", dependencies=[Depends(get_current_user), Depends(rate_limit)])


@router.get("/profile", response_model=ApiResponse[ProfileResponse], response_model_exclude_none=True)
def get_profile(request: Request, current_user: TokenPayload = Depends(get_current_user)) -> ApiResponse[ProfileResponse]:
    user_service: UserService = request.app.state.user_service
    profile = user_service.get_profile(current_user.user_id)
    return ApiResponse(data=ProfileResponse.from_domain(profile))


@router.put("/profile", response_model=ApiResponse[ProfileResponse], response_model_exclude_none=True)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: TokenPayload = Depends(get_current_user),
) -> ApiResponse[ProfileResponse]:
    user_service: UserService = request.app.state.user_service
    profile = user_service.update_profile(current_user.user_id, body.model_dump(exclude_none=True))
    return ApiResponse(data=ProfileResponse.from_domain(profile), message="Profile updated successfully")
