"""
api/routes/auth.py -- Registration, login and session endpoints.

Routes:
  POST /api/auth/register  -- create account; 201 {user, token}
  POST /api/auth/login     -- password login; 200 {user, token}
  POST /api/auth/logout    -- stateless; client discards its token (requires auth)
  GET  /api/auth/me        -- current account without password (requires auth)

Pipeline per route: [get_current_user ->] rate_limit -> body validation -> handler.

Security:
  POST /login also carries a per-IP slowapi limit (LOGIN_RATE_LIMIT,
  default 10/minute) on top of the general fixed-window quota.
  Login returns the same error for unknown email and wrong password.
  Cache-Control: no-store on responses that contain a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter, rate_limit
from api.models import ApiResponse, AuthPayload, LoginRequest, RegisterRequest, UserResponse
from auth.dependencies import get_current_user
from auth.models import TokenPayload
from auth.service import AuthResult, AuthService
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /auth/register: public, rate limited by client IP
# - POST /auth/login:    public, rate limited by client IP (+ slowapi brute-force guard)
# - POST /auth/logout:   requires auth
# - GET  /auth/me:       requires auth
router = APIRouter(prefix="/auth")

_AUTHENTICATED = [Depends(get_current_user), Depends(rate_limit)]


def _auth_payload(result: AuthResult) -> AuthPayload:
    return AuthPayload(user=UserResponse.from_domain(result.user), token=result.token)


@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    response_model_exclude_none=True,
    status_code=201,
    dependencies=[Depends(rate_limit)],
)
def register(request: Request, response: Response, body: RegisterRequest) -> ApiResponse[AuthPayload]:
    """Create an account and return it with an access token."""
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.register(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return ApiResponse(data=_auth_payload(result), message="User registered successfully")


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router so SlowAPIMiddleware finds the route limit
@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit)],
)
def login(request: Request, response: Response, body: LoginRequest) -> ApiResponse[AuthPayload]:
    """Authenticate with email and password."""
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return ApiResponse(data=_auth_payload(result), message="Login successful")


@router.post("/logout", response_model=ApiResponse[None], response_model_exclude_none=True, dependencies=_AUTHENTICATED)
async def logout() -> ApiResponse[None]:
    """Tokens are stateless; logging out is the client discarding its token."""
    return ApiResponse(message="Logout successful")


@router.get("/me", response_model=ApiResponse[UserResponse], response_model_exclude_none=True, dependencies=_AUTHENTICATED)
def me(request: Request, current_user: TokenPayload = Depends(get_current_user)) -> ApiResponse[UserResponse]:
    """Return the authenticated account."""
    auth_service: AuthService = request.app.state.auth_service
    user = auth_service.get_current_user(current_user.user_id)
    return ApiResponse(data=UserResponse.from_domain(user))
