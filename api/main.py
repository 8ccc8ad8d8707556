"""
api/main.py -- FastAPI application entry point for ApniSec.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- one access log line per request
  2. security_headers      -- nosniff / frame deny / no-referrer on every response
  3. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  4. CORSMiddleware        -- allows the configured frontend origin
  5. SlowAPIMiddleware     -- enforces the per-route login limit from api.limiter

Lifespan builds the database gateway, repositories, notifier, services and
the fixed-window limiter onto app.state, starts the sweep task, and tears
everything down in reverse on shutdown.

Every error leaves the API in the same envelope: {"success": false, "error": ...}.
Unhandled exceptions are rendered by Starlette's ServerErrorMiddleware, which
sits outside every middleware above: _error_response adds the security
headers itself, and generic_exception_handler logs the failure in place of
the access log line.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import RATE_LIMIT_MESSAGE, FixedWindowRateLimiter, limiter
from api.models import ApiResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.issues import router as issues_router
from api.routes.users import router as users_router
from auth.profiles import UserService
from auth.service import AuthService
from auth.store import UserRepository
from core.config import get_settings
from core.database import Database
from core.errors import AppError
from issues.service import IssueService
from issues.store import IssueRepository
from notify.email import EmailNotifier

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("apnisec.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background sweep task
# ---------------------------------------------------------------------------


async def _sweep_loop(app: FastAPI, interval: float) -> None:
    """Drop expired rate-limit entries every `interval` seconds.

    Runs on the event loop, the same thread as the rate_limit dependency, so
    sweep() never races with hit(). CancelledError from task.cancel() during
    shutdown propagates out of asyncio.sleep and ends the loop.
    """
    while True:
        await asyncio.sleep(interval)
        removed = app.state.rate_limiter.sweep()
        if removed:
            logger.debug("Rate limiter sweep removed %d expired entries", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire application services onto app.state for the server lifetime.

    Startup order follows the dependency graph: database, repositories,
    notifier, services, limiter, sweep task. Shutdown runs in reverse.
    """
    logger.info("ApniSec API starting up")
    db = Database(_settings.database_url, pool_size=_settings.db_pool_size)
    users = UserRepository(db)
    issues = IssueRepository(db)
    notifier = EmailNotifier(
        api_key=_settings.resend_api_key,
        from_email=_settings.resend_from_email,
        frontend_url=_settings.frontend_url,
    )

    app.state.db = db
    app.state.notifier = notifier
    app.state.auth_service = AuthService(users, notifier)
    app.state.user_service = UserService(users, notifier)
    app.state.issue_service = IssueService(issues, users, notifier)
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=_settings.rate_limit_max_requests,
        window_ms=_settings.rate_limit_window_ms,
    )
    app.state.sweep_task = asyncio.create_task(_sweep_loop(app, _settings.rate_limit_sweep_seconds))
    logger.info(
        "Services initialized (rate limit %d requests per %d ms)",
        _settings.rate_limit_max_requests,
        _settings.rate_limit_window_ms,
    )

    yield

    app.state.sweep_task.cancel()
    notifier.close()
    db.close()
    logger.info("ApniSec API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ApniSec API",
    description="Multi-tenant security issue tracking.",
    version="0.1.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST call is outermost.
# Register innermost first: SlowAPI -> CORS -> TrustedHost.
# The @app.middleware("http") functions below are added after these and
# therefore sit outside them.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(issues_router, prefix="/api", tags=["Issues"])
app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(request: Request, status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build the error envelope, carrying X-RateLimit-* if the limiter already ran."""
    response = JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=False, error=error, detail=detail).model_dump(exclude_none=True),
    )
    # 500s are rendered by ServerErrorMiddleware, outside security_headers
    response.headers.update(SECURITY_HEADERS)
    info = getattr(request.state, "rate_limit", None)
    if info is not None:
        response.headers.update(info.headers())
    return response


def _validation_message(error: dict) -> str:
    field = str(error["loc"][-1]) if error.get("loc") else "body"
    if error.get("type") == "value_error":
        # field_validator ValueErrors carry our own text; prefer it as-is.
        raised = error.get("ctx", {}).get("error")
        if raised is not None:
            return str(raised)
        if field == "email":
            return "Please provide a valid email address"
    return f"{field}: {error['msg']}"


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with every field message joined into one string."""
    message = ", ".join(_validation_message(err) for err in exc.errors())
    return _error_response(request, 400, message or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unmatched paths surface as 404 'Route not found'; everything else keeps its detail."""
    if exc.status_code == 404:
        return _error_response(request, 404, "Route not found")
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RateLimitExceeded)
def login_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 for the slowapi login guard.

    Must stay synchronous: SlowAPIMiddleware calls the registered handler
    without awaiting it.
    """
    logger.warning("Login rate limit exceeded for %s", request.client.host if request.client else "unknown")
    response = _error_response(request, 429, RATE_LIMIT_MESSAGE)
    response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60) or 60))
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception text reaches the client only when DEBUG=true; otherwise it
    is written to the log alone.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail = str(exc) if _settings.debug else None
    return _error_response(request, 500, "Internal server error", detail)


# ---------------------------------------------------------------------------
# Health endpoint
#
# Outside the routers: no auth, no rate limit. Load balancers must not be
# throttled.
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> JSONResponse | HealthResponse:
    """Liveness plus a database round trip."""
    timestamp = datetime.now(timezone.utc).isoformat()
    if not request.app.state.db.ping():
        return JSONResponse(status_code=503, content={"status": "unavailable", "timestamp": timestamp})
    return HealthResponse(timestamp=timestamp)
