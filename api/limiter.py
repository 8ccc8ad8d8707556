"""
api/limiter.py -- Request quotas.

Two independent limiters live here:

  limiter (slowapi)
      Per-IP brute-force guard for POST /api/auth/login, applied with
      @limiter.limit(). A single shared instance is attached to app.state so
      SlowAPIMiddleware and the route decorator see the same counters.

  FixedWindowRateLimiter + rate_limit()
      The general quota every API route passes through. Keyed by
      "user:<id>" when the request already carries a verified token,
      otherwise "ip:<address>". Per key:

        absent / expired  ->  count = 1, reset_time = now + window
        active            ->  count += 1; count > max_requests -> 429

      A background task in api/main.py calls sweep() periodically to drop
      expired entries so the map does not grow without bound.

      Fixed windows allow up to 2x max_requests in a short burst that
      straddles a window boundary. Accepted for this workload.

      The map is process-local and unguarded. rate_limit() is a coroutine,
      so FastAPI runs it on the event loop thread and no two requests
      mutate the map at the same time. A multi-process deployment needs an
      external counter store (atomic INCR + TTL) instead.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from core.errors import RateLimitError

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float  # epoch seconds


@dataclass(frozen=True)
class RateLimitInfo:
    """Snapshot used to render the X-RateLimit-* headers."""

    limit: int
    remaining: int
    reset: float  # epoch seconds

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": datetime.fromtimestamp(self.reset, tz=timezone.utc).isoformat(),
        }


class FixedWindowRateLimiter:
    """In-memory fixed-window counter.

    Args:
        max_requests: Requests allowed per key per window.
        window_ms:    Window length in milliseconds.
        clock:        Returns the current time in epoch seconds. Tests pass a
                      controllable clock.
    """

    def __init__(self, max_requests: int, window_ms: int, clock: Callable[[], float] = time.time) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_ms / 1000
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}

    def hit(self, key: str) -> RateLimitInfo:
        """Count one request for key.

        Raises:
            RateLimitError: the count for this window exceeds max_requests.
                The exception carries the RateLimitInfo (remaining=0) on
                its .info attribute.
        """
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None or now >= entry.reset_time:
            entry = RateLimitEntry(count=1, reset_time=now + self.window_seconds)
            self._entries[key] = entry
        else:
            entry.count += 1

        if entry.count > self.max_requests:
            exc = RateLimitError(RATE_LIMIT_MESSAGE)
            exc.info = RateLimitInfo(limit=self.max_requests, remaining=0, reset=entry.reset_time)
            raise exc

        return RateLimitInfo(
            limit=self.max_requests,
            remaining=max(0, self.max_requests - entry.count),
            reset=entry.reset_time,
        )

    def sweep(self) -> int:
        """Delete entries whose window has ended. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.reset_time <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def client_key(request: Request) -> str:
    """Limiter key: the authenticated user if known, else the client IP."""
    auth_user = getattr(request.state, "auth_user", None)
    if auth_user is not None:
        return f"user:{auth_user.user_id}"
    return f"ip:{get_remote_address(request)}"


async def rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the fixed-window quota.

    Must be listed after get_current_user in a route's dependencies so the
    key reflects the authenticated user. The info is kept on
    request.state.rate_limit so error responses produced later in the
    pipeline still carry the headers (see api/main.py).
    """
    rate_limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
    try:
        info = rate_limiter.hit(client_key(request))
    except RateLimitError as exc:
        request.state.rate_limit = exc.info
        raise
    request.state.rate_limit = info
    response.headers.update(info.headers())
