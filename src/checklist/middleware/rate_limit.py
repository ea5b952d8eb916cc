"""Fixed-window rate limiting per (endpoint group, client IP).

Counters live in process memory unless ``redis_url`` is configured, in which
case they are shared through Redis INCR + EXPIRE.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from checklist.middleware.error_handler import APIError, error_body
from checklist.redis_client import get_redis

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from checklist.config import Settings

logger = structlog.get_logger()

# Paths exempt from the general limiter
_EXEMPT_PATHS = frozenset({"/api/health", "/api/ready"})


@dataclass(frozen=True)
class RateLimitRule:
    group: str
    max_requests: int
    window_seconds: int
    message: str


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class WindowStore(Protocol):
    async def incr(self, key: str, ttl_seconds: int) -> int: ...


class MemoryWindowStore:
    """In-process counters; expired windows are swept as new ones appear."""

    def __init__(self, sweep_every: int = 1000, clock: Callable[[], float] = time.monotonic) -> None:
        self._counts: dict[str, tuple[float, int]] = {}
        self._sweep_every = sweep_every
        self._clock = clock

    async def incr(self, key: str, ttl_seconds: int) -> int:
        now = self._clock()
        expires_at, count = self._counts.get(key, (0.0, 0))
        if expires_at <= now:
            expires_at, count = now + ttl_seconds, 0
        count += 1
        self._counts[key] = (expires_at, count)
        if len(self._counts) >= self._sweep_every:
            self._counts = {k: v for k, v in self._counts.items() if v[0] > now}
        return count


class RedisWindowStore:
    """
    Counters shared across workers through Redis.

    When Redis is unreachable or not initialized the hit is not counted
    (count 0), so requests pass unlimited rather than failing.
    """

    def __init__(self, client: Callable[[], Redis] = get_redis) -> None:
        self._client = client

    async def incr(self, key: str, ttl_seconds: int) -> int:
        try:
            pipe = self._client().pipeline()
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)
            results: list[Any] = await pipe.execute()
        except (RedisError, RuntimeError):
            logger.warning("rate_limit_store_unavailable", key=key, exc_info=True)
            return 0
        return int(results[0])


class FixedWindowLimiter:
    """Counts hits per client in consecutive windows of ``window_seconds``."""

    def __init__(self, rule: RateLimitRule, store: WindowStore) -> None:
        self.rule = rule
        self.store = store

    async def hit(self, client: str) -> RateLimitResult:
        """Record one request from ``client`` and report whether it may proceed."""
        now = int(time.time())
        window = now // self.rule.window_seconds
        key = f"ratelimit:{self.rule.group}:{client}:{window}"
        count = await self.store.incr(key, self.rule.window_seconds + 1)
        retry_after = max(1, (window + 1) * self.rule.window_seconds - now)
        return RateLimitResult(
            allowed=count <= self.rule.max_requests,
            limit=self.rule.max_requests,
            remaining=max(0, self.rule.max_requests - count),
            retry_after=retry_after,
        )


def _rules(settings: Settings) -> list[RateLimitRule]:
    return [
        RateLimitRule(
            "auth",
            settings.rate_limit_auth_requests,
            settings.rate_limit_auth_window_seconds,
            "Too many authentication attempts. Please try again after 10 minutes.",
        ),
        RateLimitRule(
            "otp",
            settings.rate_limit_otp_requests,
            settings.rate_limit_otp_window_seconds,
            "Too many OTP requests. Please try again after 10 minutes.",
        ),
        RateLimitRule(
            "password_reset",
            settings.rate_limit_password_reset_requests,
            settings.rate_limit_password_reset_window_seconds,
            "Too many password reset requests. Please try again after 10 minutes.",
        ),
        RateLimitRule(
            "list_creation",
            settings.rate_limit_list_creation_requests,
            settings.rate_limit_list_creation_window_seconds,
            "Too many lists created. Please try again after 30 minutes.",
        ),
        RateLimitRule(
            "general",
            settings.rate_limit_general_requests,
            settings.rate_limit_general_window_seconds,
            "Too many requests from this IP. Please try again after 15 minutes.",
        ),
        RateLimitRule(
            "progress_save",
            settings.rate_limit_progress_save_requests,
            settings.rate_limit_progress_save_window_seconds,
            "Too many progress saves. Please slow down.",
        ),
        RateLimitRule(
            "progress_load",
            settings.rate_limit_progress_load_requests,
            settings.rate_limit_progress_load_window_seconds,
            "Too many progress requests. Please slow down.",
        ),
    ]


def build_rate_limiters(settings: Settings) -> dict[str, FixedWindowLimiter]:
    """One limiter per group, or none at all when rate limiting is disabled."""
    if not settings.rate_limit_enabled:
        return {}
    store: WindowStore = RedisWindowStore() if settings.redis_url else MemoryWindowStore()
    return {rule.group: FixedWindowLimiter(rule, store) for rule in _rules(settings)}


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(group: str) -> Callable[[Request], Awaitable[None]]:
    """
    Route dependency enforcing the ``group`` limiter.

    Usage: ``dependencies=[Depends(rate_limit("auth"))]``.
    """

    async def _enforce(request: Request) -> None:
        limiter: FixedWindowLimiter | None = getattr(request.app.state, "rate_limiters", {}).get(group)
        if limiter is None:
            return
        result = await limiter.hit(client_ip(request))
        if not result.allowed:
            logger.warning("rate_limited", group=group, client=client_ip(request))
            raise APIError(
                429,
                limiter.rule.message,
                headers={"Retry-After": str(result.retry_after)},
                retry_after=result.retry_after,
            )

    return _enforce


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the general limiter to every API path except health checks."""

    def __init__(self, app: Any, limiter: FixedWindowLimiter | None = None) -> None:  # noqa: ANN401
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit, return 429 if exceeded."""
        path = request.url.path
        if self.limiter is None or not path.startswith("/api") or path in _EXEMPT_PATHS:
            return await call_next(request)

        result = await self.limiter.hit(client_ip(request))
        if not result.allowed:
            logger.warning("rate_limited", group="general", client=client_ip(request))
            return JSONResponse(
                status_code=429,
                content=error_body(429, self.limiter.rule.message, retry_after=result.retry_after),
                headers={
                    "Retry-After": str(result.retry_after),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(result.limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        return response
