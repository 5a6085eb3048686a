"""API middleware for rate limiting, security headers and request tracing.

Rate limiting uses Redis in production and an in-process sliding window
otherwise.
"""

import asyncio
import time
from collections import defaultdict, deque
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ..config import get_settings
from ..logging import get_context_logger, log_api_request
from . import RateLimitError, error_response
from .audit import AuditMiddleware, get_client_ip

logger = get_context_logger(__name__, component="middleware")

# category -> (requests, window_seconds)
RATE_LIMITS = {
    "default": (100, 60),
    "login": (5, 900),
    "password": (3, 900),
    "auth": (20, 60),
    "upload": (20, 60),
    "export": (10, 60),
}

# Route prefixes to rate limit categories, most specific first
ROUTE_CATEGORIES = {
    "/api/auth/login": "login",
    "/api/auth/password": "password",
    "/api/auth": "auth",
    "/api/admin/export": "export",
}

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data: blob:; connect-src 'self'"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Reporting needs the browser's location and camera
    "Permissions-Policy": (
        "accelerometer=(), gyroscope=(), magnetometer=(), microphone=(), "
        "payment=(), usb=(), camera=(self), geolocation=(self)"
    ),
}


def get_rate_limit_category(path: str, method: str = "GET") -> str:
    for prefix, category in ROUTE_CATEGORIES.items():
        if path.startswith(prefix):
            return category
    if method == "POST" and path.rstrip("/") == "/api/reports":
        return "upload"
    return "default"


def get_client_identifier(request: Request) -> str:
    """The authenticated user if known, else the client IP."""
    user_id = getattr(request.state, "user_id", None)
    return f"user:{user_id}" if user_id else f"ip:{get_client_ip(request)}"


class InMemoryRateLimiter:
    """Sliding-window limiter holding request times per key in process memory."""

    def __init__(self):
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    @staticmethod
    def _expire(hits: deque[float], cutoff: float) -> None:
        while hits and hits[0] <= cutoff:
            hits.popleft()

    async def check_rate_limit(
        self, key: str, max_requests: int, window_seconds: int
    ) -> tuple[bool, int, int]:
        """Count a request against ``key`` unless its window is already full.

        Returns:
            Tuple of (allowed, remaining, reset_seconds)
        """
        now = time.time()
        async with self._lock:
            hits = self._hits[key]
            self._expire(hits, now - window_seconds)
            if len(hits) >= max_requests:
                return False, 0, max(1, int(hits[0] + window_seconds - now))
            hits.append(now)
            return True, max_requests - len(hits), window_seconds

    async def cleanup(self) -> None:
        """Forget keys with no requests inside the longest window."""
        cutoff = time.time() - max(window for _, window in RATE_LIMITS.values())
        async with self._lock:
            for key in list(self._hits):
                self._expire(self._hits[key], cutoff)
                if not self._hits[key]:
                    del self._hits[key]


class RedisRateLimiter:
    """Sliding window over a Redis sorted set per key, shared by all workers."""

    def __init__(self, redis_client, key_prefix: str = "wastewatch:ratelimit:"):
        self._redis = redis_client
        self._key_prefix = key_prefix

    async def check_rate_limit(
        self, key: str, max_requests: int, window_seconds: int
    ) -> tuple[bool, int, int]:
        redis_key = f"{self._key_prefix}{key}"
        now = time.time()
        member = f"{now}:{uuid4().hex[:8]}"

        try:
            pipe = self._redis.pipeline()
            pipe.zremrangebyscore(redis_key, 0, now - window_seconds)
            pipe.zcard(redis_key)
            pipe.zadd(redis_key, {member: now})
            pipe.expire(redis_key, window_seconds + 1)
            _, current_count, _, _ = await pipe.execute()

            if current_count < max_requests:
                return True, max_requests - current_count - 1, window_seconds

            await self._redis.zrem(redis_key, member)
            oldest = await self._redis.zrange(redis_key, 0, 0, withscores=True)
            reset_seconds = int(oldest[0][1] + window_seconds - now) if oldest else window_seconds
            return False, 0, max(1, reset_seconds)
        except Exception as e:
            # Fail open when Redis is unavailable
            logger.warning(f"Redis rate limit error: {e}, allowing request")
            return True, max_requests - 1, window_seconds


_rate_limiter: InMemoryRateLimiter | RedisRateLimiter | None = None


async def get_rate_limiter() -> InMemoryRateLimiter | RedisRateLimiter:
    """Redis-backed in production when reachable, in-memory otherwise."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = await _build_rate_limiter()
    return _rate_limiter


async def _build_rate_limiter() -> InMemoryRateLimiter | RedisRateLimiter:
    settings = get_settings()
    if not settings.is_production:
        return InMemoryRateLimiter()

    import redis.asyncio as redis

    try:
        client = redis.from_url(settings.redis_url)
        await client.ping()
    except Exception as e:
        logger.warning(f"Redis unavailable for rate limiting: {e}")
        return InMemoryRateLimiter()
    logger.info("Using Redis rate limiter")
    return RedisRateLimiter(client)


def reset_rate_limiter() -> None:
    """Drop the current limiter so the next request builds a fresh one."""
    global _rate_limiter
    _rate_limiter = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies ``RATE_LIMITS`` to ``/api`` requests, per client and category."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not get_settings().rate_limit_enabled or not path.startswith("/api/"):
            return await call_next(request)

        client_id = get_client_identifier(request)
        category = get_rate_limit_category(path, request.method)
        max_requests, window_seconds = RATE_LIMITS[category]

        limiter = await get_rate_limiter()
        allowed, remaining, reset_seconds = await limiter.check_rate_limit(
            f"{client_id}:{category}", max_requests, window_seconds
        )
        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                extra={"client": client_id, "category": category, "path": path},
            )
            return error_response(RateLimitError(reset_seconds))

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_seconds)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if get_settings().is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an X-Request-ID and logs API calls with their timing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        if request.url.path.startswith("/api/"):
            log_api_request(
                request.method,
                request.url.path,
                response.status_code,
                round((time.perf_counter() - started) * 1000, 2),
                user_id=getattr(request.state, "user_id", None),
                request_id=request_id,
            )
        return response


def setup_middleware(app) -> None:
    """Install the middleware stack; the last one added runs first."""
    app.add_middleware(AuditMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    logger.info("API middleware configured")
