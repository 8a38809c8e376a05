"""
Per-client rate limiting for API routes using a token bucket.

Every client IP gets a bucket holding RATE_LIMIT_MAX tokens that refills
over RATE_LIMIT_WINDOW_SECONDS. Each request under the API prefix consumes
one token; an empty bucket yields 429 with Retry-After. Health probes and
the root endpoint are never limited.

Buckets live in process memory, so limits are per worker.
"""

import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from feedback_admin.core.logging_config import get_logger


logger = get_logger(__name__)


class TokenBucket:
    """
    Token bucket for rate limiting.

    Attributes:
        capacity: Maximum number of tokens (burst size)
        refill_rate: Tokens added per second
        tokens: Currently available tokens
        last_refill: Monotonic time of the last refill
    """

    def __init__(self, capacity: int, refill_rate: float, clock: Callable[[], float] = time.monotonic):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.clock = clock
        self.tokens = float(capacity)
        self.last_refill = clock()

    def consume(self, tokens: int = 1) -> bool:
        """
        Take tokens if available, refilling for the elapsed time first.

        Returns:
            True if the request may proceed
        """
        now = self.clock()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def get_wait_time(self) -> float:
        """Seconds until one token is available."""
        if self.tokens >= 1:
            return 0.0
        return (1 - self.tokens) / self.refill_rate


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware keyed by client IP.

    Example:
        app.add_middleware(
            RateLimitMiddleware,
            max_requests=60,
            window_seconds=60,
            path_prefix="/api/",
        )
    """

    def __init__(
        self,
        app,
        max_requests: int = 60,
        window_seconds: int = 60,
        path_prefix: str = "/api/",
        enabled: bool = True,
        cleanup_interval: int = 300,
    ):
        """
        Args:
            app: ASGI application
            max_requests: Requests allowed per window (also the burst size)
            window_seconds: Window length in seconds
            path_prefix: Only paths starting with this prefix are limited
            enabled: Pass-through when False
            cleanup_interval: Seconds between sweeps of idle buckets
        """
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.path_prefix = path_prefix
        self.enabled = enabled
        self.cleanup_interval = cleanup_interval

        # {ip: (bucket, last_access)}
        self.buckets: Dict[str, Tuple[TokenBucket, float]] = {}
        self.last_cleanup = time.monotonic()

    def _get_client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"

    def _get_bucket(self, ip: str) -> TokenBucket:
        now = time.monotonic()
        if now - self.last_cleanup > self.cleanup_interval:
            self._cleanup_idle_buckets(now)

        entry: Optional[Tuple[TokenBucket, float]] = self.buckets.get(ip)
        if entry is None:
            bucket = TokenBucket(
                capacity=self.max_requests,
                refill_rate=self.max_requests / float(self.window_seconds),
            )
        else:
            bucket = entry[0]

        self.buckets[ip] = (bucket, now)
        return bucket

    def _cleanup_idle_buckets(self, now: float) -> None:
        # A bucket idle for a full window is back at capacity anyway
        idle = [
            ip for ip, (_, last_access) in self.buckets.items()
            if now - last_access > self.window_seconds
        ]
        for ip in idle:
            del self.buckets[ip]
        self.last_cleanup = now

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        path = request.url.path
        if not self.enabled or not path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        bucket = self._get_bucket(client_ip)

        if not bucket.consume():
            retry_after = int(bucket.get_wait_time()) + 1
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "client_ip": client_ip,
                    "path": path,
                    "limit": self.max_requests,
                    "request_id": getattr(request.state, "request_id", None),
                },
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "success": False,
                    "message": "Too many requests, please try again later.",
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(int(bucket.tokens))
        return response
