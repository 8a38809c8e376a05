"""
Access logging middleware.

Logs one line when a request starts and one when it completes (or fails),
with method, path, status code, latency and the correlation ID. Query
strings are not logged; the export endpoint carries search terms in them.

Must be registered AFTER RequestIDMiddleware to access request_id.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from feedback_admin.core.logging_config import get_logger


logger = get_logger(__name__)

# Probes hit these every few seconds; completion is logged at DEBUG
QUIET_PATHS = frozenset({"/health", "/health/ready"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    Log output (JSON):
        {
            "timestamp": "2025-11-24T10:30:00.123456",
            "level": "INFO",
            "message": "Request completed",
            "method": "POST",
            "path": "/api/auth/login",
            "status_code": 200,
            "latency_ms": 12.5,
            "request_id": "abc-123"
        }
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        method = request.method
        path = request.url.path
        request_id = getattr(request.state, "request_id", None)
        quiet = path in QUIET_PATHS

        if not quiet:
            logger.info(
                "Request started",
                extra={"method": method, "path": path, "request_id": request_id},
            )

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as exc:
            latency_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {exc}",
                extra={
                    "method": method,
                    "path": path,
                    "latency_ms": round(latency_ms, 2),
                    "request_id": request_id,
                    "exception_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        log = logger.debug if quiet else logger.info
        log(
            "Request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "latency_ms": round(latency_ms, 2),
                "request_id": request_id,
            },
        )
        return response
