"""HTTP middleware: request correlation, access logging, rate limiting, security headers."""

from feedback_admin.middleware.logging import LoggingMiddleware
from feedback_admin.middleware.rate_limit import RateLimitMiddleware
from feedback_admin.middleware.request_id import RequestIDMiddleware
from feedback_admin.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "RequestIDMiddleware",
    "SecurityHeadersMiddleware",
]
