"""
Security headers middleware.

The service only returns JSON and file downloads, so the policy is strict:
nothing may be framed, sniffed or loaded from the responses. The interactive
API docs need inline scripts and are exempted from the CSP.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'; form-action 'none'"

DOCS_PATHS = frozenset({"/docs", "/redoc", "/openapi.json", "/docs/oauth2-redirect"})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds OWASP-recommended response headers.

    Example:
        app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    """

    def __init__(self, app, hsts: bool = False, csp_policy: str = API_CSP):
        """
        Args:
            app: ASGI application
            hsts: Send Strict-Transport-Security (only behind HTTPS)
            csp_policy: Content-Security-Policy for non-docs responses
        """
        super().__init__(app)
        self.hsts = hsts
        self.csp_policy = csp_policy

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        if request.url.path not in DOCS_PATHS:
            response.headers["Content-Security-Policy"] = self.csp_policy

        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"

        return response
