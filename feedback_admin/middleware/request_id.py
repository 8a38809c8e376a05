"""
Request ID middleware for correlation tracking.

Every request gets an identifier in request.state.request_id, echoed back in
the X-Request-ID response header. A client-supplied X-Request-ID is reused
when it looks sane, so the dashboard can correlate its own logs.
"""

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


REQUEST_ID_HEADER = "X-Request-ID"

# Anything else (overlong values, control characters) is replaced
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns or propagates a per-request correlation ID.

    Must be registered so that it runs before LoggingMiddleware and the
    exception handlers, which read request.state.request_id.

    Example:
        app.add_middleware(RequestIDMiddleware)
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id or not _VALID_REQUEST_ID.match(request_id):
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
