"""
Domain error taxonomy and the boundary handlers that render it.

Services and repositories raise the AppError subclasses below; the handlers
registered by register_exception_handlers() map each kind to a status code
and a safe JSON body. Anything unexpected is logged and returned as an
opaque 500.
"""

from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedback_admin.core.logging_config import get_logger


logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors that map to a specific HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"
    default_message = "Bad request"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_message = "Authentication required"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Conflict"


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"
    default_message = "Too many requests"


class DeliveryError(AppError):
    """All email transports failed; detail stays in the server log."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "delivery_failed"
    default_message = "Failed to send verification code"


# OTP ledger outcomes
class OtpNotFound(NotFound):
    code = "otp_not_found"
    default_message = "OTP not found or expired"


class OtpExpired(BadRequest):
    code = "otp_expired"
    default_message = "OTP expired"


class InvalidOtp(BadRequest):
    code = "invalid_otp"
    default_message = "Invalid OTP"


class TooManyAttempts(RateLimited):
    code = "too_many_attempts"
    default_message = "Too many attempts"


def _error_body(message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    body.update(extra)
    return body


def format_validation_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """
    Flatten Pydantic errors into per-field entries.

    The leading location segment ("body", "query", ...) is dropped so the
    field path matches the names the client sent.
    """
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in {"body", "query", "path", "header", "cookie"}:
            loc = loc[1:]
        errors.append({
            "field": ".".join(loc),
            "message": error.get("msg", "Invalid value"),
            "code": error.get("type", "value_error"),
        })
    return errors


def register_exception_handlers(app: FastAPI) -> FastAPI:
    """
    Attach the boundary handlers to the application.

    Args:
        app: FastAPI application instance

    Returns:
        The same application, for chaining
    """

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body("Validation failed", errors=format_validation_errors(exc)),
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request rejected",
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "error_code": exc.code,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, code=exc.code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error: {exc}",
            extra={
                "path": request.url.path,
                "request_id": getattr(request.state, "request_id", None),
                "exception_type": type(exc).__name__,
            },
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error"),
        )

    return app
