"""
FastAPI dependency functions.

Provides reusable dependency injection functions for FastAPI routes:
settings, clock, database session, session strategy, auth manager and the
authenticated administrator. Tests swap any of them through
app.dependency_overrides.
"""

from datetime import datetime
from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_admin.core.config import Settings, settings
from feedback_admin.core.database import get_db
from feedback_admin.models.admin import Admin
from feedback_admin.models.base import utc_now
from feedback_admin.services.auth_manager import AuthSessionManager
from feedback_admin.services.interfaces.session_issuer import ISessionIssuer, SessionCredentials
from feedback_admin.services.otp_delivery import OtpDeliveryGateway, build_otp_gateway
from feedback_admin.services.session_issuer import (
    SESSION_COOKIE,
    TOKEN_COOKIE,
    build_session_issuer,
)


# HTTP Bearer token scheme; missing headers are reported as 401 by the issuer
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    return settings


def get_clock() -> Callable[[], datetime]:
    """Time source for OTP and session expiry."""
    return utc_now


def get_otp_gateway(
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> OtpDeliveryGateway:
    return build_otp_gateway(app_settings)


async def get_credentials(
    request: Request,
    bearer: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> SessionCredentials:
    """
    Collect everything the caller presents for authentication.

    Args:
        request: Incoming request (cookies)
        bearer: Parsed Authorization header, if any

    Returns:
        SessionCredentials with bearer token and/or cookie values
    """
    return SessionCredentials(
        bearer_token=bearer.credentials if bearer else None,
        cookie_token=request.cookies.get(TOKEN_COOKIE),
        session_id=request.cookies.get(SESSION_COOKIE),
    )


def get_session_issuer(
    db: Annotated[AsyncSession, Depends(get_db)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
) -> ISessionIssuer:
    """Session strategy selected by AUTH_MODE."""
    return build_session_issuer(app_settings, db, clock=clock)


def get_auth_manager(
    db: Annotated[AsyncSession, Depends(get_db)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    gateway: Annotated[OtpDeliveryGateway, Depends(get_otp_gateway)],
    issuer: Annotated[ISessionIssuer, Depends(get_session_issuer)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
) -> AuthSessionManager:
    return AuthSessionManager(db, app_settings, gateway, issuer, clock=clock)


async def get_current_admin(
    credentials: Annotated[SessionCredentials, Depends(get_credentials)],
    issuer: Annotated[ISessionIssuer, Depends(get_session_issuer)],
    manager: Annotated[AuthSessionManager, Depends(get_auth_manager)],
) -> Admin:
    """
    Dependency to get the authenticated administrator.

    Use on every route that requires an admin session.

    Returns:
        Active Admin

    Raises:
        Unauthorized: Missing, invalid or revoked session, or inactive account

    Example:
        @router.get("/protected")
        async def protected_route(admin: CurrentAdmin):
            return {"email": admin.email}
    """
    admin_id = await issuer.validate(credentials)
    return await manager.me(admin_id)


# Type aliases for dependency injection
CurrentAdmin = Annotated[Admin, Depends(get_current_admin)]
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
Credentials = Annotated[SessionCredentials, Depends(get_credentials)]
Issuer = Annotated[ISessionIssuer, Depends(get_session_issuer)]
AuthManager = Annotated[AuthSessionManager, Depends(get_auth_manager)]
