"""
Session issuer implementations.

BearerTokenIssuer keeps no server state: the access token travels in the
response body and the Authorization header, and the password-reset proof is
a short-lived JWT bound to a fingerprint of the current password hash.

ServerSessionIssuer stores sessions in the database. The browser holds two
httpOnly cookies: admin_sid (opaque session id) and admin_token (JWT whose
sub/sid must match the stored session).
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from feedback_admin.core.config import Settings
from feedback_admin.core.exceptions import Unauthorized
from feedback_admin.core.logging_config import get_logger
from feedback_admin.core.security import (
    create_access_token,
    create_reset_token,
    decode_access_token,
    decode_reset_token,
)
from feedback_admin.models.base import utc_now
from feedback_admin.repositories.session import SessionRepository
from feedback_admin.services.interfaces.session_issuer import (
    ISessionIssuer,
    IssuedSession,
    ResetClaim,
    ResetGrant,
    SessionCredentials,
)


logger = get_logger(__name__)

SESSION_COOKIE = "admin_sid"
TOKEN_COOKIE = "admin_token"


class BearerTokenIssuer(ISessionIssuer):
    """
    Stateless JWT sessions.

    Example:
        >>> issuer = BearerTokenIssuer(settings)
        >>> issued = await issuer.issue(admin.id, ANONYMOUS)
        >>> await issuer.validate(SessionCredentials(bearer_token=issued.bearer_token))
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utc_now):
        self.settings = settings
        self.clock = clock

    async def issue(self, admin_id: str, credentials: SessionCredentials) -> IssuedSession:
        lifetime = timedelta(minutes=self.settings.access_token_expire_minutes)
        token = create_access_token(
            admin_id,
            expires_delta=lifetime,
            secret_key=self.settings.secret_key,
        )
        return IssuedSession(
            admin_id=admin_id,
            expires_at=self.clock() + lifetime,
            bearer_token=token,
        )

    async def validate(self, credentials: SessionCredentials) -> str:
        if not credentials.bearer_token:
            raise Unauthorized("Authentication required")

        token_data = decode_access_token(credentials.bearer_token, self.settings.secret_key)
        if token_data is None:
            raise Unauthorized("Authentication failed")

        return token_data.admin_id

    async def revoke(self, credentials: SessionCredentials) -> None:
        # Nothing stored server-side; the client discards its token
        return None

    async def grant_reset(
        self,
        email: str,
        fingerprint: str,
        credentials: SessionCredentials,
    ) -> ResetGrant:
        token = create_reset_token(
            email,
            fingerprint,
            expires_delta=timedelta(minutes=self.settings.reset_token_expire_minutes),
            secret_key=self.settings.secret_key,
        )
        return ResetGrant(reset_token=token)

    async def redeem_reset(
        self,
        proof: Optional[str],
        credentials: SessionCredentials,
    ) -> ResetClaim:
        if not proof:
            raise Unauthorized("Reset not authorized")

        data = decode_reset_token(proof, self.settings.secret_key)
        if data is None:
            raise Unauthorized("Reset not authorized")

        return ResetClaim(email=data.email, fingerprint=data.fingerprint)

    def write(self, response: Response, issued: IssuedSession) -> None:
        return None

    def write_reset(self, response: Response, grant: ResetGrant) -> None:
        return None

    def clear(self, response: Response) -> None:
        return None


class ServerSessionIssuer(ISessionIssuer):
    """
    Database-backed sessions carried in httpOnly cookies.

    A request is authenticated only when the admin_token cookie verifies
    with SESSION_SECRET, its sid equals the admin_sid cookie, and the stored
    session for that sid belongs to the token's subject.
    """

    def __init__(
        self,
        settings: Settings,
        db: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.sessions = SessionRepository(db, clock=clock)

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_expire_minutes)

    async def issue(self, admin_id: str, credentials: SessionCredentials) -> IssuedSession:
        record = await self.sessions.create(
            self.lifetime,
            admin_id=admin_id,
            replaces=credentials.session_id,
        )
        token = self._token_for(admin_id, record.id)
        logger.info("Session created", extra={"admin_id": admin_id})
        return IssuedSession(
            admin_id=admin_id,
            expires_at=record.expires_at,
            cookie_token=token,
            session_id=record.id,
        )

    async def validate(self, credentials: SessionCredentials) -> str:
        if not credentials.cookie_token or not credentials.session_id:
            raise Unauthorized("Authentication required")

        token_data = decode_access_token(credentials.cookie_token, self.settings.session_secret)
        if token_data is None:
            raise Unauthorized("Authentication failed")

        if token_data.session_id != credentials.session_id:
            logger.warning("Session cookie does not match token", extra={"admin_id": token_data.admin_id})
            raise Unauthorized("Authentication failed")

        record = await self.sessions.get(credentials.session_id)
        if record is None or record.admin_id != token_data.admin_id:
            raise Unauthorized("Authentication failed")

        return token_data.admin_id

    async def revoke(self, credentials: SessionCredentials) -> None:
        if credentials.session_id:
            await self.sessions.destroy(credentials.session_id)

    async def grant_reset(
        self,
        email: str,
        fingerprint: str,
        credentials: SessionCredentials,
    ) -> ResetGrant:
        """
        Store the reset marker on a brand new session.

        The caller's session id is never reused, so a planted id never
        carries the marker. A logged-in caller keeps their login on the
        new session.
        """
        admin_id = None
        if credentials.session_id and credentials.cookie_token:
            try:
                admin_id = await self.validate(credentials)
            except Unauthorized:
                admin_id = None

        record = await self.sessions.create(
            self.lifetime,
            admin_id=admin_id,
            reset_email=email,
            replaces=credentials.session_id,
        )
        cookie_token = self._token_for(admin_id, record.id) if admin_id else None
        return ResetGrant(session_id=record.id, cookie_token=cookie_token)

    async def redeem_reset(
        self,
        proof: Optional[str],
        credentials: SessionCredentials,
    ) -> ResetClaim:
        if not credentials.session_id:
            raise Unauthorized("Reset not authorized")

        record = await self.sessions.get(credentials.session_id)
        if record is None or not record.reset_email:
            raise Unauthorized("Reset not authorized")

        email = record.reset_email
        if record.admin_id is None:
            await self.sessions.destroy(record.id)
        else:
            await self.sessions.set_reset_email(record, None)

        return ResetClaim(email=email)

    def write(self, response: Response, issued: IssuedSession) -> None:
        self._set_cookie(response, SESSION_COOKIE, issued.session_id)
        self._set_cookie(response, TOKEN_COOKIE, issued.cookie_token)

    def write_reset(self, response: Response, grant: ResetGrant) -> None:
        self._set_cookie(response, SESSION_COOKIE, grant.session_id)
        self._set_cookie(response, TOKEN_COOKIE, grant.cookie_token)

    def clear(self, response: Response) -> None:
        for name in (SESSION_COOKIE, TOKEN_COOKIE):
            response.delete_cookie(
                name,
                path="/",
                domain=self.settings.cookie_domain,
                secure=self.settings.cookie_secure,
                httponly=True,
                samesite="lax",
            )

    def _token_for(self, admin_id: str, session_id: str) -> str:
        return create_access_token(
            admin_id,
            session_id=session_id,
            expires_delta=self.lifetime,
            secret_key=self.settings.session_secret,
        )

    def _set_cookie(self, response: Response, name: str, value: Optional[str]) -> None:
        if value is None:
            return
        response.set_cookie(
            name,
            value,
            max_age=int(self.lifetime.total_seconds()),
            path="/",
            domain=self.settings.cookie_domain,
            secure=self.settings.cookie_secure,
            httponly=True,
            samesite="lax",
        )


def build_session_issuer(
    settings: Settings,
    db: AsyncSession,
    clock: Callable[[], datetime] = utc_now,
) -> ISessionIssuer:
    """
    Select the issuer for settings.auth_mode.

    Args:
        settings: Application settings
        db: Request database session (used by the server-side strategy)
        clock: Time source

    Returns:
        BearerTokenIssuer for "token", ServerSessionIssuer for "session"
    """
    if settings.auth_mode == "session":
        return ServerSessionIssuer(settings, db, clock=clock)
    return BearerTokenIssuer(settings, clock=clock)
