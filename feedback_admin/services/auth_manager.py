"""
Admin authentication flow.

AuthSessionManager drives the login state machine:

    AwaitingCredentials -> CredentialsVerified -> (OtpPending -> OtpVerified) -> Authenticated

The OTP hop is skipped when REQUIRE_OTP is false. Password reset reuses the
OTP machinery with context "reset" and always requires a code.

The manager never looks at cookies or headers. Everything transport-specific
goes through the ISessionIssuer it is given, so the same code serves both the
bearer-token and the server-session strategies.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from feedback_admin.core.config import Settings
from feedback_admin.core.exceptions import BadRequest, NotFound, Unauthorized
from feedback_admin.core.logging_config import get_logger
from feedback_admin.core.security import password_fingerprint
from feedback_admin.models.admin import Admin
from feedback_admin.models.base import utc_now
from feedback_admin.repositories.admin import AdminRepository
from feedback_admin.repositories.otp import OtpRepository
from feedback_admin.services.interfaces.session_issuer import (
    ISessionIssuer,
    IssuedSession,
    ResetGrant,
    SessionCredentials,
)
from feedback_admin.services.otp_delivery import OtpDeliveryGateway


logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class LoginResult:
    """
    Outcome of a password login or signup.

    Either session is set (authenticated), or resend_available_at is set
    (a code was sent and must be verified next).
    """
    admin: Admin
    session: Optional[IssuedSession] = None
    resend_available_at: Optional[datetime] = None

    @property
    def otp_required(self) -> bool:
        return self.session is None


@dataclass
class VerifyResult:
    """
    Outcome of a successful OTP verification.

    Attributes:
        admin: Administrator the code belonged to
        session: Set for context "login"
        reset_grant: Set for context "reset" without a new password
        password_updated: True when the reset included a new password
    """
    admin: Admin
    session: Optional[IssuedSession] = None
    reset_grant: Optional[ResetGrant] = None
    password_updated: bool = False


class AuthSessionManager:
    """
    Coordinates the credential store, OTP ledger, delivery gateway and
    session issuer for one request.

    Attributes:
        settings: Application settings
        admins: Credential store
        otps: OTP ledger
        gateway: OTP delivery gateway
        issuer: Session strategy in use

    Example:
        >>> manager = AuthSessionManager(db, settings, gateway, issuer)
        >>> result = await manager.login("a@x.com", "Secret123!", credentials)
        >>> result.otp_required
        True
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        gateway: OtpDeliveryGateway,
        issuer: ISessionIssuer,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.admins = AdminRepository(db)
        self.otps = OtpRepository(db, clock=clock, max_attempts=settings.otp_max_attempts)
        self.gateway = gateway
        self.issuer = issuer

    async def login(
        self,
        email: str,
        password: str,
        credentials: SessionCredentials,
    ) -> LoginResult:
        """
        Verify a password and either authenticate or send a login code.

        Args:
            email: Login email
            password: Plaintext password
            credentials: What the caller currently presents

        Returns:
            LoginResult with a session (OTP disabled) or resend_available_at

        Raises:
            Unauthorized: Unknown email, wrong password or inactive account,
                all with the same message
            DeliveryError: The code could not be sent
        """
        admin = await self.admins.find_by_email(email)
        if admin is None or not self.admins.verify_password(password, admin.password_hash):
            logger.info("Login rejected")
            raise Unauthorized(INVALID_CREDENTIALS)

        if not admin.is_active:
            logger.info("Login rejected for inactive administrator", extra={"admin_id": admin.id})
            raise Unauthorized(INVALID_CREDENTIALS)

        if not self.settings.require_otp:
            session = await self.issuer.issue(admin.id, credentials)
            logger.info("Administrator logged in", extra={"admin_id": admin.id})
            return LoginResult(admin=admin, session=session)

        resend_available_at = await self._send_code(admin, "login")
        return LoginResult(admin=admin, resend_available_at=resend_available_at)

    async def resend_otp(self, email: str, context: str) -> datetime:
        """
        Send a fresh code once the resend window has passed.

        Returns:
            When the next resend becomes available

        Raises:
            NotFound: Unknown email
            RateLimited: Called before the current code's resend window elapsed
            DeliveryError: The code could not be sent
        """
        admin = await self._require_admin(email)
        issued = await self.otps.resend(
            admin.id,
            context,
            self.settings.otp_expiry_minutes,
            self.settings.otp_resend_window_seconds,
        )
        await self.gateway.deliver(admin.email, issued.code, context)
        return issued.resend_available_at

    async def verify_otp(
        self,
        email: str,
        code: str,
        context: str,
        credentials: SessionCredentials,
        new_password: Optional[str] = None,
    ) -> VerifyResult:
        """
        Verify a code and complete the step it was issued for.

        For "login" the administrator is authenticated. For "reset" the
        password is replaced when new_password is given; otherwise a
        single-use reset grant is recorded for reset_password().

        Raises:
            NotFound: Unknown email
            OtpNotFound, OtpExpired, InvalidOtp, TooManyAttempts: Ledger outcomes
            Unauthorized: Account deactivated since the code was sent
        """
        admin = await self._require_admin(email)
        await self.otps.verify(admin.id, context, code)

        if context == "login":
            if not admin.is_active:
                raise Unauthorized(INVALID_CREDENTIALS)
            session = await self.issuer.issue(admin.id, credentials)
            logger.info("Administrator logged in", extra={"admin_id": admin.id})
            return VerifyResult(admin=admin, session=session)

        if new_password:
            await self.admins.update_password(admin.email, new_password)
            return VerifyResult(admin=admin, password_updated=True)

        grant = await self.issuer.grant_reset(
            admin.email,
            password_fingerprint(admin.password_hash),
            credentials,
        )
        logger.info("Password reset authorized", extra={"admin_id": admin.id})
        return VerifyResult(admin=admin, reset_grant=grant)

    async def forgot_password(self, email: str) -> datetime:
        """
        Start a password reset by sending a "reset" code.

        Sent regardless of REQUIRE_OTP.

        Raises:
            NotFound: Unknown email (no code is created)
            DeliveryError: The code could not be sent
        """
        admin = await self._require_admin(email)
        return await self._send_code(admin, "reset")

    async def reset_password(
        self,
        new_password: str,
        credentials: SessionCredentials,
        reset_token: Optional[str] = None,
    ) -> Admin:
        """
        Replace the password after a verified reset code.

        The grant is consumed: a second call with the same proof fails.

        Raises:
            Unauthorized: No valid grant, or the password already changed since
                the grant was issued
        """
        claim = await self.issuer.redeem_reset(reset_token, credentials)

        admin = await self.admins.find_by_email(claim.email)
        if admin is None:
            raise Unauthorized("Reset not authorized")

        if claim.fingerprint is not None and claim.fingerprint != password_fingerprint(admin.password_hash):
            logger.warning("Reset proof reused", extra={"admin_id": admin.id})
            raise Unauthorized("Reset not authorized")

        return await self.admins.update_password(admin.email, new_password)

    async def signup(
        self,
        email: str,
        password: str,
        confirm_password: str,
        name: Optional[str],
        credentials: SessionCredentials,
    ) -> LoginResult:
        """
        Register a new administrator and authenticate them immediately.

        Raises:
            BadRequest: Password and confirmation differ (nothing is created)
            Conflict: Email already registered
        """
        if password != confirm_password:
            raise BadRequest("Passwords do not match")

        admin = await self.admins.create(email, password, name)
        session = await self.issuer.issue(admin.id, credentials)
        return LoginResult(admin=admin, session=session)

    async def logout(self, credentials: SessionCredentials) -> None:
        """End the caller's session. Safe to call any number of times."""
        await self.issuer.revoke(credentials)

    async def me(self, admin_id: str) -> Admin:
        """
        Load the authenticated administrator.

        Raises:
            Unauthorized: The administrator no longer exists or is inactive
        """
        admin = await self.admins.get(admin_id)
        if admin is None or not admin.is_active:
            raise Unauthorized("Not authenticated")
        return admin

    async def _require_admin(self, email: str) -> Admin:
        admin = await self.admins.find_by_email(email)
        if admin is None:
            raise NotFound("Admin not found")
        return admin

    async def _send_code(self, admin: Admin, context: str) -> datetime:
        issued = await self.otps.issue(
            admin.id,
            context,
            self.settings.otp_expiry_minutes,
            self.settings.otp_resend_window_seconds,
        )
        await self.gateway.deliver(admin.email, issued.code, context)
        return issued.resend_available_at
