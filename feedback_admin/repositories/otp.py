"""
OTP ledger: issue, resend and verify one-time codes.

Records are keyed by (admin_id, context). Only the SHA-256 digest of a code
is stored; the plaintext is handed back to the caller once, for delivery.

Verification order matters and is fixed:

1. no record                -> OtpNotFound
2. now >= expires_at        -> delete, OtpExpired
3. attempts >= max_attempts -> delete, TooManyAttempts
4. attempts += 1, committed immediately (atomic conditional UPDATE)
5. digest mismatch          -> InvalidOtp (or TooManyAttempts once the limit is reached)
6. match                    -> delete, success

The increment happens before the comparison, so a wrong guess always
consumes an attempt even if the surrounding request is rolled back.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_admin.core.exceptions import (
    InvalidOtp,
    OtpExpired,
    OtpNotFound,
    RateLimited,
    TooManyAttempts,
)
from feedback_admin.core.logging_config import get_logger
from feedback_admin.core.security import generate_otp, hash_otp, otp_matches
from feedback_admin.models.base import utc_now
from feedback_admin.models.otp_token import OTP_CONTEXTS, OtpToken


logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class IssuedOtp:
    """Result of issuing a code. `code` is the only copy of the plaintext."""
    code: str
    expires_at: datetime
    resend_available_at: datetime


class OtpRepository:
    """
    Repository implementing the OTP ledger.

    Attributes:
        session: SQLAlchemy async session
        clock: Callable returning the current naive-UTC time
        max_attempts: Verification attempts allowed per code
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.session = session
        self.clock = clock
        self.max_attempts = max_attempts

    async def get_active(self, admin_id: str, context: str) -> Optional[OtpToken]:
        """
        Return the current record for (admin_id, context), if any.

        Expiry is not checked here; verify() does that.
        """
        stmt = (
            select(OtpToken)
            .where(OtpToken.admin_id == admin_id, OtpToken.context == context)
            .order_by(OtpToken.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def issue(
        self,
        admin_id: str,
        context: str,
        expiry_minutes: int,
        resend_window_seconds: int,
    ) -> IssuedOtp:
        """
        Replace any existing code for (admin_id, context) with a fresh one.

        Args:
            admin_id: Owning administrator
            context: "login" or "reset"
            expiry_minutes: Lifetime of the code
            resend_window_seconds: Delay before another code may be requested

        Returns:
            IssuedOtp with the plaintext code and the two timestamps

        Raises:
            ValueError: If context is not a known OTP context
        """
        if context not in OTP_CONTEXTS:
            raise ValueError(f"Unknown OTP context: {context}")

        await self._delete_for(admin_id, context)

        code = generate_otp()
        now = self.clock()
        record = OtpToken(
            admin_id=admin_id,
            context=context,
            code_hash=hash_otp(code),
            expires_at=now + timedelta(minutes=expiry_minutes),
            resend_available_at=now + timedelta(seconds=resend_window_seconds),
            attempts=0,
            created_at=now,
        )
        self.session.add(record)
        await self.session.flush()

        logger.info(
            "OTP issued",
            extra={"admin_id": admin_id, "context": context, "expires_at": record.expires_at},
        )
        return IssuedOtp(
            code=code,
            expires_at=record.expires_at,
            resend_available_at=record.resend_available_at,
        )

    async def resend(
        self,
        admin_id: str,
        context: str,
        expiry_minutes: int,
        resend_window_seconds: int,
    ) -> IssuedOtp:
        """
        Issue a new code unless the current one is still inside its resend window.

        Raises:
            RateLimited: If a record exists and now < resend_available_at
        """
        existing = await self.get_active(admin_id, context)
        if existing is not None and self.clock() < existing.resend_available_at:
            raise RateLimited("Please wait before requesting a new OTP")

        return await self.issue(admin_id, context, expiry_minutes, resend_window_seconds)

    async def verify(self, admin_id: str, context: str, candidate: str) -> None:
        """
        Check a candidate code, consuming one attempt.

        Returns normally on success (the record is deleted).

        Raises:
            OtpNotFound: No record for (admin_id, context)
            OtpExpired: The record expired (it is deleted)
            TooManyAttempts: The attempt budget is exhausted (record deleted)
            InvalidOtp: Wrong code; the consumed attempt is already persisted
        """
        record = await self.get_active(admin_id, context)
        if record is None:
            raise OtpNotFound()

        if self.clock() >= record.expires_at:
            await self._discard(record.id)
            logger.info("OTP expired", extra={"admin_id": admin_id, "context": context})
            raise OtpExpired()

        if record.attempts >= self.max_attempts:
            await self._discard(record.id)
            raise TooManyAttempts()

        attempts = await self._consume_attempt(record.id)
        if attempts is None:
            # Exhausted or removed by a concurrent request
            await self._discard(record.id)
            raise TooManyAttempts()

        if not otp_matches(candidate, record.code_hash):
            logger.info(
                "OTP mismatch",
                extra={"admin_id": admin_id, "context": context, "attempts": attempts},
            )
            if attempts >= self.max_attempts:
                await self._discard(record.id)
                raise TooManyAttempts()
            raise InvalidOtp()

        await self._delete_for(admin_id, context)
        await self.session.flush()
        logger.info("OTP verified", extra={"admin_id": admin_id, "context": context})

    async def purge_expired(self) -> int:
        """
        Delete every record whose expiry has passed.

        Returns:
            Number of rows removed
        """
        result = await self.session.execute(
            delete(OtpToken).where(OtpToken.expires_at <= self.clock())
        )
        await self.session.flush()
        return result.rowcount or 0

    async def _consume_attempt(self, record_id: str) -> Optional[int]:
        """
        Atomically increment the attempt counter if still under the limit.

        Committed immediately so a rolled-back or concurrent request cannot
        hand the attempt back.

        Returns:
            The new attempt count, or None if the row is gone or exhausted
        """
        stmt = (
            update(OtpToken)
            .where(OtpToken.id == record_id, OtpToken.attempts < self.max_attempts)
            .values(attempts=OtpToken.attempts + 1)
            .returning(OtpToken.attempts)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        attempts = result.scalar_one_or_none()
        await self.session.commit()
        return attempts

    async def _discard(self, record_id: str) -> None:
        # Committed so the deletion survives the error raised right after
        await self.session.execute(delete(OtpToken).where(OtpToken.id == record_id))
        await self.session.commit()

    async def _delete_for(self, admin_id: str, context: str) -> None:
        await self.session.execute(
            delete(OtpToken).where(
                OtpToken.admin_id == admin_id,
                OtpToken.context == context,
            )
        )
