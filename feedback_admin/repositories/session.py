"""
Server-side session repository.

Backs the cookie session strategy. Session identifiers are opaque random
values; every login mints a fresh one.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_admin.core.logging_config import get_logger
from feedback_admin.core.security import generate_session_id
from feedback_admin.models.admin_session import AdminSession
from feedback_admin.models.base import utc_now


logger = get_logger(__name__)


class SessionRepository:
    """
    Data access for AdminSession rows.

    Attributes:
        session: SQLAlchemy async session
        clock: Callable returning the current naive-UTC time
    """

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utc_now):
        self.session = session
        self.clock = clock

    async def create(
        self,
        lifetime: timedelta,
        admin_id: Optional[str] = None,
        reset_email: Optional[str] = None,
        replaces: Optional[str] = None,
    ) -> AdminSession:
        """
        Create a session with a newly generated identifier.

        Args:
            lifetime: Time until the session expires
            admin_id: Authenticated administrator, if any
            reset_email: Pending password-reset marker, if any
            replaces: Identifier of the caller's previous session, destroyed first

        Returns:
            The new AdminSession
        """
        if replaces:
            await self.destroy(replaces)

        now = self.clock()
        record = AdminSession(
            id=generate_session_id(),
            admin_id=admin_id,
            reset_email=reset_email,
            created_at=now,
            expires_at=now + lifetime,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def get(self, session_id: str) -> Optional[AdminSession]:
        """
        Return a live session, or None if it does not exist or has expired.

        Expired rows are deleted on sight.
        """
        record = await self.session.get(AdminSession, session_id, populate_existing=True)
        if record is None:
            return None

        if self.clock() >= record.expires_at:
            await self.destroy(session_id)
            return None

        return record

    async def destroy(self, session_id: str) -> None:
        """Delete a session. Unknown identifiers are ignored."""
        await self.session.execute(
            delete(AdminSession).where(AdminSession.id == session_id)
        )
        await self.session.flush()

    async def set_reset_email(self, record: AdminSession, email: Optional[str]) -> None:
        """Set or clear the pending password-reset marker."""
        record.reset_email = email
        await self.session.flush()

    async def purge_expired(self) -> int:
        """Delete expired sessions and return how many were removed."""
        result = await self.session.execute(
            delete(AdminSession).where(AdminSession.expires_at <= self.clock())
        )
        await self.session.flush()
        removed = result.rowcount or 0
        if removed:
            logger.info("Expired sessions purged", extra={"count": removed})
        return removed
