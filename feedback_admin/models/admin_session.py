"""
Server-side session records used when AUTH_MODE=session.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String

from feedback_admin.models.base import Base, utc_now


class AdminSession(Base):
    """
    Session keyed by an opaque identifier carried in the admin_sid cookie.

    A session either belongs to an authenticated administrator (admin_id set)
    or only carries a pending password-reset marker (reset_email set) for a
    caller who verified a reset code but is not logged in.

    Attributes:
        id: Opaque random identifier (never derived from user data)
        admin_id: Authenticated administrator, if any
        reset_email: Email whose reset code was verified, cleared on use
        created_at: Creation time
        expires_at: Absolute expiry, matching the access-token lifetime
    """

    __tablename__ = "admin_sessions"

    id = Column(String(64), primary_key=True)
    admin_id = Column(
        String(36),
        ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    reset_email = Column(String(320), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"AdminSession(admin_id={self.admin_id!r}, expires_at={self.expires_at!r})"
