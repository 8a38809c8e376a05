"""
One-time passcode records.

Each row holds the SHA-256 digest of a six digit code issued to an
administrator for a given purpose ("login" or "reset"). At most one row
exists per (admin_id, context); the OTP ledger enforces that on issue.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from feedback_admin.models.base import Base, UUIDMixin, utc_now


OTP_CONTEXTS = ("login", "reset")


class OtpToken(Base, UUIDMixin):
    """
    Hashed one-time code with expiry, resend throttle and attempt counter.

    Attributes:
        admin_id: Owning administrator
        context: "login" or "reset"
        code_hash: Hex SHA-256 of the code (the plaintext is never stored)
        expires_at: Verification must happen strictly before this instant
        resend_available_at: A new code cannot be requested before this instant
        attempts: Verification attempts consumed so far
        created_at: Issue time
    """

    __tablename__ = "otp_tokens"
    __table_args__ = (
        Index("ix_otp_tokens_admin_context", "admin_id", "context"),
    )

    admin_id = Column(
        String(36),
        ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=False,
    )
    context = Column(String(16), nullable=False)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    resend_available_at = Column(DateTime, nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return (
            f"OtpToken(id={self.id!r}, admin_id={self.admin_id!r}, "
            f"context={self.context!r}, attempts={self.attempts!r})"
        )
