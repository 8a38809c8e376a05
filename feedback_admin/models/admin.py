"""
Administrator model for dashboard authentication.

Stores the credentials of the (small) administrator pool. There is no
role hierarchy: every active row is a full administrator.
"""

from sqlalchemy import Boolean, Column, String

from feedback_admin.models.base import Base, UUIDMixin, TimestampMixin


class Admin(Base, UUIDMixin, TimestampMixin):
    """
    Administrator account.

    Attributes:
        id: UUID primary key (from UUIDMixin)
        email: Unique, lowercase login email
        password_hash: Bcrypt hash (never store plaintext)
        name: Optional display name
        is_active: Inactive accounts cannot log in
        created_at / updated_at: From TimestampMixin

    Security considerations:
        - Never log or expose password_hash
        - Emails are normalized to lowercase before they reach this model
    """

    __tablename__ = "admins"

    email = Column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
        doc="Unique lowercase email used for login"
    )

    password_hash = Column(
        String,
        nullable=False,
        doc="Bcrypt-hashed password (never store plaintext)"
    )

    name = Column(String(255), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def display_name(self) -> str:
        return self.name or "Administrator"

    def __repr__(self) -> str:
        return f"Admin(id={self.id!r}, email={self.email!r})"
