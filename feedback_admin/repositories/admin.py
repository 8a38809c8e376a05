"""
Administrator repository (credential store).

Provides data access for Admin rows: case-insensitive lookup, creation with
uniqueness checking, password verification and password replacement.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_admin.core.exceptions import Conflict, NotFound
from feedback_admin.core.logging_config import get_logger
from feedback_admin.core.security import get_password_hash, verify_password
from feedback_admin.models.admin import Admin


logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


class AdminRepository:
    """
    Repository for administrator data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def find_by_email(self, email: str) -> Optional[Admin]:
        """
        Look up an administrator by email, ignoring case and surrounding spaces.

        Args:
            email: Email as typed by the caller

        Returns:
            Admin instance if found, None otherwise
        """
        stmt = select(Admin).where(Admin.email == normalize_email(email))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, admin_id: str) -> Optional[Admin]:
        """Retrieve an administrator by primary key."""
        return await self.session.get(Admin, admin_id)

    @staticmethod
    def verify_password(plain_password: str, password_hash: str) -> bool:
        """
        Check a plaintext password against a stored salted hash.

        Delegates to bcrypt's constant-time comparison.
        """
        return verify_password(plain_password, password_hash)

    async def create(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
    ) -> Admin:
        """
        Create a new administrator.

        Args:
            email: Login email (normalized to lowercase)
            password: Plaintext password, hashed before storage
            name: Optional display name

        Returns:
            Created Admin instance with id and timestamps populated

        Raises:
            Conflict: If the email is already registered

        Example:
            >>> admin = await repo.create("A@X.com", "Secret123!", "Ops")
            >>> admin.email
            'a@x.com'
        """
        email = normalize_email(email)

        if await self.find_by_email(email) is not None:
            raise Conflict("Email already registered")

        admin = Admin(
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            is_active=True,
        )
        self.session.add(admin)

        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent signup for the same email
            raise Conflict("Email already registered") from exc

        await self.session.refresh(admin)

        logger.info("Administrator created", extra={"admin_id": admin.id})
        return admin

    async def update_password(self, email: str, new_password: str) -> Admin:
        """
        Replace an administrator's password hash.

        Args:
            email: Email of the administrator
            new_password: New plaintext password

        Returns:
            The updated Admin

        Raises:
            NotFound: If no administrator has this email
        """
        admin = await self.find_by_email(email)
        if admin is None:
            raise NotFound("Admin not found")

        admin.password_hash = get_password_hash(new_password)
        await self.session.flush()

        logger.info("Administrator password updated", extra={"admin_id": admin.id})
        return admin
