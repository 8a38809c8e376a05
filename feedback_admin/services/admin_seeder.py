"""
Bootstrap administrator.

Ensures the administrator configured by ADMIN_EMAIL / ADMIN_PASSWORD exists.
Runs at application startup and from scripts/seed_admin.py; safe to run
any number of times.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from feedback_admin.core.config import Settings
from feedback_admin.core.logging_config import get_logger
from feedback_admin.core.security import get_password_hash
from feedback_admin.models.admin import Admin
from feedback_admin.repositories.admin import AdminRepository


logger = get_logger(__name__)


async def ensure_default_admin(db: AsyncSession, settings: Settings) -> Admin:
    """
    Create the seed administrator, or resynchronize its password.

    Outside production, an existing seed administrator whose hash no longer
    matches ADMIN_PASSWORD gets the configured password back. Production
    never touches an existing account.

    Args:
        db: Database session (the caller commits)
        settings: Application settings

    Returns:
        The seed Admin
    """
    admins = AdminRepository(db)
    admin = await admins.find_by_email(settings.admin_email)

    if admin is None:
        admin = await admins.create(
            settings.admin_email,
            settings.admin_password,
            settings.admin_name,
        )
        logger.info("Seed administrator created", extra={"admin_id": admin.id})
        return admin

    if settings.is_production:
        return admin

    if not admins.verify_password(settings.admin_password, admin.password_hash):
        admin.password_hash = get_password_hash(settings.admin_password)
        await db.flush()
        logger.warning(
            "Seed administrator password resynchronized from ADMIN_PASSWORD",
            extra={"admin_id": admin.id},
        )

    return admin
