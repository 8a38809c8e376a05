"""
Seed the bootstrap administrator.

Creates the administrator configured by ADMIN_EMAIL / ADMIN_PASSWORD /
ADMIN_NAME if it does not exist. Outside production an existing seed
administrator gets its password resynchronized from ADMIN_PASSWORD.
Idempotent: safe to run any number of times.

Usage:
    python scripts/seed_admin.py

Security:
    Change the default password immediately after first login in any
    shared environment.
"""

import asyncio

from feedback_admin.core.config import settings
from feedback_admin.core.database import async_session_maker, close_db, init_db
from feedback_admin.core.logging_config import setup_logging
from feedback_admin.services.admin_seeder import ensure_default_admin


async def seed_admin() -> None:
    """Create or resynchronize the seed administrator, then commit."""
    await init_db()

    async with async_session_maker() as session:
        try:
            admin = await ensure_default_admin(session, settings)
            await session.commit()
        except Exception as e:
            await session.rollback()
            print(f"Error seeding admin user: {e}")
            raise

    print(f"Seed administrator ready: {admin.email}")
    await close_db()


if __name__ == "__main__":
    setup_logging(level=settings.log_level, json_format=False)
    asyncio.run(seed_admin())
