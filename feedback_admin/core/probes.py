"""
Health probe functions for dependency checks.

Each probe returns True when the dependency is healthy and never raises.
"""

import asyncio

from sqlalchemy import text

from feedback_admin.core.database import async_session_maker


async def check_database(timeout_seconds: float = 2.0) -> bool:
    """
    Check database connectivity.

    Executes SELECT 1 with a timeout so an unreachable database cannot hang
    the readiness probe.

    Args:
        timeout_seconds: Maximum time to wait for response (default: 2.0)

    Returns:
        True if database is reachable and healthy, False otherwise
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            async with async_session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                return True

    except asyncio.TimeoutError:
        return False
    except Exception:
        # Connection refused, missing file, bad credentials...
        return False
