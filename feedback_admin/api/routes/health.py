"""
Health check endpoints for monitoring and readiness probes.

- Liveness probe: /health (basic "is the server running" check)
- Readiness probe: /health/ready (database connectivity)
"""

import time
from datetime import datetime

from fastapi import APIRouter, Response, status

from feedback_admin.core import probes
from feedback_admin.schemas.health import HealthCheckDetail, HealthResponse, ReadinessResponse


router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def health_check() -> HealthResponse:
    """
    Basic liveness probe.

    Always returns 200 while the application is running.
    """
    return HealthResponse(status="ok", timestamp=datetime.utcnow())


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """
    Readiness probe with dependency checks.

    Returns 200 if the database answers, 503 otherwise.

    Example response (healthy):
        {
            "status": "ready",
            "checks": {"db": {"healthy": true, "latency_ms": 1.2}},
            "timestamp": "2025-11-24T10:30:00.123456"
        }
    """
    db_start = time.time()
    db_healthy = await probes.check_database()
    db_latency = (time.time() - db_start) * 1000

    checks = {
        "db": HealthCheckDetail(
            healthy=db_healthy,
            latency_ms=round(db_latency, 2),
            error=None if db_healthy else "Database connection failed or timed out",
        ),
    }

    all_healthy = all(check.healthy for check in checks.values())
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if all_healthy else "not_ready",
        checks=checks,
        timestamp=datetime.utcnow(),
    )
