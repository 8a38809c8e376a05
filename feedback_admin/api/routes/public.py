"""
Public endpoints (no authentication).
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request, status

from feedback_admin.api.dependencies import DatabaseSession
from feedback_admin.repositories.feedback import FeedbackRepository
from feedback_admin.schemas.feedback import FeedbackCreatedResponse, parse_submission


router = APIRouter()


def client_ip(request: Request) -> Optional[str]:
    """First address in X-Forwarded-For, falling back to the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.post(
    "/feedback",
    response_model=FeedbackCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_feedback(
    request: Request,
    db: DatabaseSession,
    payload: Dict[str, Any] = Body(...),
) -> FeedbackCreatedResponse:
    """
    Store a survey response.

    All eleven answers are required; the first missing one is reported as
    400 "Missing field: <name>".

    Example:
        POST /api/public/feedback
        {"easeOfUse": "5", ..., "usefulFeedbackTypes": ["grammar"], ...}

        Response (201):
        {"success": true, "feedbackId": "2b0c..."}
    """
    answers = parse_submission(payload)
    feedback = await FeedbackRepository(db).create(
        answers,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return FeedbackCreatedResponse(feedback_id=feedback.id)
