"""
Pydantic schemas for feedback submission and the admin feedback views.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from feedback_admin.core.exceptions import BadRequest
from feedback_admin.models.feedback import FEEDBACK_FIELDS


def parse_submission(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a public feedback submission.

    Every field must be present and non-empty. Answers are stored as text,
    except usefulFeedbackTypes which must be a list (anything else becomes
    an empty list).

    Args:
        payload: Raw JSON body keyed by wire (camelCase) names

    Returns:
        Answers keyed by ORM attribute name

    Raises:
        BadRequest: "Missing field: <wireName>" for the first missing field
    """
    answers: Dict[str, Any] = {}
    for attr, wire in FEEDBACK_FIELDS.items():
        value = payload.get(wire)
        if value is None or value == "":
            raise BadRequest(f"Missing field: {wire}")

        if attr == "useful_feedback_types":
            answers[attr] = [str(item) for item in value] if isinstance(value, list) else []
        else:
            answers[attr] = str(value)

    return answers


class FeedbackCreatedResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    feedback_id: str


class FeedbackItem(BaseModel):
    """A stored submission as returned to the dashboard."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str
    ease_of_use: str
    feature_clarity: str
    design_impression: str
    explanation_helpfulness: str
    useful_feedback_types: List[str]
    confidence_level: str
    liked_most: str
    improvements: str
    use_again: str
    language_background: str
    study_level: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int


class FeedbackListResponse(BaseModel):
    success: bool = True
    data: List[FeedbackItem]
    pagination: Pagination


class FeedbackStatsResponse(BaseModel):
    success: bool = True
    total: int
    recent: List[FeedbackItem]
