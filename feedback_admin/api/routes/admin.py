"""
Admin dashboard endpoints: feedback listing, export, deletion and stats.

Every route requires an authenticated administrator.
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse

from feedback_admin.api.dependencies import DatabaseSession, get_current_admin
from feedback_admin.core.exceptions import BadRequest, NotFound
from feedback_admin.repositories.feedback import SORTABLE_FIELDS, FeedbackFilters, FeedbackRepository
from feedback_admin.schemas.auth import MessageResponse
from feedback_admin.schemas.feedback import (
    FeedbackItem,
    FeedbackListResponse,
    FeedbackStatsResponse,
    Pagination,
)
from feedback_admin.services.feedback_export import (
    CSV_FILENAME,
    CSV_MEDIA_TYPE,
    XLSX_FILENAME,
    XLSX_MEDIA_TYPE,
    build_xlsx,
    iter_csv,
)


router = APIRouter(dependencies=[Depends(get_current_admin)])

MAX_PAGE_SIZE = 200


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Stored timestamps are naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def feedback_filters(
    use_again: Annotated[Optional[str], Query(alias="useAgain")] = None,
    start_date: Annotated[Optional[datetime], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[datetime], Query(alias="endDate")] = None,
    search: Optional[str] = None,
) -> FeedbackFilters:
    """Query-string filters shared by the list and export endpoints."""
    return FeedbackFilters(
        use_again=use_again or None,
        start_date=_naive_utc(start_date),
        end_date=_naive_utc(end_date),
        search=search or None,
    )


Filters = Annotated[FeedbackFilters, Depends(feedback_filters)]


@router.get("/feedback", response_model=FeedbackListResponse)
async def list_feedback(
    db: DatabaseSession,
    filters: Filters,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1)] = 20,
    sort_field: Annotated[str, Query(alias="sortField")] = "createdAt",
    sort_order: Annotated[Literal["asc", "desc"], Query(alias="sortOrder")] = "desc",
) -> FeedbackListResponse:
    """
    Paginated, filtered and sorted submissions.

    limit is capped at 200. sortField accepts any answer field plus
    createdAt and updatedAt.
    """
    if sort_field not in SORTABLE_FIELDS:
        raise BadRequest(f"Cannot sort by {sort_field}")

    limit = min(limit, MAX_PAGE_SIZE)
    items, total = await FeedbackRepository(db).list(
        filters,
        page=page,
        limit=limit,
        sort_field=sort_field,
        sort_order=sort_order,
    )
    return FeedbackListResponse(
        data=[FeedbackItem.model_validate(item) for item in items],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/feedback/export", response_model=None)
async def export_feedback(
    db: DatabaseSession,
    filters: Filters,
    format: Literal["csv", "xlsx"] = "csv",
) -> Response:
    """
    Download matching submissions, newest first, as CSV or XLSX.
    """
    items = await FeedbackRepository(db).list_for_export(filters)

    if format == "xlsx":
        return Response(
            content=build_xlsx(items),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{XLSX_FILENAME}"'},
        )

    return StreamingResponse(
        iter_csv(items),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'},
    )


@router.delete("/feedback/{feedback_id}", response_model=MessageResponse)
async def delete_feedback(feedback_id: str, db: DatabaseSession) -> MessageResponse:
    """Delete one submission (404 if unknown)."""
    deleted = await FeedbackRepository(db).delete(feedback_id)
    if not deleted:
        raise NotFound("Feedback not found")
    return MessageResponse(message="Feedback deleted successfully")


@router.get("/stats", response_model=FeedbackStatsResponse)
async def feedback_stats(db: DatabaseSession) -> FeedbackStatsResponse:
    """Total submission count and the ten most recent submissions."""
    repo = FeedbackRepository(db)
    total = await repo.count()
    recent = await repo.recent(10)
    return FeedbackStatsResponse(
        total=total,
        recent=[FeedbackItem.model_validate(item) for item in recent],
    )
