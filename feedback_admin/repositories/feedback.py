"""
Feedback repository.

Stores survey submissions and provides the filtered, paginated and sorted
views used by the admin dashboard and by the export endpoint.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from feedback_admin.core.logging_config import get_logger
from feedback_admin.models.feedback import FEEDBACK_FIELDS, Feedback


logger = get_logger(__name__)


# Wire name -> ORM attribute for every column the list view may sort by
SORTABLE_FIELDS: Dict[str, str] = {
    **{wire: attr for attr, wire in FEEDBACK_FIELDS.items()},
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

SEARCHABLE_ATTRS = (
    "liked_most",
    "improvements",
    "useful_feedback_types",
    "language_background",
    "study_level",
)


@dataclass
class FeedbackFilters:
    """
    Filters shared by the list and export views.

    Attributes:
        use_again: Exact match on the "would use again" answer
        start_date: Inclusive lower bound on created_at
        end_date: Inclusive upper bound on created_at
        search: Case-insensitive substring over the free-text answers
    """
    use_again: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None


class FeedbackRepository:
    """
    Repository for feedback submissions.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        answers: Dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Feedback:
        """
        Store a submission.

        Args:
            answers: Survey answers keyed by ORM attribute name
            ip_address: Client address, if known
            user_agent: Client User-Agent header, if sent

        Returns:
            Created Feedback instance
        """
        feedback = Feedback(
            **{attr: answers[attr] for attr in FEEDBACK_FIELDS},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(feedback)
        await self.session.flush()
        await self.session.refresh(feedback)

        logger.info("Feedback stored", extra={"feedback_id": feedback.id})
        return feedback

    async def list(
        self,
        filters: FeedbackFilters,
        page: int = 1,
        limit: int = 20,
        sort_field: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Feedback], int]:
        """
        Return one page of matching submissions and the total match count.

        Args:
            filters: Row filters
            page: 1-based page number
            limit: Page size
            sort_field: Wire name of the sort column (see SORTABLE_FIELDS)
            sort_order: "asc" or "desc"

        Returns:
            Tuple of (items on this page, total matching rows)

        Raises:
            ValueError: If sort_field is not sortable
        """
        if sort_field not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {sort_field}")

        column = getattr(Feedback, SORTABLE_FIELDS[sort_field])
        ordering = column.asc() if sort_order == "asc" else column.desc()

        count_stmt = self._apply_filters(select(func.count(Feedback.id)), filters)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            self._apply_filters(select(Feedback), filters)
            .order_by(ordering, Feedback.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def list_for_export(self, filters: FeedbackFilters) -> List[Feedback]:
        """All matching submissions, newest first."""
        stmt = self._apply_filters(select(Feedback), filters).order_by(
            Feedback.created_at.desc(), Feedback.id
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, feedback_id: str) -> bool:
        """
        Delete a submission.

        Returns:
            True if a row was removed, False if the id was unknown
        """
        result = await self.session.execute(
            delete(Feedback).where(Feedback.id == feedback_id)
        )
        await self.session.flush()
        deleted = bool(result.rowcount)
        if deleted:
            logger.info("Feedback deleted", extra={"feedback_id": feedback_id})
        return deleted

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Feedback.id)))
        return result.scalar_one()

    async def recent(self, limit: int = 10) -> List[Feedback]:
        """Most recent submissions, newest first."""
        stmt = select(Feedback).order_by(Feedback.created_at.desc(), Feedback.id).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _apply_filters(stmt: Select, filters: FeedbackFilters) -> Select:
        if filters.use_again:
            stmt = stmt.where(Feedback.use_again == filters.use_again)
        if filters.start_date is not None:
            stmt = stmt.where(Feedback.created_at >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Feedback.created_at <= filters.end_date)
        if filters.search:
            needle = filters.search.lower()
            stmt = stmt.where(
                or_(*(
                    func.lower(cast(getattr(Feedback, attr), String)).contains(
                        needle, autoescape=True
                    )
                    for attr in SEARCHABLE_ATTRS
                ))
            )
        return stmt
