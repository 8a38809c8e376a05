"""
Tests for FeedbackRepository and submission parsing.

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

from datetime import datetime, timedelta

import pytest

from conftest import feedback_payload
from feedback_admin.core.exceptions import BadRequest
from feedback_admin.repositories.feedback import FeedbackFilters, FeedbackRepository
from feedback_admin.schemas.feedback import parse_submission


BASE_TIME = datetime(2025, 3, 1, 12, 0, 0)


async def _store(repo: FeedbackRepository, created_at: datetime = BASE_TIME, **overrides):
    feedback = await repo.create(parse_submission(feedback_payload(**overrides)))
    feedback.created_at = created_at
    await repo.session.flush()
    return feedback


class TestParseSubmission:
    """Tests for public form validation."""

    def test_complete_payload(self):
        answers = parse_submission(feedback_payload(easeOfUse=5))

        assert answers["ease_of_use"] == "5"
        assert answers["useful_feedback_types"] == ["Grammar", "Vocabulary"]
        assert len(answers) == 11

    def test_first_missing_field_reported(self):
        payload = feedback_payload()
        del payload["likedMost"]
        del payload["studyLevel"]

        with pytest.raises(BadRequest) as exc_info:
            parse_submission(payload)

        assert exc_info.value.message == "Missing field: likedMost"

    def test_empty_string_is_missing(self):
        with pytest.raises(BadRequest) as exc_info:
            parse_submission(feedback_payload(useAgain=""))

        assert exc_info.value.message == "Missing field: useAgain"

    def test_non_list_feedback_types_become_empty(self):
        answers = parse_submission(feedback_payload(usefulFeedbackTypes="Grammar"))

        assert answers["useful_feedback_types"] == []


@pytest.mark.asyncio
class TestFeedbackRepository:
    """Tests for storage, filtering, sorting and pagination."""

    async def test_create_records_client_details(self, db_session):
        # Arrange
        repo = FeedbackRepository(db_session)

        # Act
        feedback = await repo.create(
            parse_submission(feedback_payload()),
            ip_address="203.0.113.9",
            user_agent="pytest",
        )

        # Assert
        assert feedback.id
        assert feedback.created_at is not None
        assert feedback.ip_address == "203.0.113.9"
        assert feedback.useful_feedback_types == ["Grammar", "Vocabulary"]

    async def test_pagination_and_total(self, db_session):
        # Arrange
        repo = FeedbackRepository(db_session)
        for offset in range(5):
            await _store(repo, BASE_TIME + timedelta(minutes=offset))

        # Act
        first, total = await repo.list(FeedbackFilters(), page=1, limit=2)
        last, _ = await repo.list(FeedbackFilters(), page=3, limit=2)
        beyond, _ = await repo.list(FeedbackFilters(), page=4, limit=2)

        # Assert
        assert total == 5
        assert [f.created_at for f in first] == [
            BASE_TIME + timedelta(minutes=4),
            BASE_TIME + timedelta(minutes=3),
        ]
        assert len(last) == 1
        assert beyond == []

    async def test_sort_by_answer_field(self, db_session):
        repo = FeedbackRepository(db_session)
        for level in ("Beginner", "Advanced", "Intermediate"):
            await _store(repo, studyLevel=level)

        items, _ = await repo.list(FeedbackFilters(), sort_field="studyLevel", sort_order="asc")

        assert [f.study_level for f in items] == ["Advanced", "Beginner", "Intermediate"]

    async def test_unknown_sort_field(self, db_session):
        with pytest.raises(ValueError):
            await FeedbackRepository(db_session).list(FeedbackFilters(), sort_field="password")

    async def test_filter_by_use_again(self, db_session):
        repo = FeedbackRepository(db_session)
        await _store(repo, useAgain="Yes")
        await _store(repo, useAgain="No")

        items, total = await repo.list(FeedbackFilters(use_again="No"))

        assert total == 1
        assert items[0].use_again == "No"

    async def test_date_range_is_inclusive(self, db_session):
        # Arrange
        repo = FeedbackRepository(db_session)
        await _store(repo, BASE_TIME - timedelta(days=1))
        await _store(repo, BASE_TIME)
        await _store(repo, BASE_TIME + timedelta(days=1))
        await _store(repo, BASE_TIME + timedelta(days=2))

        # Act
        _, total = await repo.list(FeedbackFilters(
            start_date=BASE_TIME,
            end_date=BASE_TIME + timedelta(days=1),
        ))

        # Assert
        assert total == 2

    async def test_search_is_case_insensitive_substring(self, db_session):
        # Arrange
        repo = FeedbackRepository(db_session)
        await _store(repo, improvements="Please add DARK mode")
        await _store(repo, improvements="Faster loading")

        # Act
        items, total = await repo.list(FeedbackFilters(search="dark"))

        # Assert
        assert total == 1
        assert "DARK" in items[0].improvements

    async def test_search_treats_wildcards_literally(self, db_session):
        repo = FeedbackRepository(db_session)
        await _store(repo, likedMost="100% accurate")
        await _store(repo, likedMost="Accurate")

        _, total = await repo.list(FeedbackFilters(search="%"))

        assert total == 1

    async def test_search_matches_feedback_types(self, db_session):
        repo = FeedbackRepository(db_session)
        await _store(repo, usefulFeedbackTypes=["Pronunciation"])
        await _store(repo)

        _, total = await repo.list(FeedbackFilters(search="pronunc"))

        assert total == 1

    async def test_search_matches_accented_feedback_types(self, db_session):
        # Arrange
        repo = FeedbackRepository(db_session)
        await _store(repo, usefulFeedbackTypes=["Précision"])
        await _store(repo)

        # Act
        _, exact = await repo.list(FeedbackFilters(search="Précision"))
        _, lowered = await repo.list(FeedbackFilters(search="précision"))
        items, _ = await repo.list(FeedbackFilters(search="cision"))

        # Assert
        assert exact == 1
        assert lowered == 1
        assert items[0].useful_feedback_types == ["Précision"]

    async def test_export_is_newest_first_and_filtered(self, db_session):
        # Arrange
        repo = FeedbackRepository(db_session)
        await _store(repo, BASE_TIME, useAgain="Yes")
        await _store(repo, BASE_TIME + timedelta(hours=1), useAgain="Yes")
        await _store(repo, BASE_TIME + timedelta(hours=2), useAgain="No")

        # Act
        items = await repo.list_for_export(FeedbackFilters(use_again="Yes"))

        # Assert
        assert [f.created_at for f in items] == [BASE_TIME + timedelta(hours=1), BASE_TIME]

    async def test_delete(self, db_session):
        repo = FeedbackRepository(db_session)
        feedback = await _store(repo)

        assert await repo.delete(feedback.id) is True
        assert await repo.delete(feedback.id) is False
        assert await repo.count() == 0

    async def test_recent_limited_to_ten(self, db_session):
        repo = FeedbackRepository(db_session)
        for offset in range(12):
            await _store(repo, BASE_TIME + timedelta(minutes=offset))

        recent = await repo.recent()

        assert len(recent) == 10
        assert recent[0].created_at == BASE_TIME + timedelta(minutes=11)
        assert await repo.count() == 12
