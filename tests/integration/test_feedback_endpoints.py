"""
Integration tests for public feedback submission and the admin dashboard
feedback endpoints (list, export, delete, stats).
"""

import csv
import io

import pytest
from openpyxl import load_workbook

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, feedback_payload
from feedback_admin.services.feedback_export import HEADERS


@pytest.fixture
def admin_client(make_client, admin):
    """
    Client authenticated as the test administrator (bearer token, OTP off).
    """
    class _Authenticated:
        async def __aenter__(self):
            self.client = make_client(require_otp=False)
            await self.client.__aenter__()
            login = await self.client.post(
                "/api/auth/login",
                json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
            )
            self.client.headers["Authorization"] = f"Bearer {login.json()['token']}"
            return self.client

        async def __aexit__(self, *exc_info):
            await self.client.__aexit__(*exc_info)

    return _Authenticated


async def _submit(client, **overrides) -> str:
    response = await client.post("/api/public/feedback", json=feedback_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["feedbackId"]


@pytest.mark.asyncio
class TestPublicSubmission:
    """Tests for POST /api/public/feedback."""

    async def test_submit(self, make_client):
        async with make_client() as client:
            response = await client.post(
                "/api/public/feedback",
                json=feedback_payload(),
                headers={"User-Agent": "survey-form", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
            )

        assert response.status_code == 201
        assert response.json()["success"] is True
        assert response.json()["feedbackId"]

    async def test_missing_field(self, make_client):
        payload = feedback_payload()
        del payload["confidenceLevel"]

        async with make_client() as client:
            response = await client.post("/api/public/feedback", json=payload)

        assert response.status_code == 400
        assert response.json()["message"] == "Missing field: confidenceLevel"

    async def test_no_authentication_needed(self, make_client):
        async with make_client(auth_mode="session") as client:
            response = await client.post("/api/public/feedback", json=feedback_payload())

        assert response.status_code == 201


@pytest.mark.asyncio
class TestAdminFeedback:
    """Tests for the authenticated dashboard endpoints."""

    async def test_requires_authentication(self, make_client):
        async with make_client() as client:
            responses = [
                await client.get("/api/admin/feedback"),
                await client.get("/api/admin/feedback/export"),
                await client.delete("/api/admin/feedback/any-id"),
                await client.get("/api/admin/stats"),
            ]

        assert [r.status_code for r in responses] == [401, 401, 401, 401]

    async def test_list_with_client_details(self, admin_client):
        # Arrange
        async with admin_client() as client:
            await client.post(
                "/api/public/feedback",
                json=feedback_payload(),
                headers={"User-Agent": "survey-form", "X-Forwarded-For": "203.0.113.7"},
            )

            # Act
            response = await client.get("/api/admin/feedback")

        # Assert
        body = response.json()
        assert response.status_code == 200
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}
        item = body["data"][0]
        assert item["easeOfUse"] == "Very easy"
        assert item["usefulFeedbackTypes"] == ["Grammar", "Vocabulary"]
        assert item["ipAddress"] == "203.0.113.7"
        assert item["userAgent"] == "survey-form"
        assert "createdAt" in item

    async def test_pagination_and_limit_cap(self, admin_client):
        async with admin_client() as client:
            for _ in range(3):
                await _submit(client)

            page = await client.get("/api/admin/feedback", params={"page": 2, "limit": 2})
            capped = await client.get("/api/admin/feedback", params={"limit": 1000})

        assert page.json()["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
        assert len(page.json()["data"]) == 1
        assert capped.json()["pagination"]["limit"] == 200

    async def test_invalid_paging_rejected(self, admin_client):
        async with admin_client() as client:
            zero_page = await client.get("/api/admin/feedback", params={"page": 0})
            bad_sort = await client.get("/api/admin/feedback", params={"sortField": "password"})
            bad_order = await client.get("/api/admin/feedback", params={"sortOrder": "sideways"})

        assert zero_page.status_code == 400
        assert bad_sort.status_code == 400
        assert bad_order.status_code == 400

    async def test_filters(self, admin_client):
        # Arrange
        async with admin_client() as client:
            await _submit(client, useAgain="Yes", improvements="More exercises")
            await _submit(client, useAgain="No", improvements="Dark mode please")

            # Act
            by_answer = await client.get("/api/admin/feedback", params={"useAgain": "No"})
            by_search = await client.get("/api/admin/feedback", params={"search": "EXERCISES"})
            future = await client.get(
                "/api/admin/feedback",
                params={"startDate": "2999-01-01T00:00:00Z"},
            )

        # Assert
        assert by_answer.json()["pagination"]["total"] == 1
        assert by_answer.json()["data"][0]["useAgain"] == "No"
        assert by_search.json()["pagination"]["total"] == 1
        assert future.json()["pagination"]["total"] == 0

    async def test_sorting(self, admin_client):
        async with admin_client() as client:
            for level in ("B", "C", "A"):
                await _submit(client, studyLevel=level)

            response = await client.get(
                "/api/admin/feedback",
                params={"sortField": "studyLevel", "sortOrder": "asc"},
            )

        assert [item["studyLevel"] for item in response.json()["data"]] == ["A", "B", "C"]

    async def test_delete(self, admin_client):
        async with admin_client() as client:
            feedback_id = await _submit(client)

            deleted = await client.delete(f"/api/admin/feedback/{feedback_id}")
            missing = await client.delete(f"/api/admin/feedback/{feedback_id}")
            listing = await client.get("/api/admin/feedback")

        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Feedback deleted successfully"
        assert missing.status_code == 404
        assert listing.json()["pagination"]["total"] == 0

    async def test_stats(self, admin_client):
        async with admin_client() as client:
            for _ in range(12):
                await _submit(client)

            response = await client.get("/api/admin/stats")

        assert response.status_code == 200
        assert response.json()["total"] == 12
        assert len(response.json()["recent"]) == 10


@pytest.mark.asyncio
class TestExport:
    """Tests for GET /api/admin/feedback/export."""

    async def test_csv_export(self, admin_client):
        # Arrange
        async with admin_client() as client:
            await _submit(client, useAgain="Yes")
            await _submit(client, useAgain="No")

            # Act
            response = await client.get("/api/admin/feedback/export", params={"useAgain": "Yes"})

        # Assert
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="feedback-export.csv"' in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == HEADERS
        assert len(rows) == 2
        assert rows[1][HEADERS.index("usefulFeedbackTypes")] == "Grammar; Vocabulary"

    async def test_xlsx_export(self, admin_client):
        async with admin_client() as client:
            await _submit(client)

            response = await client.get("/api/admin/feedback/export", params={"format": "xlsx"})

        assert response.status_code == 200
        assert 'filename="feedback-export.xlsx"' in response.headers["content-disposition"]
        sheet = load_workbook(io.BytesIO(response.content))["Feedback"]
        assert sheet.max_row == 2

    async def test_unknown_format(self, admin_client):
        async with admin_client() as client:
            response = await client.get("/api/admin/feedback/export", params={"format": "pdf"})

        assert response.status_code == 400
