"""
Tests for CSV and XLSX export rendering.
"""

import csv
import io
from datetime import datetime

from openpyxl import load_workbook

from conftest import feedback_payload
from feedback_admin.models.feedback import Feedback
from feedback_admin.schemas.feedback import parse_submission
from feedback_admin.services.feedback_export import HEADERS, build_xlsx, export_row, iter_csv


def _feedback(**overrides) -> Feedback:
    return Feedback(
        id="fb-1",
        created_at=datetime(2025, 3, 1, 12, 30),
        ip_address="203.0.113.9",
        user_agent="Mozilla/5.0",
        **parse_submission(feedback_payload(**overrides)),
    )


class TestExportRow:

    def test_row_layout(self):
        row = export_row(_feedback(), "; ")

        assert len(row) == len(HEADERS)
        assert row[0] == "2025-03-01T12:30:00"
        assert row[HEADERS.index("usefulFeedbackTypes")] == "Grammar; Vocabulary"
        assert row[-2:] == ["203.0.113.9", "Mozilla/5.0"]

    def test_missing_client_details_are_blank(self):
        item = _feedback()
        item.ip_address = None
        item.user_agent = None

        row = export_row(item, ", ")

        assert row[-2:] == ["", ""]


class TestCsvExport:

    def test_header_then_rows(self):
        # Arrange
        items = [_feedback(), _feedback(likedMost='Quotes "and", commas')]

        # Act
        text = "".join(iter_csv(items))

        # Assert
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == HEADERS
        assert len(rows) == 3
        assert rows[2][HEADERS.index("likedMost")] == 'Quotes "and", commas'

    def test_empty_export_has_header(self):
        rows = list(csv.reader(io.StringIO("".join(iter_csv([])))))

        assert rows == [HEADERS]


class TestXlsxExport:

    def test_workbook_contents(self):
        # Act
        content = build_xlsx([_feedback()])

        # Assert
        workbook = load_workbook(io.BytesIO(content))
        sheet = workbook["Feedback"]
        rows = list(sheet.iter_rows(values_only=True))
        assert list(rows[0]) == HEADERS
        assert rows[1][HEADERS.index("usefulFeedbackTypes")] == "Grammar, Vocabulary"
        assert len(rows) == 2
