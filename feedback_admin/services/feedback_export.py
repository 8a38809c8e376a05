"""
Feedback export rendering (CSV and XLSX).

Both formats share the same column layout: submission time, the eleven
survey answers under their wire names, then client IP and User-Agent.
"""

import csv
import io
from typing import Any, Iterable, Iterator, List

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from feedback_admin.models.feedback import FEEDBACK_FIELDS, Feedback


CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CSV_FILENAME = "feedback-export.csv"
XLSX_FILENAME = "feedback-export.xlsx"

HEADERS: List[str] = ["Submitted At", *FEEDBACK_FIELDS.values(), "IP", "User Agent"]

_XLSX_WIDTHS = [24, *([18] * len(FEEDBACK_FIELDS)), 18, 40]


def _cell(value: Any, list_separator: str) -> str:
    if isinstance(value, list):
        return list_separator.join(str(item) for item in value)
    if value is None:
        return ""
    return str(value)


def export_row(item: Feedback, list_separator: str) -> List[str]:
    """
    Flatten one submission into export columns.

    Args:
        item: Feedback row
        list_separator: Joiner for multi-choice answers

    Returns:
        Cell values in HEADERS order
    """
    submitted = item.created_at.isoformat() if item.created_at else ""
    answers = [_cell(getattr(item, attr), list_separator) for attr in FEEDBACK_FIELDS]
    return [submitted, *answers, item.ip_address or "", item.user_agent or ""]


def iter_csv(items: Iterable[Feedback]) -> Iterator[str]:
    """
    Yield the CSV export one line at a time.

    Suitable for StreamingResponse.

    Example:
        >>> StreamingResponse(iter_csv(rows), media_type=CSV_MEDIA_TYPE)
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(HEADERS)
    yield _drain(buffer)

    for item in items:
        writer.writerow(export_row(item, "; "))
        yield _drain(buffer)


def _drain(buffer: io.StringIO) -> str:
    data = buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)
    return data


def build_xlsx(items: Iterable[Feedback]) -> bytes:
    """
    Render the export as an XLSX workbook with a single "Feedback" sheet.

    Returns:
        Workbook file contents
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Feedback"

    sheet.append(HEADERS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for index, width in enumerate(_XLSX_WIDTHS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    for item in items:
        sheet.append(export_row(item, ", "))

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()
