"""Spreadsheet writer for :class:`~portfolio_forms.export.ExportTable`.

Produces a single-sheet ``.xlsx`` workbook (``제출목록``) with a bold,
filled header row and column widths sized to the longest cell, capped at
``EXPORT_MAX_COLUMN_WIDTH``.
"""

from __future__ import annotations

import io
import re
from datetime import date
from urllib.parse import quote

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from portfolio_forms.constants import EXPORT_MAX_COLUMN_WIDTH, EXPORT_SHEET_TITLE
from portfolio_forms.export import ExportTable

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Characters Excel and most file systems reject in a file name
_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|]+')


def write_xlsx(table: ExportTable, *, sheet_title: str = EXPORT_SHEET_TITLE) -> bytes:
    """Render *table* to xlsx bytes."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_title

    ws.append(table.headers)
    header_fill = PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid")
    header_font = Font(bold=True)
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for row in table.rows:
        ws.append(row)

    for i, header in enumerate(table.headers, start=1):
        longest = max(
            [len(str(header))] + [len(str(row[i - 1])) for row in table.rows if i - 1 < len(row)]
        )
        ws.column_dimensions[get_column_letter(i)].width = min(longest + 2, EXPORT_MAX_COLUMN_WIDTH)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_filename(title: str, *, today: date | None = None) -> str:
    """``{title}_제출목록_{YYYY-MM-DD}.xlsx`` with unsafe characters replaced."""
    today = today or date.today()
    safe_title = _UNSAFE_FILENAME.sub("_", title).strip() or "portfolio"
    return f"{safe_title}_{EXPORT_SHEET_TITLE}_{today.isoformat()}.xlsx"


def content_disposition(filename: str) -> str:
    """RFC 5987 attachment header value (non-ASCII file names)."""
    return f"attachment; filename*=UTF-8''{quote(filename)}"
