"""
Serializers for export views.

Each view is a list of flat dict rows. Column order comes from the first row,
extended with any keys later rows add, so sparse rows never drop columns and
an empty view is simply a table without columns.
"""

import csv
import io
import json
from collections.abc import Iterable
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from app.models.domain.export_domain import ExportViews

COLUMN_WIDTH = 15

# (view attribute, CSV block label, worksheet title), summary handled separately
VIEW_LAYOUT = (
    ("participants", "PARTICIPANTS", "Participants"),
    ("teams", "TEAMS", "Teams"),
    ("analytics", "ANALYTICS", "Analytics"),
)


def table_columns(rows: Iterable[dict]) -> list[str]:
    columns: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)
    return columns


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def _selected_views(views: ExportViews) -> list[tuple[str, str, str, list[dict]]]:
    selected = []
    for attr, label, title in VIEW_LAYOUT:
        rows = getattr(views, attr)
        if rows is not None:
            selected.append((attr, label, title, rows))
    return selected


def to_json(views: ExportViews) -> bytes:
    payload: dict[str, Any] = {"summary": views.summary}
    for attr, _label, _title, rows in _selected_views(views):
        payload[attr] = rows
    return json.dumps(payload, indent=2, default=str).encode("utf-8")


def write_csv_table(output: io.StringIO, rows: list[dict]) -> None:
    columns = table_columns(rows)
    if not columns:
        return
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_cell_text(row.get(column)) for column in columns])


def to_csv(views: ExportViews) -> bytes:
    output = io.StringIO()
    blocks = [(label, rows) for _attr, label, _title, rows in _selected_views(views)]
    blocks.append(("SUMMARY", [views.summary]))

    for index, (label, rows) in enumerate(blocks):
        if index:
            output.write("\n")
        output.write(f"{label}\n")
        write_csv_table(output, rows)

    return output.getvalue().encode("utf-8")


def _excel_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, int | float):
        return value
    return ILLEGAL_CHARACTERS_RE.sub("", str(value))


def _append_sheet(wb: Workbook, title: str, rows: list[dict]) -> None:
    ws = wb.create_sheet(title=title)
    columns = table_columns(rows)
    if not columns:
        return
    ws.append(columns)
    for row in rows:
        ws.append([_excel_value(row.get(column)) for column in columns])
    for index in range(1, len(columns) + 1):
        ws.column_dimensions[get_column_letter(index)].width = COLUMN_WIDTH


def to_xlsx(views: ExportViews) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)

    _append_sheet(wb, "Summary", [views.summary])
    for _attr, _label, title, rows in _selected_views(views):
        _append_sheet(wb, title, rows)

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
