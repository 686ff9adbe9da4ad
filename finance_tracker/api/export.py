"""
CSV and XLSX Export

Both exports are plain snapshots of the stored entries, one row per entry,
in storage order.
"""

import csv
import io
from collections.abc import Iterable

from openpyxl import Workbook

from finance_tracker.models.entry import Entry


CSV_COLUMNS = ["id", "type", "amount", "date", "note", "who", "category", "tags", "updatedAt"]
XLSX_COLUMNS = [
    "id",
    "type",
    "amount",
    "principal",
    "date",
    "dueDate",
    "note",
    "who",
    "category",
    "account",
    "tags",
    "updatedAt",
]
SHEET_TITLE = "Finanzas"


def _row(entry: Entry, columns: list[str]) -> list:
    wire = entry.to_wire()
    row = []
    for column in columns:
        value = wire.get(column)
        if column == "tags":
            value = ",".join(value or [])
        row.append("" if value is None else value)
    return row


def entries_to_csv(entries: Iterable[Entry]) -> str:
    """Text values quoted, numbers bare, header row first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        writer.writerow(_row(entry, CSV_COLUMNS))
    return buffer.getvalue()


def entries_to_xlsx(entries: Iterable[Entry]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE
    sheet.append(XLSX_COLUMNS)
    for entry in entries:
        sheet.append(_row(entry, XLSX_COLUMNS))

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
