"""
Google Sheets CSV Import

Reads a spreadsheet published as CSV. The sheet is maintained by hand, so:
- headers are matched case-insensitively, in English or Spanish
- the type column is free text, normalized into EntryType by prefix
- rows without an id get a stable id derived from their content, so
  importing the same sheet twice updates rows instead of duplicating them

This source is read-only.
"""

import csv
import io
from typing import Optional
from uuid import NAMESPACE_URL, uuid5

import requests
from pydantic import ValidationError

from finance_tracker.models.entry import Entry, PushMode
from finance_tracker.services.remote.http import HttpRemoteMixin
from finance_tracker.services.remote.interface import (
    FormatError,
    RemoteAdapter,
    RemoteConfigurationError,
)


HEADER_ALIASES = {
    "id": "id",
    "type": "type",
    "tipo": "type",
    "amount": "amount",
    "monto": "amount",
    "valor": "amount",
    "principal": "principal",
    "date": "date",
    "fecha": "date",
    "duedate": "dueDate",
    "due_date": "dueDate",
    "due date": "dueDate",
    "vencimiento": "dueDate",
    "fecha de pago": "dueDate",
    "note": "note",
    "nota": "note",
    "descripcion": "note",
    "descripción": "note",
    "who": "who",
    "quien": "who",
    "quién": "who",
    "category": "category",
    "categoria": "category",
    "categoría": "category",
    "account": "account",
    "cuenta": "account",
    "tags": "tags",
    "etiquetas": "tags",
    "updatedat": "updatedAt",
    "updated_at": "updatedAt",
}


def canonical_header(header: Optional[str]) -> Optional[str]:
    return HEADER_ALIASES.get(str(header or "").strip().lower())


def parse_csv_rows(text: str) -> list[dict]:
    """
    Parse CSV text into dicts keyed by canonical field names.

    Unknown columns are dropped; fully blank rows are skipped.
    """
    reader = csv.reader(io.StringIO(text.lstrip("﻿")))
    try:
        headers = next(reader)
    except StopIteration:
        return []
    columns = [canonical_header(h) for h in headers]
    if "amount" not in columns and "type" not in columns:
        raise FormatError("Sheets CSV has neither an amount nor a type column")

    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        row = {}
        for key, value in zip(columns, values):
            if key and value.strip():
                row[key] = value.strip()
        rows.append(row)
    return rows


class SheetsCsvSource(HttpRemoteMixin, RemoteAdapter):
    """Read-only import of a published spreadsheet CSV."""

    name = "sheets_csv"
    label = "Sheets CSV"
    push_mode = None

    def __init__(
        self,
        csv_url: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ):
        self._csv_url = csv_url
        self._init_http(session, timeout)

    @property
    def configured(self) -> bool:
        return bool(self._csv_url)

    def _stable_id(self, row: dict, occurrence: int) -> str:
        content = "|".join(f"{k}={row[k]}" for k in sorted(row))
        return str(uuid5(NAMESPACE_URL, f"{self._csv_url}#{content}#{occurrence}"))

    async def pull(self) -> list[Entry]:
        if not self._csv_url:
            raise RemoteConfigurationError("Sheets CSV URL is not configured")
        response = await self._request("GET", self._csv_url)
        response.encoding = response.encoding or "utf-8"
        try:
            rows = parse_csv_rows(response.text)
        except csv.Error as e:
            raise FormatError(f"Sheets CSV could not be parsed: {e}")

        entries = []
        seen: dict[str, int] = {}
        for index, row in enumerate(rows):
            if "id" not in row:
                key = repr(sorted(row.items()))
                seen[key] = seen.get(key, 0) + 1
                row["id"] = self._stable_id(row, seen[key])
            try:
                entries.append(Entry.from_remote(row))
            except (TypeError, ValueError, ValidationError) as e:
                raise FormatError(f"Sheets CSV row {index + 2} is not a valid entry: {e}")
        return entries

    async def push(self, entries: list[Entry], mode: Optional[PushMode] = None) -> bool:
        raise RemoteConfigurationError("Sheets CSV import is read-only")
