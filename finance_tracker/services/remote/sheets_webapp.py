"""
Google Sheets Web App Remote

An Apps Script web app in front of a spreadsheet:
- GET returns every row as a JSON array of entries
- POST {entries, mode} writes rows

DESIGN DECISION: The default push is an append of entries the sheet has not
returned yet. The web app does not echo what it stored, so every appended id
becomes pending until a later GET shows it.
"""

from typing import Optional

import requests

from finance_tracker.models.entry import Entry, PushMode
from finance_tracker.services.remote.http import HttpRemoteMixin
from finance_tracker.services.remote.interface import (
    RemoteAdapter,
    RemoteConfigurationError,
    decode_entries,
)


class SheetsWebAppRemote(HttpRemoteMixin, RemoteAdapter):
    """Entries behind a Google Apps Script web app."""

    name = "sheets_webapp"
    label = "Sheets"
    push_mode = PushMode.APPEND

    def __init__(
        self,
        url: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ):
        self._url = url
        self._init_http(session, timeout)

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def configured(self) -> bool:
        return bool(self._url)

    @property
    def supported_modes(self) -> frozenset[PushMode]:
        # The script decides what to do with the flag; append is what the
        # scheduler uses, replace-all is the explicit "push everything" path
        return frozenset({PushMode.APPEND, PushMode.REPLACE_ALL})

    def _require_url(self) -> str:
        if not self._url:
            raise RemoteConfigurationError("Sheets web app URL is not configured")
        return self._url

    async def pull(self) -> list[Entry]:
        url = self._require_url()
        response = await self._request("GET", url)
        return decode_entries(self._json(response), "Sheets")

    async def push(self, entries: list[Entry], mode: Optional[PushMode] = None) -> bool:
        mode = self._resolve_mode(mode)
        url = self._require_url()
        body = {
            "entries": [entry.to_wire() for entry in entries],
            "mode": mode.value,
        }
        await self._request("POST", url, json=body)
        return True
