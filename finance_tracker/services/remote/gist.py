"""
GitHub Gist Remote

The whole entry list lives as one JSON file inside a gist. Pull reads it,
push overwrites it. There is no append: every push replaces the file, so a
push is idempotent and never needs pending-id tracking.
"""

import json
from typing import Optional

import requests

from finance_tracker.models.entry import Entry, PushMode
from finance_tracker.services.remote.http import HttpRemoteMixin
from finance_tracker.services.remote.interface import (
    FormatError,
    RemoteAdapter,
    RemoteConfigurationError,
    decode_entries,
)


GIST_API_URL = "https://api.github.com/gists/{gist_id}"
DEFAULT_GIST_FILENAME = "finanzas.json"


class GistRemote(HttpRemoteMixin, RemoteAdapter):
    """Entries stored as a JSON file in a GitHub gist."""

    name = "gist"
    label = "Gist"
    push_mode = PushMode.REPLACE_ALL

    def __init__(
        self,
        token: Optional[str],
        gist_id: Optional[str],
        filename: str = DEFAULT_GIST_FILENAME,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ):
        self._token = token
        self._gist_id = gist_id
        self._filename = filename
        self._init_http(session, timeout)

    @property
    def configured(self) -> bool:
        return bool(self._token and self._gist_id)

    def _require_config(self) -> None:
        if not self.configured:
            raise RemoteConfigurationError("Missing token or gistId")

    @property
    def _url(self) -> str:
        return GIST_API_URL.format(gist_id=self._gist_id)

    def _headers(self, with_body: bool = False) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def pull(self) -> list[Entry]:
        """Read the entries file from the gist; a missing file is an empty list."""
        self._require_config()
        response = await self._request("GET", self._url, headers=self._headers())
        data = self._json(response)
        if not isinstance(data, dict):
            raise FormatError("Gist response is not an object")

        file = (data.get("files") or {}).get(self._filename) or {}
        content = file.get("content") or "[]"

        # Large files come back truncated with a raw_url to the full content
        if file.get("truncated") and file.get("raw_url"):
            raw = await self._request("GET", file["raw_url"], headers=self._headers())
            content = raw.text or "[]"

        try:
            payload = json.loads(content)
        except ValueError as e:
            raise FormatError(f"Gist file {self._filename} is not valid JSON: {e}")
        return decode_entries(payload, "Gist")

    async def push(self, entries: list[Entry], mode: Optional[PushMode] = None) -> bool:
        """Overwrite the entries file with the given list."""
        self._resolve_mode(mode)
        self._require_config()
        content = json.dumps(
            [entry.to_wire() for entry in entries],
            indent=2,
            ensure_ascii=False,
        )
        body = {"files": {self._filename: {"content": content}}}
        await self._request(
            "PATCH",
            self._url,
            headers=self._headers(with_body=True),
            json=body,
        )
        return True
