"""
HTTP plumbing shared by the requests-based remotes.

requests is blocking, so every call runs in a worker thread. Network
failures and non-success statuses become TransportError; bodies that are
not JSON become FormatError.
"""

import asyncio
from typing import Any, Optional

import requests

from finance_tracker.services.remote.interface import FormatError, TransportError


class HttpRemoteMixin:
    """Session handling and error mapping for HTTP remotes."""

    label: str = "Remote"

    def _init_http(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    async def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self._timeout)
        try:
            response = await asyncio.to_thread(self._session.request, method, url, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{self.label} unreachable: {e}")
        if not response.ok:
            raise TransportError(
                f"{self.label} {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise FormatError(f"{self.label} returned invalid JSON: {e}")
