"""
Abstract Remote Adapter Interface

DESIGN DECISION: Remotes only move data. Each adapter knows how to fetch a
full snapshot and how to send a batch of entries; none of them merges.
Merging always happens locally, in the reconciler, before or after an
adapter is called.

Error taxonomy shared by every adapter:
- TransportError: remote unreachable or answered with a non-success status
- FormatError: the payload is not a decodable entry sequence
- RemoteConfigurationError: credentials or URL missing, or unsupported mode
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError

from finance_tracker.models.entry import Entry, PushMode


class SyncError(Exception):
    """Base exception for remote sync operations."""
    pass


class TransportError(SyncError):
    """Remote unreachable or non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FormatError(SyncError):
    """Remote payload is not an entry sequence."""
    pass


class RemoteConfigurationError(SyncError):
    """Remote is missing credentials/URL or was asked for an unsupported mode."""
    pass


class RemoteAdapter(ABC):
    """
    Abstract interface for a remote entry source.

    Attributes:
        name: Backend name; pending ids and known remote ids are keyed by it
        push_mode: What a push does by default; None for read-only sources
    """

    name: str = "remote"
    push_mode: Optional[PushMode] = PushMode.REPLACE_ALL

    @property
    def supported_modes(self) -> frozenset[PushMode]:
        return frozenset({self.push_mode}) if self.push_mode else frozenset()

    @property
    def configured(self) -> bool:
        """Whether the adapter has what it needs to reach its remote."""
        return True

    @abstractmethod
    async def pull(self) -> list[Entry]:
        """
        Fetch the remote's current full snapshot.

        Raises:
            TransportError: remote unreachable or non-success status
            FormatError: payload is not a decodable entry sequence
        """
        pass

    @abstractmethod
    async def push(self, entries: list[Entry], mode: Optional[PushMode] = None) -> bool:
        """
        Send entries to the remote.

        Args:
            entries: Entries to send
            mode: Override of push_mode; must be in supported_modes

        Returns:
            True once the remote accepted the batch

        Raises:
            TransportError, RemoteConfigurationError
        """
        pass

    def _resolve_mode(self, mode: Optional[PushMode]) -> PushMode:
        mode = mode or self.push_mode
        if mode is None or mode not in self.supported_modes:
            supported = ", ".join(sorted(m.value for m in self.supported_modes)) or "none"
            raise RemoteConfigurationError(
                f"{self.name} does not support push mode {mode.value if mode else None!r} "
                f"(supported: {supported})"
            )
        return mode


def decode_entries(payload: Any, source: str) -> list[Entry]:
    """
    Turn a decoded JSON payload into entries.

    Raises:
        FormatError: if the payload is not a list of entry objects
    """
    if not isinstance(payload, list):
        raise FormatError(f"{source} payload is not an entry list")
    entries = []
    for index, item in enumerate(payload):
        try:
            entries.append(Entry.from_remote(item))
        except (TypeError, ValueError, ValidationError) as e:
            raise FormatError(f"{source} item {index} is not a valid entry: {e}")
    return entries
