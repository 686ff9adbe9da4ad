"""
Shared fixtures.

No test talks to a real remote: FakeRemote stands in for any adapter and
records what it was asked to push.
"""

import asyncio
import datetime as dt
from decimal import Decimal
from typing import Optional

import pytest

from finance_tracker.models.entry import Entry, EntryType, PushMode
from finance_tracker.services.remote import RemoteAdapter, TransportError


class FakeRemote(RemoteAdapter):
    """In-memory remote with a scripted snapshot."""

    def __init__(
        self,
        name: str = "fake",
        push_mode: Optional[PushMode] = PushMode.APPEND,
        snapshot: Optional[list[Entry]] = None,
    ):
        self.name = name
        self.push_mode = push_mode
        self.snapshot = list(snapshot or [])
        self.pushes: list[tuple[list[Entry], PushMode]] = []
        self.fail_with: Optional[Exception] = None
        self.pull_gate: Optional[asyncio.Event] = None
        self.pull_calls = 0
        self.push_gate: Optional[asyncio.Event] = None
        self.push_calls = 0

    @property
    def supported_modes(self) -> frozenset[PushMode]:
        return frozenset(PushMode) if self.push_mode else frozenset()

    async def pull(self) -> list[Entry]:
        self.pull_calls += 1
        snapshot = list(self.snapshot)
        if self.pull_gate is not None:
            await self.pull_gate.wait()
        if self.fail_with:
            raise self.fail_with
        return snapshot

    async def push(self, entries: list[Entry], mode: Optional[PushMode] = None) -> bool:
        mode = self._resolve_mode(mode)
        self.push_calls += 1
        entries = list(entries)
        if self.push_gate is not None:
            await self.push_gate.wait()
        if self.fail_with:
            raise self.fail_with
        self.pushes.append((entries, mode))
        return True


def build_entry(
    entry_id: str = "a",
    updated_at: int = 100,
    amount: int = 50,
    entry_type: EntryType = EntryType.INCOME,
    day: dt.date = dt.date(2024, 1, 15),
    **extra,
) -> Entry:
    return Entry(
        id=entry_id,
        type=entry_type,
        amount=Decimal(amount),
        date=day,
        updated_at=updated_at,
        **extra,
    )


@pytest.fixture
def make_entry():
    """Factory for entries with sensible defaults."""
    return build_entry


@pytest.fixture
def fake_remote():
    """Factory for FakeRemote instances."""
    return FakeRemote


@pytest.fixture
def transport_error():
    return TransportError("Sheets 503", status_code=503)
