"""
Pending-id Bookkeeping

An id is pending for a backend from the moment it is pushed there in append
mode until a pull from that same backend returns it. While pending, the
merge keeps the local entry even when the remote snapshot lacks it.

The set is kept per backend: an id acknowledged by one remote is still
pending for another.

TODO: model each remote as a log with an acknowledged offset instead of a
loose id set, so a push that the remote silently drops can be detected.
"""

from collections.abc import Iterable

from finance_tracker.state.client_state import ClientState


class PendingIdTracker:
    """Per-backend pending id sets persisted in the client state."""

    def __init__(self, state: ClientState):
        self._state = state

    def pending(self, backend: str) -> frozenset[str]:
        """Ids pushed to `backend` and not yet seen in one of its snapshots."""
        return frozenset(self._state.pending_ids().get(backend, []))

    def all_pending(self) -> dict[str, frozenset[str]]:
        return {
            backend: frozenset(ids)
            for backend, ids in self._state.pending_ids().items()
        }

    def mark_pushed(self, backend: str, ids: Iterable[str]) -> frozenset[str]:
        """Record a successful push. Returns the new pending set."""
        current = self._state.pending_ids()
        merged = set(current.get(backend, [])) | set(ids)
        current[backend] = sorted(merged)
        self._state.set_pending_ids(current)
        return frozenset(merged)

    def acknowledge(self, backend: str, snapshot_ids: Iterable[str]) -> frozenset[str]:
        """
        Drop every id the backend has now returned in a snapshot.

        Returns the ids that were acknowledged.
        """
        current = self._state.pending_ids()
        before = set(current.get(backend, []))
        if not before:
            return frozenset()
        acknowledged = before & set(snapshot_ids)
        if acknowledged:
            current[backend] = sorted(before - acknowledged)
            self._state.set_pending_ids(current)
        return frozenset(acknowledged)

    def clear(self, backend: str) -> None:
        current = self._state.pending_ids()
        if backend in current:
            del current[backend]
            self._state.set_pending_ids(current)
