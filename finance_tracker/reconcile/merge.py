"""
Entry Reconciliation

Combines a local entry set with a remote snapshot into one set.

RULES:
1. Every id seen on either side is in the result.
2. For an id on both sides, the revision with the greater-or-equal
   updatedAt wins. Ties go to the remote.
3. A local entry whose id is pending for this remote and is absent from
   the snapshot is kept as-is. The remote simply has not caught up yet.

DESIGN DECISION: merge_entries is a pure function. The pending set is an
argument rather than something read from storage, so the same inputs always
give the same output and the caller owns all bookkeeping.

Deletions are not versioned. A snapshot that still contains a locally
deleted id brings it back.
"""

from collections.abc import Iterable, Set

from finance_tracker.models.entry import Entry


def merge_entries(
    local: Iterable[Entry],
    remote: Iterable[Entry],
    pending: Set[str] = frozenset(),
) -> list[Entry]:
    """
    Merge a remote snapshot into the local set, last writer wins.

    Args:
        local: Entries known locally
        remote: Snapshot returned by a remote pull
        pending: Ids pushed to this remote but not yet seen in a pull

    Returns:
        The merged entries, one per id, in no particular order
    """
    local = list(local)
    remote = list(remote)

    by_id: dict[str, Entry] = {}
    for entry in local:
        by_id[entry.id] = entry

    for entry in remote:
        current = by_id.get(entry.id)
        if current is None or (entry.updated_at or 0) >= (current.updated_at or 0):
            by_id[entry.id] = entry

    # Pending rescue
    remote_ids = {entry.id for entry in remote}
    for entry in local:
        if entry.id in pending and entry.id not in remote_ids:
            by_id[entry.id] = entry

    return list(by_id.values())


def changed_entries(before: Iterable[Entry], after: Iterable[Entry]) -> list[Entry]:
    """
    Entries in `after` that are new or differ from their `before` revision.

    Used to write back only what a merge actually changed.
    """
    previous = {entry.id: entry for entry in before}
    return [entry for entry in after if previous.get(entry.id) != entry]
