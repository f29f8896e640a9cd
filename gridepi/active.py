"""Active-case tracker.

Holds the identifiers of every citizen who has left HEALTHY and is not
yet RECOVERED or DEAD, in the order they became active.

A simulated day is a review/emit pass over a frozen view of the list:
  - begin_day()          freezes today's entries
  - add(cid)             queues a new case; it is first visited tomorrow
  - mark_resolved(index) queues removal of today's entry at ``index``
  - end_day()            compacts removals (swap-with-last, highest index
                         first) and appends the queued cases

Removals never reorder entries still to be visited today, so no entry is
skipped or visited twice within a day.
"""

from __future__ import annotations

from typing import Iterator, List, Set, Tuple

from gridepi.types import CitizenID


class ActiveCaseTracker:
    """Ordered collection of active citizen ids with O(1) swap-remove."""

    def __init__(self) -> None:
        self._ids: List[CitizenID] = []
        self._pending: List[CitizenID] = []
        self._resolved: Set[int] = set()
        self._in_day = False

    def __len__(self) -> int:
        return len(self._ids) + len(self._pending) - len(self._resolved)

    def __contains__(self, cid: CitizenID) -> bool:
        return cid in self.ids()

    def __iter__(self) -> Iterator[CitizenID]:
        return iter(self.ids())

    def ids(self) -> List[CitizenID]:
        """Current active ids, excluding queued removals, including queued additions."""
        live = [cid for k, cid in enumerate(self._ids) if k not in self._resolved]
        return live + self._pending

    def add(self, cid: CitizenID) -> None:
        """Register a newly active citizen.

        Outside a day pass the id is appended immediately.
        """
        if self._in_day:
            self._pending.append(cid)
        else:
            self._ids.append(cid)

    def remove_at(self, index: int) -> CitizenID:
        """Swap the entry at ``index`` with the last one and truncate."""
        removed = self._ids[index]
        last = self._ids.pop()
        if index < len(self._ids):
            self._ids[index] = last
        return removed

    # ── daily pass ────────────────────────────────────────────────────

    def begin_day(self) -> List[Tuple[int, CitizenID]]:
        """Freeze today's entries and return (index, id) pairs to visit."""
        if self._in_day:
            raise RuntimeError("begin_day() called twice without end_day()")
        self._in_day = True
        return list(enumerate(self._ids))

    def mark_resolved(self, index: int) -> None:
        """Queue today's entry at ``index`` for removal at end_day()."""
        if not self._in_day:
            raise RuntimeError("mark_resolved() is only valid during a day pass")
        self._resolved.add(index)

    def end_day(self) -> None:
        """Apply queued removals and additions."""
        for index in sorted(self._resolved, reverse=True):
            self.remove_at(index)
        self._ids.extend(self._pending)
        self._resolved.clear()
        self._pending.clear()
        self._in_day = False
