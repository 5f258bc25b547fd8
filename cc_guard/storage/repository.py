"""
Repository pattern for data access.

In-memory deduplication index over parsed usage entries. Entries sharing a
request id are streaming chunks of one response; the latest chunk carries the
final token counts and replaces the earlier ones.
"""

from typing import Dict, Iterable, List

from .models import UsageEntry


class UsageRepository:
    """Deduplicated set of usage entries.

    Entries with a request id are keyed by it (later inserts win); entries
    without one are kept in an unordered bag.
    """

    def __init__(self):
        self._by_request_id: Dict[str, UsageEntry] = {}
        self._without_id: List[UsageEntry] = []

    def add(self, entry: UsageEntry) -> None:
        """Insert an entry, replacing any earlier entry with the same request id."""
        if entry.request_id:
            self._by_request_id[entry.request_id] = entry
        else:
            self._without_id.append(entry)

    def add_all(self, entries: Iterable[UsageEntry]) -> int:
        """Insert several entries.

        Returns:
            Number of entries inserted
        """
        count = 0
        for entry in entries:
            self.add(entry)
            count += 1
        return count

    def get(self, request_id: str) -> UsageEntry:
        return self._by_request_id[request_id]

    def entries(self) -> List[UsageEntry]:
        """All current entries. Order is not significant; consumers sort by timestamp."""
        return list(self._by_request_id.values()) + self._without_id

    def clear(self) -> None:
        self._by_request_id.clear()
        self._without_id.clear()

    def __len__(self) -> int:
        return len(self._by_request_id) + len(self._without_id)
