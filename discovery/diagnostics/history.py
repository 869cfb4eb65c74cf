from typing import Any, Iterator, List

from discovery.models import SearchHistoryEntry, SearchKind


class SearchHistory:
    """Append-only record of the lazy searches a process has declared."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._entries: List[SearchHistoryEntry] = []

    def record(self, kind: SearchKind, *args: Any) -> None:
        if not self.enabled:
            return
        self._entries.append(SearchHistoryEntry(kind=kind, args=tuple(args)))

    def entries(self) -> List[SearchHistoryEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[SearchHistoryEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
