"""Append-only ledger of completed sessions with paginated reads."""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator

from rankedwork.progression.schemas import HistoryAggregate, HistoryEntry, HistoryPage

DEFAULT_PAGE_SIZE = 5


class HistoryLedger:
    """Completed sessions in completion order. Entries are never edited."""

    def __init__(self, entries: Iterable[HistoryEntry] = (), page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._entries: list[HistoryEntry] = list(entries)
        self.page_size = page_size

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    @property
    def latest(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def append(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        """Drop every entry. Only a full progression reset does this."""
        self._entries.clear()

    def page_count(self, page_size: int | None = None) -> int:
        size = page_size or self.page_size
        return math.ceil(len(self._entries) / size)

    def clamp_page_index(self, page_index: int, page_size: int | None = None) -> int:
        """Clamp into [0, page_count - 1], or 0 for an empty ledger."""
        last = self.page_count(page_size) - 1
        return max(0, min(page_index, last))

    def page(self, page_index: int = 0, page_size: int | None = None) -> HistoryPage:
        """Newest-first page. Page 0 holds the most recent ``page_size`` entries."""
        size = page_size or self.page_size
        index = self.clamp_page_index(page_index, size)
        end = len(self._entries) - index * size
        start = max(0, end - size)
        return HistoryPage(
            entries=list(reversed(self._entries[start:end])),
            page_index=index,
            page_count=self.page_count(size),
            page_size=size,
            total=len(self._entries),
        )

    def aggregate(self) -> HistoryAggregate:
        """Averages across the whole ledger.

        Hours per task is total hours over total tasks, not the mean of
        each entry's own ratio.
        """
        count = len(self._entries)
        if count == 0:
            return HistoryAggregate()
        total_hours = sum(entry.hours_worked for entry in self._entries)
        total_tasks = sum(entry.tasks_completed for entry in self._entries)
        return HistoryAggregate(
            avg_hours=round(total_hours / count, 2),
            avg_tasks=round(total_tasks / count, 2),
            avg_hours_per_task=round(total_hours / total_tasks, 2) if total_tasks else 0.0,
        )
