"""In-process stores for tests and throwaway sessions."""

from __future__ import annotations

from collections import defaultdict

from rankedwork.progression.errors import ProfileNotFound
from rankedwork.progression.schemas import HistoryEntry, ProgressionSnapshot
from rankedwork.stores.base import HistoryStore, ProfileStore


class InMemoryProfileStore(ProfileStore):
    def __init__(self) -> None:
        self._profiles: dict[str, ProgressionSnapshot] = {}

    async def load(self, user_id: str) -> ProgressionSnapshot:
        try:
            return self._profiles[user_id]
        except KeyError:
            raise ProfileNotFound(user_id) from None

    async def save(self, user_id: str, snapshot: ProgressionSnapshot) -> None:
        self._profiles[user_id] = snapshot


class InMemoryHistoryStore(HistoryStore):
    def __init__(self) -> None:
        self._entries: defaultdict[str, list[HistoryEntry]] = defaultdict(list)

    async def append(self, user_id: str, entry: HistoryEntry) -> None:
        self._entries[user_id].append(entry)

    async def list(self, user_id: str) -> list[HistoryEntry]:
        return list(self._entries.get(user_id, []))

    async def clear(self, user_id: str) -> None:
        self._entries.pop(user_id, None)
