"""Storage interfaces the progression engine is constructed with."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rankedwork.progression.schemas import HistoryEntry, ProgressionSnapshot


class ProfileStore(ABC):
    """Durable home of one progression snapshot per user."""

    @abstractmethod
    async def load(self, user_id: str) -> ProgressionSnapshot:
        """Return the stored snapshot. Raises ProfileNotFound for a new user."""
        ...

    @abstractmethod
    async def save(self, user_id: str, snapshot: ProgressionSnapshot) -> None:
        """Insert or overwrite the user's snapshot."""
        ...


class HistoryStore(ABC):
    """Durable append-only ledger per user."""

    @abstractmethod
    async def append(self, user_id: str, entry: HistoryEntry) -> None:
        """Append one entry after any existing ones."""
        ...

    @abstractmethod
    async def list(self, user_id: str) -> list[HistoryEntry]:
        """All entries for the user in insertion order."""
        ...

    @abstractmethod
    async def clear(self, user_id: str) -> None:
        """Delete the user's whole ledger (progression reset)."""
        ...
