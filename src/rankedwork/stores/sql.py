"""SQLAlchemy-backed profile and history stores."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rankedwork.db.models import HistoryRecord, ProfileRecord
from rankedwork.progression.errors import ProfileNotFound
from rankedwork.progression.schemas import (
    HistoryEntry,
    PlacementRecord,
    ProgressionSnapshot,
    RankState,
)
from rankedwork.stores.base import HistoryStore, ProfileStore


def _snapshot_from_row(row: ProfileRecord) -> ProgressionSnapshot:
    return ProgressionSnapshot(
        total_xp=row.total_xp,
        placement=PlacementRecord(
            games_played=row.games_played,
            scores=tuple(row.placement_scores),
            in_placements=row.in_placements,
        ),
        rank=RankState(tier_index=row.tier_index, lp=row.lp),
    )


def _entry_from_row(row: HistoryRecord) -> HistoryEntry:
    return HistoryEntry(
        date=row.date,
        weekday=row.weekday,
        start_clock_time=row.start_clock_time,
        end_clock_time=row.end_clock_time,
        hours_worked=row.hours_worked,
        tasks_completed=row.tasks_completed,
        xp=row.xp,
        hours_per_task=row.hours_per_task,
        lp_change=row.lp_change,
        lp_after=row.lp_after,
    )


class SqlProfileStore(ProfileStore):
    """Profiles in the ``profiles`` table, one row per user."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, user_id: str) -> ProgressionSnapshot:
        async with self._session_factory() as db:
            row = await db.get(ProfileRecord, user_id)
            if row is None:
                raise ProfileNotFound(user_id)
            return _snapshot_from_row(row)

    async def save(self, user_id: str, snapshot: ProgressionSnapshot) -> None:
        async with self._session_factory() as db:
            row = await db.get(ProfileRecord, user_id)
            if row is None:
                row = ProfileRecord(user_id=user_id)
                db.add(row)
            row.total_xp = snapshot.total_xp
            row.games_played = snapshot.placement.games_played
            row.placement_scores = list(snapshot.placement.scores)
            row.in_placements = snapshot.placement.in_placements
            row.tier_index = snapshot.rank.tier_index
            row.lp = snapshot.rank.lp
            row.updated_at = datetime.now(timezone.utc)
            await db.commit()


class SqlHistoryStore(HistoryStore):
    """Ledger rows in ``history_entries``, ordered by autoincrement id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, user_id: str, entry: HistoryEntry) -> None:
        async with self._session_factory() as db:
            db.add(HistoryRecord(user_id=user_id, **entry.model_dump()))
            await db.commit()

    async def list(self, user_id: str) -> list[HistoryEntry]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(HistoryRecord)
                .where(HistoryRecord.user_id == user_id)
                .order_by(HistoryRecord.id.asc())
            )
            return [_entry_from_row(row) for row in result.scalars().all()]

    async def clear(self, user_id: str) -> None:
        async with self._session_factory() as db:
            await db.execute(delete(HistoryRecord).where(HistoryRecord.user_id == user_id))
            await db.commit()
