"""Daily leaderboard: each player's most recent session, best XP first."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from rankedwork.progression.schemas import HistoryEntry


def build_daily_leaderboard(
    ledgers: Mapping[str, Sequence[HistoryEntry]],
) -> list[dict[str, Any]]:
    """Rank players by the XP of their latest ledger entry.

    Input: player id -> that player's ledger in completion order.
    Output: one dict per player with a non-empty ledger, holding
    ``player``, ``rank`` (1-indexed) and the entry's fields, sorted by
    XP descending. Ties keep input order.
    """
    rows = [
        {"player": player, **entries[-1].model_dump()}
        for player, entries in ledgers.items()
        if entries
    ]
    rows.sort(key=lambda row: -row["xp"])
    for idx, row in enumerate(rows):
        row["rank"] = idx + 1
    return rows
