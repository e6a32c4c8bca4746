"""Placement matches and League Points.

The first ten sessions are placement matches: their XP is recorded and,
after the tenth, the average seeds the starting tier. From then on every
session is a ranked match judged against the current tier's baseline:

    win  (xp >= baseline): +clamp(round(20 * xp / baseline), 10, 30) LP
    loss (xp <  baseline): -clamp(round(20 * baseline / xp), 10, 30) LP

Crossing 100 LP promotes one tier (keeping the overflow), dropping below
0 demotes one tier (borrowing 100). At most one tier moves per session.
"""

from __future__ import annotations

from rankedwork.progression.ranks import (
    PLACEMENT_GAMES,
    TOP_TIER_INDEX,
    get_tier,
    starting_tier_index,
)
from rankedwork.progression.schemas import (
    LadderResult,
    PlacementRecord,
    ProgressionPhase,
    ProgressionSnapshot,
    RankState,
)
from rankedwork.progression.xp_calculator import round_half_up

LP_PER_TIER = 100
LP_SCALE = 20
MIN_LP_SWING = 10
MAX_LP_SWING = 30


def calculate_lp_change(xp: int, baseline: int) -> int:
    """Signed LP swing for one ranked match; magnitude is always in [10, 30]."""
    safe_xp = max(1, xp)
    if safe_xp >= baseline:
        gain = round_half_up(LP_SCALE * safe_xp / baseline)
        return max(MIN_LP_SWING, min(MAX_LP_SWING, gain))
    loss = round_half_up(LP_SCALE * baseline / safe_xp)
    return -max(MIN_LP_SWING, min(MAX_LP_SWING, loss))


def apply_lp_change(rank: RankState, lp_change: int) -> tuple[RankState, bool, bool]:
    """Apply an LP swing. Returns (new_rank, promoted, demoted).

    The top tier cannot promote: overflow clamps LP to 100. The bottom
    tier cannot demote: underflow clamps LP to 0.
    """
    tier_index = rank.tier_index
    lp = rank.lp + lp_change
    promoted = demoted = False

    if lp >= LP_PER_TIER:
        lp -= LP_PER_TIER
        if tier_index < TOP_TIER_INDEX:
            tier_index += 1
            promoted = True
        else:
            lp = LP_PER_TIER

    if lp < 0:
        lp += LP_PER_TIER
        if tier_index > 0:
            tier_index -= 1
            demoted = True
        else:
            lp = 0

    return RankState(tier_index=tier_index, lp=lp), promoted, demoted


def record_placement(placement: PlacementRecord, xp: int) -> tuple[PlacementRecord, RankState | None]:
    """Record one placement game. Returns the seeded rank once placements end."""
    if not placement.in_placements:
        raise ValueError("Placements are already complete")
    scores = (*placement.scores, xp)
    games_played = placement.games_played + 1
    if games_played < PLACEMENT_GAMES:
        return PlacementRecord(games_played=games_played, scores=scores, in_placements=True), None

    average = sum(scores) / len(scores)
    seeded = RankState(tier_index=starting_tier_index(average), lp=0)
    return PlacementRecord(games_played=games_played, scores=scores, in_placements=False), seeded


def advance(snapshot: ProgressionSnapshot, xp: int) -> tuple[ProgressionSnapshot, LadderResult]:
    """Feed one session's XP into the ladder. Pure: the input is not modified."""
    total_xp = snapshot.total_xp + xp

    if snapshot.placement.in_placements:
        placement, seeded = record_placement(snapshot.placement, xp)
        rank = seeded if seeded is not None else RankState(tier_index=snapshot.rank.tier_index, lp=0)
        result = LadderResult(
            phase=ProgressionPhase.PLACEMENT,
            xp=xp,
            games_played=placement.games_played,
            placement_complete=seeded is not None,
            assigned_tier=seeded.tier_index if seeded is not None else None,
        )
        return ProgressionSnapshot(total_xp=total_xp, placement=placement, rank=rank), result

    baseline = get_tier(snapshot.rank.tier_index).baseline_xp
    lp_change = calculate_lp_change(xp, baseline)
    rank, promoted, demoted = apply_lp_change(snapshot.rank, lp_change)
    result = LadderResult(
        phase=ProgressionPhase.RANKED,
        xp=xp,
        games_played=snapshot.placement.games_played,
        lp_change=lp_change,
        lp_after=rank.lp,
        promoted=promoted,
        demoted=demoted,
    )
    return snapshot.model_copy(update={"total_xp": total_xp, "rank": rank}), result
