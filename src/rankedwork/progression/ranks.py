"""Rank tiers, win/loss baselines and placement seeding thresholds.

Tier order is both display order and strength order: index 0 is the
weakest tier. The baseline is the daily XP a "win" must meet at that
tier; the placement threshold is the minimum placement average that
seeds a player into the tier.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class RankTier(BaseModel):
    """One rung of the ladder."""

    model_config = ConfigDict(frozen=True)

    index: int
    name: str
    baseline_xp: int
    placement_threshold: int


RANK_TIERS: tuple[RankTier, ...] = (
    RankTier(index=0, name="Bronze", baseline_xp=200, placement_threshold=0),
    RankTier(index=1, name="Silver", baseline_xp=350, placement_threshold=200),
    RankTier(index=2, name="Gold", baseline_xp=500, placement_threshold=350),
    RankTier(index=3, name="Platinum", baseline_xp=650, placement_threshold=500),
    RankTier(index=4, name="Diamond", baseline_xp=800, placement_threshold=650),
    RankTier(index=5, name="Master", baseline_xp=900, placement_threshold=750),
    RankTier(index=6, name="Grandmaster", baseline_xp=950, placement_threshold=850),
    RankTier(index=7, name="Challenger", baseline_xp=1000, placement_threshold=920),
)

TOP_TIER_INDEX = len(RANK_TIERS) - 1
PLACEMENT_GAMES = 10


def get_tier(tier_index: int) -> RankTier:
    """Look up a tier by index. Raises ValueError outside 0..7."""
    if not 0 <= tier_index <= TOP_TIER_INDEX:
        raise ValueError(f"Tier index {tier_index} outside 0..{TOP_TIER_INDEX}")
    return RANK_TIERS[tier_index]


def next_tier(tier_index: int) -> RankTier:
    """The tier a promotion would lead to. The top tier returns itself."""
    return get_tier(min(tier_index + 1, TOP_TIER_INDEX))


def starting_tier_index(average_xp: float) -> int:
    """Seed tier for a placement average.

    Brackets are inclusive on their lower bound: an average of exactly
    920 is Challenger, 849.99 is Master.
    """
    for tier in reversed(RANK_TIERS):
        if average_xp >= tier.placement_threshold:
            return tier.index
    return 0
