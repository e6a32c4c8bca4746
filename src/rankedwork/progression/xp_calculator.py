"""Daily XP score from time-to-completion and time-of-day bonuses.

    hours   = clamp(worked / 1h, 0.25, 12)
    base_xp = round(1200 / (hours + 0.25))
    xp      = round(base_xp * (1 + bonus))

Bonus is +10% for starting before 08:00 and +10% for finishing before
12:00 (local clock), capped at 20%. Rounding is half-up, so the result
always lands in [98, 2880].
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

XP_CURVE_K = 1200
XP_CURVE_B = 0.25
MIN_HOURS = 0.25
MAX_HOURS = 12.0

EARLY_START_HOUR = 8
EARLY_FINISH_HOUR = 12
BONUS_STEP = 0.10
BONUS_CAP = 0.20

_ONE_HOUR = timedelta(hours=1)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return math.floor(value + 0.5)


def clamp_hours(worked: timedelta) -> float:
    """Worked time in hours, clamped to [0.25, 12]."""
    return max(MIN_HOURS, min(MAX_HOURS, worked / _ONE_HOUR))


def base_xp_for_hours(hours: float) -> int:
    """Inverse-time curve before bonuses."""
    return round_half_up(XP_CURVE_K / (hours + XP_CURVE_B))


def time_of_day_bonus(start: datetime, end: datetime) -> float:
    """Early-bird bonus fraction, judged on the local wall-clock hours."""
    bonus = 0.0
    if start.hour < EARLY_START_HOUR:
        bonus += BONUS_STEP
    if end.hour < EARLY_FINISH_HOUR:
        bonus += BONUS_STEP
    return min(bonus, BONUS_CAP)


def compute_xp(start: datetime, end: datetime, paused: timedelta = timedelta(0)) -> int:
    """Score a session.

    ``start`` and ``end`` are wall-clock instants in the user's local zone;
    ``paused`` is subtracted from the elapsed time but does not move the
    clock hours the bonus is judged on.
    """
    hours = clamp_hours(end - start - paused)
    bonus = time_of_day_bonus(start, end)
    return round_half_up(base_xp_for_hours(hours) * (1 + bonus))
