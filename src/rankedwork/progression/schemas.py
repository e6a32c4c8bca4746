"""Data model for sessions, progression snapshots and the history ledger."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rankedwork.progression.ranks import PLACEMENT_GAMES, TOP_TIER_INDEX


class SessionStatus(str, Enum):
    """Lifecycle of one day of work."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class ProgressionPhase(str, Enum):
    """Which branch of the ladder a session's XP was applied to."""

    PLACEMENT = "placement"
    RANKED = "ranked"


# --- Tasks ---


class Task(BaseModel):
    """A checklist item. Title is trimmed and non-empty (enforced by the checklist)."""

    title: str
    done: bool = False


# --- Progression ---


class PlacementRecord(BaseModel):
    """Placement-phase bookkeeping. Scores are frozen once placements end."""

    model_config = ConfigDict(frozen=True)

    games_played: int = Field(default=0, ge=0, le=PLACEMENT_GAMES)
    scores: tuple[int, ...] = ()
    in_placements: bool = True

    @model_validator(mode="after")
    def _check_consistency(self) -> PlacementRecord:
        if len(self.scores) != self.games_played:
            raise ValueError("scores must have one entry per placement game played")
        if self.in_placements == (self.games_played == PLACEMENT_GAMES):
            raise ValueError("in_placements must be true until all placement games are played")
        return self


class RankState(BaseModel):
    """Current tier and League Points. LP is held at 0 during placements."""

    model_config = ConfigDict(frozen=True)

    tier_index: int = Field(default=0, ge=0, le=TOP_TIER_INDEX)
    # 100 is reachable only at the top tier, where overflow clamps instead of promoting
    lp: int = Field(default=0, ge=0, le=100)


class ProgressionSnapshot(BaseModel):
    """The durable per-user aggregate handed to the profile store."""

    model_config = ConfigDict(frozen=True)

    total_xp: int = Field(default=0, ge=0)
    placement: PlacementRecord = Field(default_factory=PlacementRecord)
    rank: RankState = Field(default_factory=RankState)


class LadderResult(BaseModel):
    """What one session's XP did to the ladder."""

    model_config = ConfigDict(frozen=True)

    phase: ProgressionPhase
    xp: int
    games_played: int
    placement_complete: bool = False
    assigned_tier: int | None = None
    lp_change: int | None = None
    lp_after: int | None = None
    promoted: bool = False
    demoted: bool = False


# --- History ---


class HistoryEntry(BaseModel):
    """One completed session. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    date: str
    weekday: str
    start_clock_time: str
    end_clock_time: str
    hours_worked: float = Field(ge=0.25, le=12)
    tasks_completed: int = Field(ge=0)
    xp: int = Field(ge=1)
    hours_per_task: float
    lp_change: int | None = None
    lp_after: int | None = None


class HistoryPage(BaseModel):
    """One newest-first page of the ledger."""

    entries: list[HistoryEntry]
    page_index: int
    page_count: int
    page_size: int
    total: int


class HistoryAggregate(BaseModel):
    """Averages over the whole ledger, independent of pagination."""

    avg_hours: float = 0.0
    avg_tasks: float = 0.0
    avg_hours_per_task: float = 0.0


# --- Views ---


class SessionView(BaseModel):
    status: SessionStatus
    tasks: list[Task]
    elapsed: timedelta
    elapsed_display: str
    all_complete: bool


class RankView(BaseModel):
    total_xp: int
    in_placements: bool
    games_played: int
    placement_games: int = PLACEMENT_GAMES
    tier_index: int
    tier_name: str
    next_tier_name: str
    lp: int
    progress_percent: float


class EngineView(BaseModel):
    """Everything the presentation layer needs after a transition."""

    user_id: str
    session: SessionView
    rank: RankView
    latest_entry: HistoryEntry | None = None


class CompletionReport(BaseModel):
    """Outcome of a successful ``stop``: the scored day and its ladder effect."""

    entry: HistoryEntry
    ladder: LadderResult
    worked: timedelta
