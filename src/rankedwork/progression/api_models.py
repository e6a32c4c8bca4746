"""Pydantic request/response models for the progression endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from rankedwork.progression.schemas import CompletionReport, EngineView


class TaskCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class TaskUpdateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class OperationResponse(BaseModel):
    """Engine view after a committed operation, plus any store failures."""

    state: EngineView
    completion: CompletionReport | None = None
    persistence_errors: list[str] = []


class TickResponse(BaseModel):
    elapsed_seconds: float
    elapsed_display: str
    status: str


class RankTierResponse(BaseModel):
    index: int
    name: str
    baseline_xp: int
    placement_threshold: int


class AllRanksResponse(BaseModel):
    tiers: list[RankTierResponse]
    placement_games: int


class LeaderboardResponse(BaseModel):
    rows: list[dict[str, Any]]
