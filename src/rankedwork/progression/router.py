"""Progression API endpoints: checklist, session, history and ladder."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from rankedwork.dependencies import EngineRegistry, get_engine, get_registry, get_user_id
from rankedwork.progression.api_models import (
    AllRanksResponse,
    LeaderboardResponse,
    OperationResponse,
    RankTierResponse,
    TaskCreateRequest,
    TaskUpdateRequest,
    TickResponse,
)
from rankedwork.progression.engine import OperationResult, ProgressionEngine
from rankedwork.progression.export import EXPORT_FILENAME
from rankedwork.progression.leaderboard import build_daily_leaderboard
from rankedwork.progression.ranks import PLACEMENT_GAMES, RANK_TIERS
from rankedwork.progression.schemas import EngineView, HistoryAggregate, HistoryEntry, HistoryPage
from rankedwork.progression.session import format_duration

router = APIRouter(prefix="/api/v1", tags=["Progression"])


def _respond(result: OperationResult) -> OperationResponse:
    """Re-raise a rejected operation for the error handlers; wrap successes."""
    if not result.ok and result.error is not None:
        raise result.error
    return OperationResponse(
        state=result.view,
        completion=result.completion,
        persistence_errors=[str(err) for err in result.persistence_errors],
    )


# ── Ladder reference (no identity needed) ──


@router.get("/ranks", response_model=AllRanksResponse)
async def list_ranks():
    """The tier table: baselines and placement seeding thresholds."""
    return AllRanksResponse(
        tiers=[RankTierResponse(**tier.model_dump()) for tier in RANK_TIERS],
        placement_games=PLACEMENT_GAMES,
    )


# ── State ──


@router.get("/state", response_model=EngineView)
async def get_state(engine: ProgressionEngine = Depends(get_engine)):
    return engine.view()


# ── Checklist ──


@router.post("/tasks", response_model=OperationResponse, status_code=201)
async def add_task(body: TaskCreateRequest, engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.add_task(body.title))


@router.patch("/tasks/{index}", response_model=OperationResponse)
async def edit_task(index: int, body: TaskUpdateRequest, engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.edit_task(index, body.title))


@router.delete("/tasks/{index}", response_model=OperationResponse)
async def remove_task(index: int, engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.remove_task(index))


@router.post("/tasks/{index}/toggle", response_model=OperationResponse)
async def toggle_task(index: int, engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.toggle_task(index))


@router.post("/tasks/{index}/move-up", response_model=OperationResponse)
async def move_task_up(index: int, engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.move_task_up(index))


@router.post("/tasks/{index}/move-down", response_model=OperationResponse)
async def move_task_down(index: int, engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.move_task_down(index))


# ── Session ──


@router.post("/session/start", response_model=OperationResponse)
async def start_session(engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.start())


@router.post("/session/pause", response_model=OperationResponse)
async def pause_session(engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.pause())


@router.post("/session/resume", response_model=OperationResponse)
async def resume_session(engine: ProgressionEngine = Depends(get_engine)):
    return _respond(engine.resume())


@router.post("/session/stop", response_model=OperationResponse)
async def stop_session(engine: ProgressionEngine = Depends(get_engine)):
    """Finish the day. Store failures are reported but do not undo the result."""
    return _respond(await engine.stop())


@router.get("/session/tick", response_model=TickResponse)
async def tick(engine: ProgressionEngine = Depends(get_engine)):
    """Live elapsed-time readout for the timer display."""
    elapsed = engine.tick()
    return TickResponse(
        elapsed_seconds=elapsed.total_seconds(),
        elapsed_display=format_duration(elapsed),
        status=engine.session.status.value,
    )


# ── History ──


@router.get("/history", response_model=HistoryPage)
async def get_history(
    page: int = 0,
    engine: ProgressionEngine = Depends(get_engine),
):
    """Newest-first page of the ledger. Out-of-range pages clamp into range."""
    return engine.history_page(page)


@router.get("/history/summary", response_model=HistoryAggregate)
async def get_history_summary(engine: ProgressionEngine = Depends(get_engine)):
    return engine.history_summary()


@router.get("/history/export")
async def export_history(engine: ProgressionEngine = Depends(get_engine)):
    return Response(
        content=engine.export_history(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/reset", response_model=OperationResponse)
async def reset_progress(engine: ProgressionEngine = Depends(get_engine)):
    """Wipe XP, placements, LP and the ledger."""
    return _respond(await engine.reset())


# ── Leaderboard ──


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def daily_leaderboard(
    players: list[str] = Query(default=[]),
    user_id: str = Depends(get_user_id),
    registry: EngineRegistry = Depends(get_registry),
):
    """Latest session of the caller and the listed players, best XP first.

    Every ledger is read through that player's live engine, so a day that
    committed while its store write failed still counts.
    """
    ledgers: dict[str, list[HistoryEntry]] = {}
    for player in [user_id, *players]:
        if player and player not in ledgers:
            ledgers[player] = list((await registry.get(player)).ledger)
    return LeaderboardResponse(rows=build_daily_leaderboard(ledgers))
