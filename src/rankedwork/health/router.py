"""Liveness, readiness and build info."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from rankedwork.config import get_settings
from rankedwork.database import get_session
from rankedwork.progression.ranks import PLACEMENT_GAMES, RANK_TIERS

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Ready once the profile/history database answers a trivial query."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        database = f"error: {exc}"

    return {
        "status": "ready" if database == "ok" else "degraded",
        "checks": {"database": database},
        "live_engines": len(request.app.state.engines),
    }


@router.get("/version")
async def version() -> dict[str, object]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "timezone": settings.timezone,
        "tiers": len(RANK_TIERS),
        "placement_games": PLACEMENT_GAMES,
    }
