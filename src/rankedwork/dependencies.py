"""Shared FastAPI dependencies: caller identity and per-user engines."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from zoneinfo import ZoneInfo

import structlog
from fastapi import Depends, HTTPException, Request

from rankedwork.config import Settings, get_settings
from rankedwork.progression.engine import ProgressionEngine
from rankedwork.stores.base import HistoryStore, ProfileStore

logger = structlog.get_logger(__name__)


class EngineRegistry:
    """One live ProgressionEngine per user, loaded lazily from the stores.

    Holds at most ``max_live_engines`` engines, least recently used first
    out. Only quiescent engines are dropped (see ``is_quiescent``), so a user
    with a running day or a pending store write is never evicted and the
    cap can be exceeded while many users are mid-session. A dropped user
    is reloaded from the stores on their next request.
    """

    def __init__(self, profile_store: ProfileStore, history_store: HistoryStore, settings: Settings) -> None:
        self.profile_store = profile_store
        self.history_store = history_store
        self._tz = ZoneInfo(settings.timezone)
        self._page_size = settings.history_page_size
        self._max_live = settings.max_live_engines
        self._engines: OrderedDict[str, ProgressionEngine] = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> ProgressionEngine:
        engine = self._engines.get(user_id)
        if engine is not None:
            self._engines.move_to_end(user_id)
            return engine
        async with self._lock:
            engine = self._engines.get(user_id)
            if engine is None:
                engine = await ProgressionEngine.load(
                    user_id,
                    self.profile_store,
                    self.history_store,
                    tz=self._tz,
                    page_size=self._page_size,
                )
                self._engines[user_id] = engine
                self._evict(keep=user_id)
        return engine

    def _evict(self, keep: str) -> None:
        excess = len(self._engines) - self._max_live
        if excess <= 0:
            return
        idle = [uid for uid, engine in self._engines.items() if uid != keep and engine.is_quiescent]
        for uid in idle[:excess]:
            del self._engines[uid]
        if idle:
            logger.debug("engines_evicted", count=min(excess, len(idle)), live=len(self._engines))

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def clear(self) -> None:
        self._engines.clear()


def get_registry(request: Request) -> EngineRegistry:
    """The registry built in the app lifespan."""
    return request.app.state.engines


async def get_user_id(request: Request, settings: Settings = Depends(get_settings)) -> str:  # noqa: B008
    """Stable user id supplied by the upstream identity provider."""
    user_id = (request.headers.get(settings.user_id_header) or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return user_id


async def get_engine(
    user_id: str = Depends(get_user_id),
    registry: EngineRegistry = Depends(get_registry),  # noqa: B008
) -> ProgressionEngine:
    return await registry.get(user_id)
