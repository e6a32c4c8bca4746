"""Shared test fixtures."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from rankedwork.config import get_settings
from rankedwork.progression.engine import ProgressionEngine
from rankedwork.progression.schemas import HistoryEntry
from rankedwork.stores.memory import InMemoryHistoryStore, InMemoryProfileStore

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class FakeClock:
    """Injected wall clock; tests move it explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, *args: int) -> datetime:
        self.now = datetime(*args, tzinfo=timezone.utc)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Monday 2026-03-02 09:00 UTC."""
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def history_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def engine(clock, profile_store, history_store) -> ProgressionEngine:
    return ProgressionEngine("alice", profile_store, history_store, clock=clock)


@pytest.fixture
def make_entry() -> Callable[..., HistoryEntry]:
    """Build ledger entries with sensible defaults."""

    def _make(
        xp: int = 500,
        hours: float = 2.0,
        tasks: int = 4,
        date: str = "2026-03-02",
        lp_change: int | None = None,
        lp_after: int | None = None,
    ) -> HistoryEntry:
        return HistoryEntry(
            date=date,
            weekday="Mon",
            start_clock_time="09:00",
            end_clock_time="11:00",
            hours_worked=hours,
            tasks_completed=tasks,
            xp=xp,
            hours_per_task=round(hours / tasks, 2) if tasks else hours,
            lp_change=lp_change,
            lp_after=lp_after,
        )

    return _make


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def _ensure_migrations(database_url: str) -> None:
    """Apply Alembic migrations to ``database_url``. Runs synchronously."""
    subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        check=True,
        capture_output=True,
        cwd=PROJECT_ROOT,
        env={**os.environ, "RW_DATABASE_URL": database_url},
    )


@pytest.fixture(scope="session")
def migrated_db(tmp_path_factory) -> Path:
    """A SQLite file at Alembic head, migrated once per test session."""
    path = tmp_path_factory.mktemp("schema") / "template.db"
    _ensure_migrations(_sqlite_url(path))
    return path


@pytest_asyncio.fixture
async def app(tmp_path, monkeypatch, migrated_db) -> AsyncGenerator[FastAPI, None]:
    """A fresh app, with its lifespan running, over a copy of the migrated database."""
    db_path = tmp_path / "rankedwork.db"
    shutil.copyfile(migrated_db, db_path)
    monkeypatch.setenv("RW_DATABASE_URL", _sqlite_url(db_path))
    monkeypatch.setenv("RW_LOG_FORMAT", "console")
    get_settings.cache_clear()

    from rankedwork.main import create_app

    application = create_app()
    async with application.router.lifespan_context(application):
        yield application

    get_settings.cache_clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against ``app``."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def alice() -> dict[str, str]:
    return {"X-User-Id": "alice"}


@pytest.fixture
def bob() -> dict[str, str]:
    return {"X-User-Id": "bob"}
