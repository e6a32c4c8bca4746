"""Progression engine: one instance per user.

Wires the checklist, session state machine, XP calculator, ladder and
history ledger together. Every public operation returns an
``OperationResult`` instead of raising: validation and transition errors
leave state untouched, while store failures are reported alongside a
transition that has already committed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo

import structlog

from rankedwork.progression import ladder
from rankedwork.progression.errors import (
    InvalidTransition,
    PersistenceError,
    ProfileNotFound,
    ProgressionError,
)
from rankedwork.progression.export import export_csv
from rankedwork.progression.history import DEFAULT_PAGE_SIZE, HistoryLedger
from rankedwork.progression.ranks import PLACEMENT_GAMES, get_tier, next_tier
from rankedwork.progression.schemas import (
    CompletionReport,
    EngineView,
    HistoryAggregate,
    HistoryEntry,
    HistoryPage,
    LadderResult,
    ProgressionPhase,
    ProgressionSnapshot,
    RankView,
    SessionStatus,
)
from rankedwork.progression.session import ClosedSession, Session
from rankedwork.progression.xp_calculator import clamp_hours, compute_xp
from rankedwork.stores.base import HistoryStore, ProfileStore

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
Listener = Callable[["OperationResult"], None]

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OperationResult:
    """Outcome of one engine operation."""

    ok: bool
    view: EngineView
    error: ProgressionError | None = None
    completion: CompletionReport | None = None
    persistence_errors: list[PersistenceError] = field(default_factory=list)

    @property
    def error_kind(self) -> str | None:
        return self.error.kind if self.error is not None else None


def build_history_entry(
    closed: ClosedSession,
    xp: int,
    result: LadderResult,
    tz: tzinfo,
) -> HistoryEntry:
    """Ledger row for a scored session, with clock columns in the user's zone."""
    start = closed.started_at.astimezone(tz)
    end = closed.ended_at.astimezone(tz)
    hours = clamp_hours(closed.worked)
    tasks = closed.tasks_completed
    return HistoryEntry(
        date=start.date().isoformat(),
        weekday=_WEEKDAYS[start.weekday()],
        start_clock_time=start.strftime("%H:%M"),
        end_clock_time=end.strftime("%H:%M"),
        hours_worked=round(hours, 2),
        tasks_completed=tasks,
        xp=xp,
        hours_per_task=round(hours / tasks, 2) if tasks else round(hours, 2),
        lp_change=result.lp_change,
        lp_after=result.lp_after,
    )


class ProgressionEngine:
    """Owns one user's session, progression snapshot and ledger."""

    def __init__(
        self,
        user_id: str,
        profile_store: ProfileStore,
        history_store: HistoryStore,
        *,
        snapshot: ProgressionSnapshot | None = None,
        history: Iterable[HistoryEntry] = (),
        clock: Clock = utc_now,
        tz: tzinfo = timezone.utc,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.user_id = user_id
        self._profile_store = profile_store
        self._history_store = history_store
        self._clock = clock
        self._tz = tz
        self._snapshot = snapshot or ProgressionSnapshot()
        self._ledger = HistoryLedger(history, page_size=page_size)
        self._session = Session()
        self._in_transition = False
        # store writes run outside the guard; this keeps them in commit order
        self._store_lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._log = logger.bind(user_id=user_id)

    @classmethod
    async def load(
        cls,
        user_id: str,
        profile_store: ProfileStore,
        history_store: HistoryStore,
        **kwargs: object,
    ) -> ProgressionEngine:
        """Restore a user from the stores. A missing profile starts fresh."""
        try:
            snapshot = await profile_store.load(user_id)
        except ProfileNotFound:
            logger.info("profile_initialized", user_id=user_id)
            snapshot = ProgressionSnapshot()
        except Exception as exc:
            raise PersistenceError("profile load", exc) from exc

        try:
            history = await history_store.list(user_id)
        except Exception as exc:
            raise PersistenceError("history list", exc) from exc

        return cls(user_id, profile_store, history_store, snapshot=snapshot, history=history, **kwargs)  # type: ignore[arg-type]

    # ── Read side ──

    @property
    def snapshot(self) -> ProgressionSnapshot:
        return self._snapshot

    @property
    def ledger(self) -> HistoryLedger:
        return self._ledger

    @property
    def session(self) -> Session:
        return self._session

    @property
    def is_quiescent(self) -> bool:
        """True when dropping this engine loses nothing the stores lack.

        That means an idle session with an empty checklist, no transition in
        flight and no store write pending.
        """
        return (
            self._session.status is SessionStatus.IDLE
            and len(self._session.checklist) == 0
            and not self._in_transition
            and not self._store_lock.locked()
        )

    def tick(self, now: datetime | None = None) -> timedelta:
        """Elapsed worked time for the live readout. Never changes state."""
        return self._session.elapsed(now or self._clock())

    def rank_view(self) -> RankView:
        placement = self._snapshot.placement
        rank = self._snapshot.rank
        if placement.in_placements:
            progress = placement.games_played / PLACEMENT_GAMES * 100
        else:
            progress = float(max(0, min(100, rank.lp)))
        return RankView(
            total_xp=self._snapshot.total_xp,
            in_placements=placement.in_placements,
            games_played=placement.games_played,
            tier_index=rank.tier_index,
            tier_name=get_tier(rank.tier_index).name,
            next_tier_name=next_tier(rank.tier_index).name,
            lp=rank.lp,
            progress_percent=progress,
        )

    def view(self) -> EngineView:
        return EngineView(
            user_id=self.user_id,
            session=self._session.view(self._clock()),
            rank=self.rank_view(),
            latest_entry=self._ledger.latest,
        )

    def history_page(self, page_index: int = 0) -> HistoryPage:
        return self._ledger.page(page_index)

    def history_summary(self) -> HistoryAggregate:
        return self._ledger.aggregate()

    def export_history(self) -> str:
        return export_csv(self._ledger)

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` with the result of every successful operation."""
        self._listeners.append(listener)

    # ── Transitions ──

    @contextmanager
    def _transition(self) -> Iterator[None]:
        if self._in_transition:
            raise InvalidTransition("Another transition is still being applied")
        self._in_transition = True
        try:
            yield
        finally:
            self._in_transition = False

    def _run(self, operation: str, apply: Callable[[], object]) -> OperationResult:
        try:
            with self._transition():
                apply()
        except ProgressionError as exc:
            self._log.info("operation_rejected", operation=operation, error=str(exc), kind=exc.kind)
            return OperationResult(ok=False, view=self.view(), error=exc)
        return self._committed(OperationResult(ok=True, view=self.view()))

    def _committed(self, result: OperationResult) -> OperationResult:
        """Notify listeners. A failing listener is logged, never raised."""
        for listener in self._listeners:
            try:
                listener(result)
            except Exception:
                self._log.warning("listener_failed", listener=repr(listener), exc_info=True)
        return result

    def add_task(self, title: str) -> OperationResult:
        return self._run("add_task", lambda: self._session.checklist.add(title))

    def edit_task(self, index: int, title: str) -> OperationResult:
        return self._run("edit_task", lambda: self._session.checklist.edit(index, title))

    def remove_task(self, index: int) -> OperationResult:
        return self._run("remove_task", lambda: self._session.checklist.remove(index))

    def move_task_up(self, index: int) -> OperationResult:
        return self._run("move_task_up", lambda: self._session.checklist.move_up(index))

    def move_task_down(self, index: int) -> OperationResult:
        return self._run("move_task_down", lambda: self._session.checklist.move_down(index))

    def toggle_task(self, index: int) -> OperationResult:
        return self._run("toggle_task", lambda: self._session.checklist.toggle_done(index))

    def start(self) -> OperationResult:
        def apply() -> None:
            self._session.start(self._clock())
            self._log.info("session_started", tasks=len(self._session.checklist))

        return self._run("start", apply)

    def pause(self) -> OperationResult:
        def apply() -> None:
            self._session.pause(self._clock())
            self._log.info("session_paused")

        return self._run("pause", apply)

    def resume(self) -> OperationResult:
        def apply() -> None:
            self._session.resume(self._clock())
            self._log.info("session_resumed", paused_seconds=self._session.paused_accumulated.total_seconds())

        return self._run("resume", apply)

    async def stop(self) -> OperationResult:
        """End the day: score it, move the ladder, log it, then persist.

        The whole in-memory update commits before any store is called.
        Store writes are serialized per engine, so they land in commit order.
        """
        try:
            with self._transition():
                report = self._complete_session()
        except ProgressionError as exc:
            self._log.info("operation_rejected", operation="stop", error=str(exc), kind=exc.kind)
            return OperationResult(ok=False, view=self.view(), error=exc)

        errors = await self._persist_completion(report.entry, self._snapshot)
        result = OperationResult(ok=True, view=self.view(), completion=report, persistence_errors=errors)
        return self._committed(result)

    def _complete_session(self) -> CompletionReport:
        closed = self._session.stop(self._clock())
        xp = compute_xp(
            closed.started_at.astimezone(self._tz),
            closed.ended_at.astimezone(self._tz),
            closed.paused,
        )
        snapshot, ladder_result = ladder.advance(self._snapshot, xp)
        entry = build_history_entry(closed, xp, ladder_result, self._tz)

        self._snapshot = snapshot
        self._ledger.append(entry)
        self._session.reset()

        self._log.info("session_completed", xp=xp, worked_seconds=closed.worked.total_seconds())
        self._log_ladder(ladder_result)
        return CompletionReport(entry=entry, ladder=ladder_result, worked=closed.worked)

    def _log_ladder(self, result: LadderResult) -> None:
        if result.phase is ProgressionPhase.PLACEMENT:
            if result.placement_complete:
                self._log.info(
                    "placements_completed",
                    tier=get_tier(result.assigned_tier or 0).name,
                    average_xp=sum(self._snapshot.placement.scores) / PLACEMENT_GAMES,
                )
            else:
                self._log.info("placement_recorded", games_played=result.games_played)
            return
        self._log.info(
            "lp_updated",
            lp_change=result.lp_change,
            lp=result.lp_after,
            tier=get_tier(self._snapshot.rank.tier_index).name,
            promoted=result.promoted,
            demoted=result.demoted,
        )

    async def reset(self) -> OperationResult:
        """Wipe progression, ledger and session back to a first-time user."""
        try:
            with self._transition():
                snapshot = self._snapshot = ProgressionSnapshot()
                self._ledger.clear()
                self._session.reset()
                self._log.info("progression_reset")
        except ProgressionError as exc:
            return OperationResult(ok=False, view=self.view(), error=exc)

        errors: list[PersistenceError] = []
        async with self._store_lock:
            await self._attempt("history clear", lambda: self._history_store.clear(self.user_id), errors)
            await self._attempt("profile save", lambda: self._profile_store.save(self.user_id, snapshot), errors)
        return self._committed(OperationResult(ok=True, view=self.view(), persistence_errors=errors))

    # ── Persistence ──

    async def _persist_completion(
        self, entry: HistoryEntry, snapshot: ProgressionSnapshot
    ) -> list[PersistenceError]:
        """Write one completed day. ``snapshot`` is the state as of that commit."""
        errors: list[PersistenceError] = []
        async with self._store_lock:
            await self._attempt("history append", lambda: self._history_store.append(self.user_id, entry), errors)
            await self._attempt("profile save", lambda: self._profile_store.save(self.user_id, snapshot), errors)
        return errors

    async def _attempt(
        self,
        operation: str,
        call: Callable[[], Awaitable[None]],
        errors: list[PersistenceError],
    ) -> None:
        """Await a store call, recording (not raising) any failure."""
        try:
            await call()
        except Exception as exc:
            self._log.warning("persistence_failed", operation=operation, exc_info=True)
            errors.append(PersistenceError(operation, exc))
