"""Progression engine tests: full days through the checklist, session and ladder."""

import asyncio
from datetime import timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from rankedwork.progression.engine import ProgressionEngine
from rankedwork.progression.errors import InvalidTransition, PersistenceError
from rankedwork.progression.schemas import (
    PlacementRecord,
    ProgressionSnapshot,
    RankState,
    SessionStatus,
)
from rankedwork.stores.base import HistoryStore, ProfileStore
from rankedwork.stores.memory import InMemoryHistoryStore, InMemoryProfileStore


def prepare(engine: ProgressionEngine, *titles: str) -> None:
    for title in titles or ("write report",):
        assert engine.add_task(title).ok
    for index in range(len(engine.session.checklist)):
        assert engine.toggle_task(index).ok


async def work_day(engine: ProgressionEngine, clock, hours: float, *, day: int = 2, hour: int = 9):
    clock.set(2026, 3, day, hour, 0)
    prepare(engine)
    assert engine.start().ok
    clock.advance(hours=hours)
    return await engine.stop()


class GatedHistoryStore(InMemoryHistoryStore):
    """Appends wait until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def append(self, user_id, entry) -> None:
        await self.gate.wait()
        await super().append(user_id, entry)


def ranked_snapshot(tier_index: int, lp: int) -> ProgressionSnapshot:
    return ProgressionSnapshot(
        total_xp=5000,
        placement=PlacementRecord(games_played=10, scores=(500,) * 10, in_placements=False),
        rank=RankState(tier_index=tier_index, lp=lp),
    )


class TestFullDay:
    @pytest.mark.asyncio
    async def test_early_day_with_pause(self, engine, clock, history_store, profile_store):
        clock.set(2026, 3, 2, 7, 0)
        prepare(engine, "a", "b")
        assert engine.start().ok

        clock.advance(minutes=30)
        assert engine.pause().ok
        clock.advance(hours=2)
        assert engine.tick() == timedelta(minutes=30)
        assert engine.resume().ok
        clock.advance(minutes=30)

        result = await engine.stop()

        assert result.ok
        assert result.persistence_errors == []
        entry = result.completion.entry
        assert entry.xp == 1152
        assert entry.date == "2026-03-02"
        assert entry.weekday == "Mon"
        assert entry.start_clock_time == "07:00"
        assert entry.end_clock_time == "10:00"
        assert entry.hours_worked == 1.0
        assert entry.tasks_completed == 2
        assert entry.hours_per_task == 0.5
        assert entry.lp_change is None
        assert entry.lp_after is None

        assert result.view.session.status is SessionStatus.IDLE
        assert result.view.session.tasks == []
        assert result.view.rank.total_xp == 1152
        assert result.view.rank.games_played == 1
        assert result.view.latest_entry == entry

        assert await history_store.list("alice") == [entry]
        assert (await profile_store.load("alice")).total_xp == 1152

    @pytest.mark.asyncio
    async def test_stop_while_paused_folds_open_pause(self, engine, clock):
        prepare(engine)
        engine.start()
        clock.advance(hours=1)
        engine.pause()
        clock.advance(hours=5)
        result = await engine.stop()
        assert result.ok
        assert result.completion.worked == timedelta(hours=1)
        assert result.completion.entry.end_clock_time == "15:00"

    @pytest.mark.asyncio
    async def test_short_session_clamped(self, engine, clock):
        result = await work_day(engine, clock, hours=0.05)
        # 0.25h floor gives base 2400, plus the early finish bonus
        assert result.completion.entry.hours_worked == 0.25
        assert result.completion.entry.xp == 2640


class TestRejections:
    @pytest.mark.asyncio
    async def test_stop_with_incomplete_tasks(self, engine, clock):
        engine.add_task("a")
        engine.add_task("b")
        engine.toggle_task(0)
        engine.start()
        clock.advance(hours=1)

        result = await engine.stop()

        assert not result.ok
        assert result.error_kind == "incomplete_tasks"
        assert result.view.session.status is SessionStatus.RUNNING
        assert len(engine.ledger) == 0
        assert engine.snapshot == ProgressionSnapshot()

    def test_start_with_empty_list(self, engine):
        result = engine.start()
        assert not result.ok
        assert result.error_kind == "empty_task_list"
        assert result.view.session.status is SessionStatus.IDLE

    def test_pause_while_idle(self, engine):
        result = engine.pause()
        assert result.error_kind == "invalid_transition"

    def test_resume_while_running(self, engine):
        prepare(engine)
        engine.start()
        assert engine.resume().error_kind == "invalid_transition"

    @pytest.mark.asyncio
    async def test_stop_while_idle(self, engine):
        prepare(engine)
        result = await engine.stop()
        assert result.error_kind == "invalid_transition"

    def test_bad_task_index(self, engine):
        result = engine.toggle_task(3)
        assert result.error_kind == "validation_error"

    def test_blank_title(self, engine):
        result = engine.add_task("   ")
        assert result.error_kind == "validation_error"
        assert result.view.session.tasks == []

    def test_rejected_operation_does_not_notify(self, engine):
        seen = []
        engine.subscribe(seen.append)
        engine.pause()
        assert seen == []


class TestLadder:
    @pytest.mark.asyncio
    async def test_placements_then_first_ranked_day(self, engine, clock):
        for game in range(10):
            result = await work_day(engine, clock, hours=2, day=2 + game)
            assert result.completion.entry.xp == 586
            assert result.completion.entry.lp_change is None

        rank = engine.rank_view()
        assert not rank.in_placements
        assert rank.tier_name == "Platinum"
        assert rank.lp == 0
        assert rank.next_tier_name == "Diamond"
        assert result.completion.ladder.placement_complete
        assert result.completion.ladder.assigned_tier == 3

        result = await work_day(engine, clock, hours=1, day=12)

        entry = result.completion.entry
        assert entry.xp == 1056
        assert entry.lp_change == 30
        assert entry.lp_after == 30
        assert engine.rank_view().progress_percent == 30.0
        assert engine.snapshot.total_xp == 586 * 10 + 1056

    @pytest.mark.asyncio
    async def test_placement_progress_percent(self, engine, clock):
        for game in range(3):
            await work_day(engine, clock, hours=2, day=2 + game)
        rank = engine.rank_view()
        assert rank.in_placements
        assert rank.games_played == 3
        assert rank.progress_percent == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_promotion_keeps_overflow(self, clock, profile_store, history_store):
        engine = ProgressionEngine(
            "alice", profile_store, history_store, snapshot=ranked_snapshot(3, 85), clock=clock
        )
        result = await work_day(engine, clock, hours=1)

        assert result.completion.ladder.promoted
        assert engine.snapshot.rank == RankState(tier_index=4, lp=15)
        assert result.completion.entry.lp_change == 30
        assert result.completion.entry.lp_after == 15

    @pytest.mark.asyncio
    async def test_demotion_on_slow_day(self, clock, profile_store, history_store):
        engine = ProgressionEngine(
            "alice", profile_store, history_store, snapshot=ranked_snapshot(4, 5), clock=clock
        )
        # 12h from 09:00 ends at 21:00: 98 XP with no bonus, far below Diamond
        result = await work_day(engine, clock, hours=12)

        assert result.completion.entry.xp == 98
        assert result.completion.ladder.demoted
        assert engine.snapshot.rank == RankState(tier_index=3, lp=75)
        assert result.completion.entry.lp_change == -30


class TestPersistence:
    @pytest.mark.asyncio
    async def test_history_failure_keeps_state_committed(self, engine, clock, profile_store):
        failing = AsyncMock(spec=HistoryStore)
        failing.append.side_effect = OSError("disk full")
        engine._history_store = failing

        result = await work_day(engine, clock, hours=2)

        assert result.ok
        assert len(result.persistence_errors) == 1
        error = result.persistence_errors[0]
        assert isinstance(error, PersistenceError)
        assert error.operation == "history append"
        assert len(engine.ledger) == 1
        # profile save still attempted after the failed append
        assert (await profile_store.load("alice")).total_xp == 586

    @pytest.mark.asyncio
    async def test_both_stores_failing(self, clock):
        profiles = AsyncMock(spec=ProfileStore)
        history = AsyncMock(spec=HistoryStore)
        profiles.save.side_effect = RuntimeError("down")
        history.append.side_effect = RuntimeError("down")
        engine = ProgressionEngine("alice", profiles, history, clock=clock)

        result = await work_day(engine, clock, hours=2)

        assert result.ok
        assert [e.operation for e in result.persistence_errors] == ["history append", "profile save"]
        assert engine.snapshot.total_xp == 586

    @pytest.mark.asyncio
    async def test_load_fresh_user(self, profile_store, history_store):
        engine = await ProgressionEngine.load("new", profile_store, history_store)
        assert engine.snapshot == ProgressionSnapshot()
        assert len(engine.ledger) == 0

    @pytest.mark.asyncio
    async def test_load_restores_progress(self, engine, clock, profile_store, history_store):
        await work_day(engine, clock, hours=2)
        await work_day(engine, clock, hours=1, day=3)

        restored = await ProgressionEngine.load("alice", profile_store, history_store, clock=clock)

        assert restored.snapshot == engine.snapshot
        assert list(restored.ledger) == list(engine.ledger)

    @pytest.mark.asyncio
    async def test_load_history_failure_raises(self, profile_store):
        history = AsyncMock(spec=HistoryStore)
        history.list.side_effect = OSError("unreachable")
        with pytest.raises(PersistenceError) as exc_info:
            await ProgressionEngine.load("alice", profile_store, history)
        assert exc_info.value.operation == "history list"

    @pytest.mark.asyncio
    async def test_load_profile_failure_raises(self, history_store):
        profiles = AsyncMock(spec=ProfileStore)
        profiles.load.side_effect = OSError("unreachable")
        with pytest.raises(PersistenceError):
            await ProgressionEngine.load("alice", profiles, history_store)


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_wipes_everything(self, engine, clock, profile_store, history_store):
        await work_day(engine, clock, hours=2)
        engine.add_task("leftover")

        result = await engine.reset()

        assert result.ok
        assert engine.snapshot == ProgressionSnapshot()
        assert len(engine.ledger) == 0
        assert result.view.session.tasks == []
        assert await history_store.list("alice") == []
        assert await profile_store.load("alice") == ProgressionSnapshot()

    @pytest.mark.asyncio
    async def test_reset_is_idempotent(self, engine):
        first = await engine.reset()
        second = await engine.reset()
        assert first.ok and second.ok
        assert first.view.rank == second.view.rank

    @pytest.mark.asyncio
    async def test_reset_does_not_touch_other_users(self, engine, clock, profile_store, history_store):
        bob = ProgressionEngine("bob", profile_store, history_store, clock=clock)
        await work_day(bob, clock, hours=2)
        await engine.reset()
        assert len(await history_store.list("bob")) == 1


class TestGuardAndReads:
    @pytest.mark.asyncio
    async def test_reentrant_call_rejected(self, engine):
        prepare(engine)
        with engine._transition():
            assert engine.add_task("x").error_kind == "invalid_transition"
            assert (await engine.stop()).error_kind == "invalid_transition"
        assert len(engine.session.checklist) == 1

    def test_guard_released_after_rejected_operation(self, engine):
        engine.start()
        with engine._transition():
            pass
        with pytest.raises(InvalidTransition):
            with engine._transition():
                with engine._transition():
                    pass

    @pytest.mark.asyncio
    async def test_listener_sees_committed_results(self, engine, clock):
        seen = []
        engine.subscribe(seen.append)
        await work_day(engine, clock, hours=2)
        assert [r.ok for r in seen] == [True] * len(seen)
        assert seen[-1].completion is not None

    def test_tick_does_not_change_state(self, engine, clock):
        prepare(engine)
        engine.start()
        clock.advance(minutes=90)
        assert engine.tick() == timedelta(minutes=90)
        assert engine.view().session.elapsed_display == "01:30:00"
        assert engine.session.status is SessionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_history_reads(self, engine, clock):
        for day in range(2, 9):
            await work_day(engine, clock, hours=2, day=day)
        page = engine.history_page(1)
        assert page.page_index == 1
        assert [e.date for e in page.entries] == ["2026-03-03", "2026-03-02"]
        assert engine.history_summary().avg_hours == 2.0
        assert engine.export_history().count("\n") == 8


class TestTimezone:
    @pytest.mark.asyncio
    async def test_bonus_judged_on_local_clock(self, clock):
        stores = (InMemoryProfileStore(), InMemoryHistoryStore())
        local = ProgressionEngine("ny", *stores, clock=clock, tz=ZoneInfo("America/New_York"))
        utc = ProgressionEngine("utc", *stores, clock=clock, tz=timezone.utc)

        ny_result = await work_day(local, clock, hours=1, hour=11)
        utc_result = await work_day(utc, clock, hours=1, hour=11)

        assert ny_result.completion.entry.xp == 1152
        assert ny_result.completion.entry.start_clock_time == "06:00"
        assert utc_result.completion.entry.xp == 960
        assert utc_result.completion.entry.start_clock_time == "11:00"


class TestWriteOrdering:
    @pytest.mark.asyncio
    async def test_reset_during_pending_append_leaves_store_empty(self, clock, profile_store):
        history = GatedHistoryStore()
        engine = ProgressionEngine("alice", profile_store, history, clock=clock)
        prepare(engine)
        engine.start()
        clock.advance(hours=2)

        stopping = asyncio.create_task(engine.stop())
        await asyncio.sleep(0)
        assert len(engine.ledger) == 1

        resetting = asyncio.create_task(engine.reset())
        await asyncio.sleep(0)
        history.gate.set()
        stop_result, reset_result = await stopping, await resetting

        assert stop_result.ok and reset_result.ok
        assert len(engine.ledger) == 0
        assert await history.list("alice") == []

        restored = await ProgressionEngine.load("alice", profile_store, history, clock=clock)
        assert len(restored.ledger) == 0
        assert restored.snapshot == ProgressionSnapshot()

    @pytest.mark.asyncio
    async def test_back_to_back_stops_persist_in_order(self, clock, profile_store):
        history = GatedHistoryStore()
        engine = ProgressionEngine("alice", profile_store, history, clock=clock)

        prepare(engine)
        engine.start()
        clock.advance(hours=2)
        first = asyncio.create_task(engine.stop())
        await asyncio.sleep(0)

        prepare(engine)
        engine.start()
        clock.advance(hours=1)
        second = asyncio.create_task(engine.stop())
        await asyncio.sleep(0)

        history.gate.set()
        results = [await first, await second]

        assert [r.completion.entry.xp for r in results] == [586, 960]
        assert [e.xp for e in await history.list("alice")] == [586, 960]
        stored = await profile_store.load("alice")
        assert stored == engine.snapshot
        assert stored.placement.games_played == 2


class TestListeners:
    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_operation(self, engine, clock):
        def explode(_result):
            raise RuntimeError("listener bug")

        seen = []
        engine.subscribe(explode)
        engine.subscribe(seen.append)

        assert engine.add_task("a").ok
        result = await work_day(engine, clock, hours=2)

        assert result.ok
        assert len(engine.ledger) == 1
        assert seen[-1] is result
