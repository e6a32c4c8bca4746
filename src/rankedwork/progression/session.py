"""Session state machine for one day of work.

State progression: idle -> running <-> paused -> completed -> idle
Transitions are validated; a rejected call leaves the session untouched.
"completed" is transient: the engine resets the session right after it
has scored the day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from rankedwork.progression.checklist import TaskChecklist
from rankedwork.progression.errors import EmptyTaskList, IncompleteTasks, InvalidTransition
from rankedwork.progression.schemas import SessionStatus, SessionView

VALID_TRANSITIONS: dict[SessionStatus, list[SessionStatus]] = {
    SessionStatus.IDLE: [SessionStatus.RUNNING],
    SessionStatus.RUNNING: [SessionStatus.PAUSED, SessionStatus.COMPLETED],
    SessionStatus.PAUSED: [SessionStatus.RUNNING, SessionStatus.COMPLETED],
    SessionStatus.COMPLETED: [SessionStatus.IDLE],
}


def validate_transition(current: SessionStatus, target: SessionStatus) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed."""
    valid = VALID_TRANSITIONS.get(current, [])
    if target not in valid:
        raise InvalidTransition(
            f"Invalid transition: {current.value} -> {target.value}. "
            f"Valid transitions: {[s.value for s in valid]}"
        )


def format_duration(elapsed: timedelta) -> str:
    """Format a duration as HH:MM:SS (hours may exceed 24)."""
    total = max(0, int(elapsed.total_seconds()))
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60
    return f"{h:02}:{m:02}:{s:02}"


@dataclass(frozen=True)
class ClosedSession:
    """Wall-clock bookkeeping handed to the engine when a session stops."""

    started_at: datetime
    ended_at: datetime
    paused: timedelta
    tasks_completed: int

    @property
    def worked(self) -> timedelta:
        return self.ended_at - self.started_at - self.paused


class Session:
    """Today's work: the checklist plus start/pause bookkeeping."""

    def __init__(self) -> None:
        self.checklist = TaskChecklist()
        self.status = SessionStatus.IDLE
        self.started_at: datetime | None = None
        self.paused_accumulated = timedelta(0)
        self.pause_started_at: datetime | None = None

    def start(self, now: datetime) -> None:
        validate_transition(self.status, SessionStatus.RUNNING)
        if len(self.checklist) == 0:
            raise EmptyTaskList("Add at least one task before starting")
        self.started_at = now
        self.paused_accumulated = timedelta(0)
        self.pause_started_at = None
        self.status = SessionStatus.RUNNING

    def pause(self, now: datetime) -> None:
        if self.status is not SessionStatus.RUNNING:
            raise InvalidTransition(f"Cannot pause a {self.status.value} session")
        self.pause_started_at = now
        self.status = SessionStatus.PAUSED

    def resume(self, now: datetime) -> None:
        if self.status is not SessionStatus.PAUSED:
            raise InvalidTransition(f"Cannot resume a {self.status.value} session")
        self._fold_pause(now)
        self.status = SessionStatus.RUNNING

    def stop(self, now: datetime) -> ClosedSession:
        """Close the session. Any open pause is folded in first."""
        validate_transition(self.status, SessionStatus.COMPLETED)
        if not self.checklist.all_complete():
            raise IncompleteTasks("Every task must be done before the day can end")
        if self.started_at is None:
            raise InvalidTransition("Session has no start time")
        if self.status is SessionStatus.PAUSED:
            self._fold_pause(now)
        self.status = SessionStatus.COMPLETED
        return ClosedSession(
            started_at=self.started_at,
            ended_at=now,
            paused=self.paused_accumulated,
            tasks_completed=len(self.checklist),
        )

    def reset(self) -> None:
        """Back to a fresh idle session with no tasks."""
        self.checklist.clear()
        self.status = SessionStatus.IDLE
        self.started_at = None
        self.paused_accumulated = timedelta(0)
        self.pause_started_at = None

    def _fold_pause(self, now: datetime) -> None:
        if self.pause_started_at is not None:
            self.paused_accumulated += now - self.pause_started_at
        self.pause_started_at = None

    def elapsed(self, now: datetime) -> timedelta:
        """Worked time so far. Frozen while paused, zero when not started."""
        if self.started_at is None:
            return timedelta(0)
        until = self.pause_started_at if self.pause_started_at is not None else now
        return until - self.started_at - self.paused_accumulated

    def view(self, now: datetime) -> SessionView:
        elapsed = self.elapsed(now)
        return SessionView(
            status=self.status,
            tasks=self.checklist.tasks,
            elapsed=elapsed,
            elapsed_display=format_duration(elapsed),
            all_complete=self.checklist.all_complete(),
        )
