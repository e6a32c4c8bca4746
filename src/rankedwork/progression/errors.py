"""Error taxonomy for the progression engine.

Every error here is recoverable. Components raise them before touching
state, and the engine turns them into failed ``OperationResult`` values.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for all engine errors."""

    kind = "progression_error"


class ValidationError(ProgressionError):
    """Caller input was rejected (blank title, bad index, no tasks, ...)."""

    kind = "validation_error"


class EmptyTaskList(ValidationError):
    """A session cannot start without at least one task."""

    kind = "empty_task_list"


class IncompleteTasks(ValidationError):
    """A session cannot stop until every task is done."""

    kind = "incomplete_tasks"


class InvalidTransition(ProgressionError):
    """A session call was made from a state that does not permit it."""

    kind = "invalid_transition"


class PersistenceError(ProgressionError):
    """A profile or history store call failed.

    The in-memory transition that triggered the write stays committed.
    """

    kind = "persistence_error"

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class ProfileNotFound(ProgressionError):
    """The profile store has no snapshot for this user yet."""

    kind = "profile_not_found"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No profile stored for user {user_id!r}")
        self.user_id = user_id
