"""Ordered, user-reorderable task list that gates the end of a session."""

from __future__ import annotations

from rankedwork.progression.errors import ValidationError
from rankedwork.progression.schemas import Task


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise ValidationError("Task title must not be empty")
    return cleaned


class TaskChecklist:
    """Today's tasks. Order is significant and duplicates are allowed."""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self._tasks: list[Task] = list(tasks or [])

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def tasks(self) -> list[Task]:
        """A copy of the tasks, safe to hand to the presentation layer."""
        return [task.model_copy() for task in self._tasks]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._tasks):
            raise ValidationError(f"No task at index {index}")

    def add(self, title: str) -> Task:
        task = Task(title=_clean_title(title))
        self._tasks.append(task)
        return task

    def edit(self, index: int, new_title: str) -> Task:
        self._check_index(index)
        title = _clean_title(new_title)
        self._tasks[index].title = title
        return self._tasks[index]

    def remove(self, index: int) -> Task:
        self._check_index(index)
        return self._tasks.pop(index)

    def move_up(self, index: int) -> None:
        """Swap with the previous task. No-op for the first task."""
        self._check_index(index)
        if index > 0:
            self._tasks[index - 1], self._tasks[index] = self._tasks[index], self._tasks[index - 1]

    def move_down(self, index: int) -> None:
        """Swap with the next task. No-op for the last task."""
        self._check_index(index)
        if index < len(self._tasks) - 1:
            self._tasks[index + 1], self._tasks[index] = self._tasks[index], self._tasks[index + 1]

    def toggle_done(self, index: int) -> Task:
        self._check_index(index)
        task = self._tasks[index]
        task.done = not task.done
        return task

    def all_complete(self) -> bool:
        """True iff there is at least one task and every task is done."""
        return bool(self._tasks) and all(task.done for task in self._tasks)

    def clear(self) -> None:
        self._tasks.clear()
