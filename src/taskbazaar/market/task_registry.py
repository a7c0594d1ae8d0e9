"""Task registry — task records keyed by ID plus a recency index.

The recency index is an explicit most-recent-first ordering: each newly
added task goes to the head. Seeded tasks are added oldest first so the
index reflects their creation times.
"""

from __future__ import annotations

from typing import Iterator, Optional

from taskbazaar.errors import ErrorKind, MarketplaceError
from taskbazaar.models.task import Task, TaskStatus


class TaskRegistry:
    """Mapping of task IDs to Task records. Tasks are never deleted."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._recency: list[str] = []

    def add(self, task: Task) -> Task:
        """Insert a task at the head of the recency index."""
        if task.task_id in self._tasks:
            raise ValueError(f"Task ID already exists: {task.task_id}")
        self._tasks[task.task_id] = task
        self._recency.insert(0, task.task_id)
        return task

    def get(self, task_id: str) -> Task:
        """Look up a task, raising NOT_FOUND if absent."""
        task = self._tasks.get(task_id)
        if task is None:
            raise MarketplaceError(ErrorKind.NOT_FOUND, f"Task not found: {task_id}")
        return task

    def find(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def most_recent_first(self) -> Iterator[Task]:
        for task_id in list(self._recency):
            yield self._tasks[task_id]

    def search(
        self,
        query: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        poster_id: Optional[str] = None,
    ) -> list[Task]:
        """Filter tasks, most recent first.

        ``query`` is a case-insensitive substring match against title,
        description and tags; a blank query matches everything.
        """
        results: list[Task] = []
        for task in self.most_recent_first():
            if status is not None and task.status != status:
                continue
            if poster_id is not None and task.poster_id != poster_id:
                continue
            if query and not task.matches(query):
                continue
            results.append(task)
        return results

    def open_escrow(self) -> int:
        """Total coins held in escrow by live tasks."""
        return sum(t.escrow for t in self._tasks.values() if t.is_live)

    def ids(self) -> list[str]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)
