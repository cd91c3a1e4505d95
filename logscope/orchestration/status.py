from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable

from ..schemas.tasks import TaskStatus
from .enums import TaskState
from .exceptions import DuplicateTaskError

TimestampFactory = Callable[[], datetime]


class TaskStatusTracker:
    """Lifecycle table keyed by task identifier.

    Entries survive completion so callers can poll for the terminal state.
    With ``retention`` set, the oldest finished entries are dropped once the
    table grows past that size; running tasks are never evicted.
    """

    def __init__(self, *, retention: int | None = None, now: TimestampFactory | None = None) -> None:
        self._statuses: dict[str, TaskStatus] = {}
        self._retention = retention
        self._now: TimestampFactory = now or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()

    async def start(self, task_id: str) -> TaskStatus:
        """Open a RUNNING entry, replacing a finished one with the same id.

        Raises ``DuplicateTaskError`` while an entry with that id is still running.
        """
        async with self._lock:
            existing = self._statuses.get(task_id)
            if existing is not None and not existing.is_terminal:
                raise DuplicateTaskError(task_id)
            self._statuses.pop(task_id, None)
            status = TaskStatus(
                task_id=task_id,
                status=TaskState.RUNNING,
                progress=0.0,
                start_time=self._now(),
            )
            self._statuses[task_id] = status
            self._evict()
            return status.model_copy()

    async def update_progress(self, task_id: str, *, progress: float, current_agent: str | None = None) -> None:
        async with self._lock:
            status = self._statuses.get(task_id)
            if status is None:
                return
            status.progress = max(0.0, min(100.0, progress))
            status.current_agent = current_agent

    async def complete(self, task_id: str) -> None:
        await self._finish(task_id, TaskState.COMPLETED)

    async def fail(self, task_id: str, error: str) -> None:
        await self._finish(task_id, TaskState.FAILED, error=error)

    async def _finish(self, task_id: str, state: TaskState, *, error: str | None = None) -> None:
        async with self._lock:
            status = self._statuses.get(task_id)
            if status is None:
                return
            status.status = state
            status.end_time = self._now()
            status.current_agent = None
            if state is TaskState.COMPLETED:
                status.progress = 100.0
            if error is not None:
                status.error = error
            self._evict()

    def get(self, task_id: str) -> TaskStatus | None:
        status = self._statuses.get(task_id)
        if status is None:
            return None
        return status.model_copy()

    def __len__(self) -> int:
        return len(self._statuses)

    def clear(self) -> None:
        self._statuses.clear()

    def _evict(self) -> None:
        if self._retention is None:
            return
        overflow = len(self._statuses) - self._retention
        if overflow <= 0:
            return
        for task_id in [key for key, value in self._statuses.items() if value.is_terminal][:overflow]:
            del self._statuses[task_id]
