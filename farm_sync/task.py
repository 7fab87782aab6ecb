"""Task tracking for background work scheduled from listener callbacks.

Store listeners are plain callables, so work that needs to await the remote
client (such as refreshing collections after a sign in) is scheduled as a
tracked task instead.
"""

import asyncio
import logging
from typing import Any, Coroutine

_LOGGER = logging.getLogger(__name__)

__all__ = ["TaskService"]


class TaskService:
    """Service for tracking and waiting for asynchronous tasks."""

    def __init__(self) -> None:
        """Initialize the task service."""
        self._active_tasks: set[asyncio.Task[Any]] = set()

    def create_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create and track a new task."""
        task = asyncio.create_task(coro, name=name)
        self._active_tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._active_tasks.discard(task)
        if task.cancelled():
            _LOGGER.debug("Task %s was cancelled", task.get_name())
        elif (err := task.exception()) is not None:
            _LOGGER.error("Task %s failed: %s", task.get_name(), err)

    async def block_till_done(self) -> None:
        """Wait for all active tasks to complete.

        Tasks created while waiting are not waited on.
        """
        active_tasks = list(self._active_tasks)
        if not active_tasks:
            await asyncio.sleep(0)
            return
        _LOGGER.debug("Waiting for %d tasks to complete", len(active_tasks))
        await asyncio.gather(*active_tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel all active tasks and wait for them to finish."""
        active_tasks = list(self._active_tasks)
        for task in active_tasks:
            task.cancel()
        if active_tasks:
            await asyncio.gather(*active_tasks, return_exceptions=True)

    def get_num_active_tasks(self) -> int:
        """Get the number of active tasks."""
        return len(self._active_tasks)
