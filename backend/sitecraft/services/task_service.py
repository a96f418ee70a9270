from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class TaskService:
    """Manages background tasks and ensures graceful shutdown."""

    def __init__(self):
        self._tasks: set[asyncio.Task[Any]] = set()
        self._lock = asyncio.Lock()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def track_task(self, task: asyncio.Task[Any]) -> None:
        async with self._lock:
            self._tasks.add(task)
            task.add_done_callback(self._on_done)

    async def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Schedule *coro* as a tracked task and return it."""
        task = asyncio.create_task(coro, name=name)
        await self.track_task(task)
        return task

    def _on_done(self, finished: asyncio.Task[Any]) -> None:
        self._tasks.discard(finished)
        if finished.cancelled():
            return
        exc = finished.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                task=finished.get_name(),
                error=str(exc),
                exc_info=exc,
            )

    async def shutdown(self) -> None:
        pending: list[asyncio.Task[Any]] = []
        async with self._lock:
            if self._tasks:
                pending = list(self._tasks)
                self._tasks.clear()

        for task in pending:
            task.cancel()

        if pending:
            logger.info("background_tasks_cancelled", count=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
