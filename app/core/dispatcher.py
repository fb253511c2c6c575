"""
Fire-and-forget processing of verified deliveries.

Each delivery runs as its own asyncio task, detached from the request that
scheduled it: the webhook has already answered 200, and a dropped client
connection must not cancel ingestion.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from app.infra.logging_config import get_logger

logger = get_logger("dispatcher")


class BackgroundDispatcher:
    """Owns in-flight delivery tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(
        self, job: Callable[[], Awaitable[Any]], name: Optional[str] = None
    ) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(job(), name=name)
        # The event loop only keeps weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Delivery task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Delivery task %s failed: %s",
                task.get_name(),
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries, e.g. on shutdown."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d delivery task(s) still running after drain", len(pending))
