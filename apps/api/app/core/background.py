"""Detached side-effect tasks that must never fail the request that spawned them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Holds strong references to fire-and-forget tasks until they finish.

    A task's outcome is routed to the log and is never joined with the
    caller's result. ``drain`` exists for shutdown and tests.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("background.cancelled task=%s", task.get_name())
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                "background.failed task=%s error=%s",
                task.get_name(),
                type(exc).__name__,
                exc_info=exc,
            )

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["BackgroundTasks"]
