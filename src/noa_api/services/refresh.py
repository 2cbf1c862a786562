"""Bounded pool for background cache refreshes.

Refreshes are keyed: while one is in flight for a key, further requests for
the same key are ignored. At most ``concurrency`` refreshes run at once and at
most ``max_pending`` may be scheduled; extra requests are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundRefresher:
    """Spawns deduplicated, concurrency-limited refresh tasks."""

    def __init__(self, concurrency: int = 2, max_pending: int = 16) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self.concurrency = concurrency
        self.max_pending = max_pending
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._closed = False
        self.completed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def in_flight(self, key: str) -> bool:
        return key in self._tasks

    def schedule(self, key: str, factory: Callable[[], Awaitable[Any]]) -> bool:
        """Schedule ``factory()`` under ``key``.

        Returns False when the refresh was not scheduled because one for the
        same key is already in flight, the pool is full, or it is closed.
        """
        if self._closed:
            logger.debug("Refresher closed; ignoring refresh for %s", key)
            return False
        if key in self._tasks:
            logger.debug("Refresh for %s already in flight", key)
            return False
        if len(self._tasks) >= self.max_pending:
            self.dropped += 1
            logger.warning(
                "Dropping background refresh for %s: %d refreshes pending",
                key,
                len(self._tasks),
            )
            return False

        task = asyncio.create_task(self._run(key, factory), name=f"refresh:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda _task: self._tasks.pop(key, None))
        return True

    async def _run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> None:
        async with self._semaphore:
            try:
                await factory()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.failed += 1
                logger.error("Background refresh for %s failed", key, exc_info=True)
                return
        self.completed += 1

    async def drain(self) -> None:
        """Wait for every scheduled refresh to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def close(self) -> None:
        """Refuse new work and cancel whatever is still running."""
        self._closed = True
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
