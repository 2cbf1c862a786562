"""In-process key/value store with per-entry expiry.

One instance is created at application startup and handed to the components
that need short-lived state (rate limiting, suggestion query caching) through
FastAPI dependencies. Entries live in this process only: separate workers or
replicas each keep their own view.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLStore:
    """Expiring map with lazy eviction on read and a periodic sweep task."""

    def __init__(
        self,
        *,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    def __len__(self) -> int:
        return len(self._entries)

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._live(key)
        return default if entry is None else entry.value

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or ``None`` when it is absent."""
        entry = self._live(key)
        if entry is None:
            return None
        return max(0.0, entry.expires_at - self._clock())

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl)

    def incr(self, key: str, ttl: float, amount: int = 1) -> int:
        """Increment an integer counter.

        The expiry is set when the counter is created and left untouched by
        later increments, which gives fixed-window semantics.
        """
        entry = self._live(key)
        if entry is None:
            self.set(key, amount, ttl)
            return amount
        entry.value = int(entry.value) + amount
        return entry.value

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the sweep task and wait for it to exit."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.05, float(self.sweep_interval))
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                removed = self.sweep()
                if removed:
                    logger.debug("TTLStore swept %d expired entries", removed)
