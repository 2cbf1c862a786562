"""Fixed-window rate limiting backed by a :class:`TTLStore`."""

from __future__ import annotations

import math
from dataclasses import dataclass

from noa_api.services.ttl_store import TTLStore


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter:
    """Count actions per key inside fixed windows.

    The window starts with the first action for a key and lasts
    ``window_seconds``; the counter expires with it.
    """

    def __init__(self, store: TTLStore, *, prefix: str = "ratelimit") -> None:
        self.store = store
        self.prefix = prefix

    def check(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        """Record one action for ``key`` and report whether it is allowed."""
        if limit < 1:
            raise ValueError("limit must be at least 1")

        store_key = f"{self.prefix}:{key}"
        count = self.store.incr(store_key, ttl=window_seconds)
        if count <= limit:
            return RateLimitResult(allowed=True, remaining=limit - count)

        remaining_ttl = self.store.ttl(store_key) or 0.0
        return RateLimitResult(
            allowed=False,
            remaining=0,
            retry_after=max(1, math.ceil(remaining_ttl)),
        )

    def reset(self, key: str) -> None:
        self.store.delete(f"{self.prefix}:{key}")
