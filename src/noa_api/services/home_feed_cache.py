"""Stale-while-revalidate Redis cache for the aggregated home feed.

The feed is stored under a single key as ``{"data": ..., "expiresAt": ms}``.
Redis keeps the value for the TTL plus a stale-retention window, so an expired
payload can still be served if rebuilding it fails. Per request:

* no Redis client: build the feed directly and mark it uncacheable (BYPASS);
* fresh hit, more than the refresh threshold before expiry: serve it (HIT);
* fresh hit inside the threshold: serve it and refresh in the background
  (REFRESH);
* expired hit: rebuild synchronously (MISS), falling back to the expired
  payload when the rebuild fails (STALE);
* miss: rebuild synchronously and store it (MISS).

Redis errors never fail a request; reads degrade to a direct build and write
errors are logged.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError
from redis.exceptions import RedisError

from noa_api.core.settings import settings
from noa_api.schemas.home import HomeFeedPayload
from noa_api.services.refresh import BackgroundRefresher

logger = logging.getLogger(__name__)

_REDIS_FAILURES = (RedisError, OSError)


class CacheStatus(str, Enum):
    HIT = "HIT"
    STALE = "STALE"
    MISS = "MISS"
    REFRESH = "REFRESH"
    BYPASS = "BYPASS"


@dataclass(frozen=True)
class CachedEntry:
    data: HomeFeedPayload
    expires_at: int


@dataclass(frozen=True)
class HomeFeedResult:
    payload: HomeFeedPayload
    status: CacheStatus
    cache_control: str


class HomeFeedCache:
    """Serve the home feed from Redis with background revalidation."""

    def __init__(
        self,
        redis: Any | None,
        fetcher: Callable[[], Awaitable[HomeFeedPayload]],
        refresher: BackgroundRefresher | None = None,
        *,
        key: str | None = None,
        ttl_ms: int | None = None,
        refresh_threshold_ms: int | None = None,
        stale_retention_ms: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.redis = redis
        self.fetcher = fetcher
        self.refresher = refresher or BackgroundRefresher(
            settings.background_refresh_concurrency,
            settings.background_refresh_max_pending,
        )
        self.key = key or settings.home_feed_cache_key
        self.ttl_ms = ttl_ms if ttl_ms is not None else settings.home_feed_ttl_ms
        self.refresh_threshold_ms = (
            refresh_threshold_ms
            if refresh_threshold_ms is not None
            else settings.home_feed_refresh_threshold_ms
        )
        self.stale_retention_ms = (
            stale_retention_ms
            if stale_retention_ms is not None
            else settings.home_feed_stale_retention_ms
        )
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def cacheable_header(self) -> str:
        return (
            f"public, s-maxage={self.ttl_ms // 1000}, "
            f"stale-while-revalidate={self.stale_retention_ms // 1000}"
        )

    def _result(self, payload: HomeFeedPayload, status: CacheStatus) -> HomeFeedResult:
        cache_control = "no-store" if status is CacheStatus.BYPASS else self.cacheable_header
        return HomeFeedResult(payload=payload, status=status, cache_control=cache_control)

    async def _read(self) -> CachedEntry | None:
        raw = await self.redis.get(self.key)
        if raw is None:
            return None
        try:
            decoded = json.loads(raw)
            return CachedEntry(
                data=HomeFeedPayload.model_validate(decoded["data"]),
                expires_at=int(decoded["expiresAt"]),
            )
        except (ValueError, TypeError, KeyError, ValidationError):
            logger.warning("Discarding malformed home feed cache entry under %s", self.key)
            return None

    async def _write(self, payload: HomeFeedPayload) -> None:
        value = json.dumps(
            {
                "data": payload.model_dump(mode="json", by_alias=True),
                "expiresAt": self._now_ms() + self.ttl_ms,
            }
        )
        try:
            await self.redis.set(self.key, value, px=self.ttl_ms + self.stale_retention_ms)
        except _REDIS_FAILURES:
            logger.warning("Failed to write home feed cache %s", self.key, exc_info=True)

    async def refresh(self) -> HomeFeedPayload:
        """Rebuild the feed and store it."""
        payload = await self.fetcher()
        await self._write(payload)
        return payload

    async def get(self) -> HomeFeedResult:
        if self.redis is None:
            return self._result(await self.fetcher(), CacheStatus.BYPASS)

        try:
            entry = await self._read()
        except _REDIS_FAILURES:
            logger.warning("Home feed cache read failed; serving uncached", exc_info=True)
            return self._result(await self.fetcher(), CacheStatus.BYPASS)

        if entry is None:
            return self._result(await self.refresh(), CacheStatus.MISS)

        remaining = entry.expires_at - self._now_ms()
        if remaining > 0:
            if remaining <= self.refresh_threshold_ms:
                self.refresher.schedule(self.key, self.refresh)
                return self._result(entry.data, CacheStatus.REFRESH)
            return self._result(entry.data, CacheStatus.HIT)

        try:
            return self._result(await self.refresh(), CacheStatus.MISS)
        except Exception:
            logger.warning("Home feed rebuild failed; serving expired entry", exc_info=True)
            return self._result(entry.data, CacheStatus.STALE)
