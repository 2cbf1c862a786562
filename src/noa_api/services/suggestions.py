"""Search-as-you-type suggestions built from recent WordPress posts."""

from __future__ import annotations

import asyncio
import bisect
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from noa_api.core.settings import settings
from noa_api.services.ttl_store import TTLStore
from noa_api.services.wordpress import WordPressClient, WordPressError

logger = logging.getLogger(__name__)

INDEX_SOURCE_POSTS = 100
MIN_QUERY_LENGTH = 2
MIN_WORD_LENGTH = 4
_NON_WORD_RE = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class SuggestionResult:
    suggestions: list[str]
    cache_hit: bool


def extract_terms(title: str, categories: list[str], tags: list[str]) -> set[str]:
    """Title words longer than three characters plus category and tag names."""
    words = _NON_WORD_RE.sub(" ", title.lower()).split()
    terms = {word for word in words if len(word) >= MIN_WORD_LENGTH}
    terms.update(name.lower() for name in categories if name)
    terms.update(name.lower() for name in tags if name)
    return terms


class SuggestionIndex:
    """Sorted term list with prefix lookup and a per-query cache."""

    def __init__(
        self,
        client: WordPressClient,
        store: TTLStore,
        *,
        edition: str | None = None,
        index_ttl_seconds: float | None = None,
        query_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.store = store
        self.edition = edition or settings.home_feed_editions[0]
        self.index_ttl_seconds = index_ttl_seconds or settings.suggestion_index_ttl_seconds
        self.query_ttl_seconds = query_ttl_seconds or settings.suggestion_query_ttl_seconds
        self._clock = clock
        self._terms: list[str] = []
        self._built_at: float | None = None
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def terms(self) -> list[str]:
        return list(self._terms)

    def _is_stale(self) -> bool:
        if self._built_at is None or not self._terms:
            return True
        return self._clock() - self._built_at > self.index_ttl_seconds

    async def rebuild(self) -> int:
        """Rebuild the term list from recent posts; keeps the old list on failure."""
        try:
            posts = await self.client.fetch_recent_posts(self.edition, limit=INDEX_SOURCE_POSTS)
        except WordPressError as exc:
            logger.error("Failed to build suggestion index: %s", exc)
            return len(self._terms)

        terms: set[str] = set()
        for post in posts:
            terms.update(extract_terms(post.title, post.categories, post.tags))

        self._terms = sorted(terms)
        self._built_at = self._clock()
        self.store.delete_prefix("suggest:")
        logger.info("Suggestion index rebuilt with %d terms", len(self._terms))
        return len(self._terms)

    async def _refresh_if_needed(self) -> None:
        if not self._is_stale():
            return
        async with self._lock:
            if self._is_stale():
                await self.rebuild()

    async def suggest(self, query: str, limit: int = 8) -> SuggestionResult:
        await self._refresh_if_needed()
        query = (query or "").strip().lower()
        if len(query) < MIN_QUERY_LENGTH:
            return SuggestionResult(suggestions=[], cache_hit=False)

        cache_key = f"suggest:{query}:{limit}"
        cached = self.store.get(cache_key)
        if cached is not None:
            self.hits += 1
            return SuggestionResult(suggestions=list(cached), cache_hit=True)

        self.misses += 1
        start = bisect.bisect_left(self._terms, query)
        results = []
        for term in self._terms[start:]:
            if not term.startswith(query) or len(results) >= limit:
                break
            results.append(term)

        self.store.set(cache_key, results, ttl=self.query_ttl_seconds)
        return SuggestionResult(suggestions=results, cache_hit=False)

    def stats(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "terms": len(self._terms)}
