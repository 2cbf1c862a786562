"""Home feed assembly from several WordPress post sources.

For each edition three candidate lists are fetched concurrently (sticky
front-page posts, posts carrying the edition's default tag, most recent posts)
and the best one is laid out as hero, secondary and remaining cards.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from noa_api.core.errors import UpstreamError
from noa_api.core.settings import settings
from noa_api.db.time import isoformat, utcnow
from noa_api.schemas.home import AggregatedHome, HomeFeedPayload, HomePost
from noa_api.services.wordpress import WordPressClient, WordPressError

logger = logging.getLogger(__name__)

HomeFeedSource = Literal["frontpage", "tagged", "recent"]

SOURCE_WEIGHTS: dict[str, int] = {"frontpage": 1000, "tagged": 500, "recent": 0}
SECONDARY_POST_COUNT = 3


@dataclass
class HomeFeedCandidate:
    """Post list produced by one source for one edition."""

    source: HomeFeedSource
    posts: list[HomePost] = field(default_factory=list)


def score_candidate(candidate: HomeFeedCandidate) -> int:
    """Source weight plus post count; an empty list scores -1 whatever its source."""
    if not candidate.posts:
        return -1
    return SOURCE_WEIGHTS.get(candidate.source, 0) + len(candidate.posts)


def select_best_home_feed_candidate(
    candidates: Iterable[HomeFeedCandidate | None],
) -> HomeFeedCandidate | None:
    """Pick the highest scoring candidate; the first one seen wins ties."""
    best: HomeFeedCandidate | None = None
    best_score = 0
    for candidate in candidates:
        if candidate is None:
            continue
        score = score_candidate(candidate)
        if best is None or score > best_score:
            best = candidate
            best_score = score
    return best


def create_home_post_key(post: HomePost) -> str:
    """Identity used to drop duplicate cards, from strictest to loosest."""
    if post.global_relay_id:
        return post.global_relay_id
    country = post.country or ""
    if post.id:
        return f"{country}:{post.id}"
    if post.slug:
        return f"{country}:{post.slug}"
    return f"{country}:{post.slug or ''}:{post.title}:{post.date or ''}"


def dedupe_home_posts(posts: Iterable[HomePost]) -> list[HomePost]:
    seen: set[str] = set()
    unique = []
    for post in posts:
        key = create_home_post_key(post)
        if key in seen:
            continue
        seen.add(key)
        unique.append(post)
    return unique


def build_aggregated_home(posts: Sequence[HomePost]) -> AggregatedHome:
    unique = dedupe_home_posts(posts)
    if not unique:
        return AggregatedHome()
    hero, *rest = unique
    return AggregatedHome(
        hero_post=hero,
        secondary_posts=rest[:SECONDARY_POST_COUNT],
        remaining_posts=rest[SECONDARY_POST_COUNT:],
    )


async def _run_source(
    semaphore: asyncio.Semaphore,
    source: HomeFeedSource,
    edition: str,
    timeout_ms: int,
    fetch: Callable[[float], Awaitable[list[HomePost]]],
) -> HomeFeedCandidate | None:
    timeout = timeout_ms / 1000
    async with semaphore:
        try:
            posts = await asyncio.wait_for(fetch(timeout), timeout=timeout)
        except TimeoutError:
            logger.warning("Home feed %s source timed out after %dms for %s", source, timeout_ms, edition)
            return None
        except (WordPressError, ValueError) as exc:
            logger.warning("Home feed %s source failed for %s: %s", source, edition, exc)
            return None
    return HomeFeedCandidate(source=source, posts=dedupe_home_posts(posts))


async def aggregate_edition(
    client: WordPressClient,
    edition: str,
    *,
    semaphore: asyncio.Semaphore | None = None,
    default_tag: str | None = None,
) -> AggregatedHome:
    """Fetch every source for ``edition`` and lay out the best candidate."""
    semaphore = semaphore or asyncio.Semaphore(settings.home_feed_request_concurrency)
    tag = default_tag if default_tag is not None else settings.home_feed_default_tags.get(edition)

    tasks = [
        _run_source(
            semaphore,
            "frontpage",
            edition,
            settings.home_frontpage_timeout_ms,
            lambda timeout: client.fetch_frontpage_posts(edition, timeout=timeout),
        ),
    ]
    if tag:
        tasks.append(
            _run_source(
                semaphore,
                "tagged",
                edition,
                settings.home_tag_timeout_ms,
                lambda timeout: client.fetch_tagged_posts(edition, tag, timeout=timeout),
            )
        )
    tasks.append(
        _run_source(
            semaphore,
            "recent",
            edition,
            settings.home_recent_timeout_ms,
            lambda timeout: client.fetch_recent_posts(edition, timeout=timeout),
        )
    )

    candidates = await asyncio.gather(*tasks)
    best = select_best_home_feed_candidate(candidates)
    if best is None:
        logger.warning("No home feed source produced posts for %s", edition)
        return AggregatedHome()
    logger.debug("Home feed for %s uses %s (%d posts)", edition, best.source, len(best.posts))
    return build_aggregated_home(best.posts)


async def build_home_feed(
    client: WordPressClient,
    editions: Sequence[str] | None = None,
) -> HomeFeedPayload:
    """Aggregate every configured edition under one shared request limit.

    Raises:
        UpstreamError: If no edition produced any post.
    """
    editions = list(editions if editions is not None else settings.home_feed_editions)
    semaphore = asyncio.Semaphore(settings.home_feed_request_concurrency)
    results = await asyncio.gather(
        *(aggregate_edition(client, edition, semaphore=semaphore) for edition in editions)
    )
    if results and not any(home.has_content for home in results):
        raise UpstreamError("Home feed sources returned no posts")
    return HomeFeedPayload(
        editions=dict(zip(editions, results, strict=True)),
        generated_at=isoformat(utcnow()),
    )
