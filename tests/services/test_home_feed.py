# tests/services/test_home_feed.py
"""Tests for home feed candidate selection and aggregation."""

import asyncio
from unittest.mock import patch

import pytest

from noa_api.core.errors import UpstreamError
from noa_api.core.settings import settings
from noa_api.schemas.home import HomePost
from noa_api.services.home_feed import (
    HomeFeedCandidate,
    aggregate_edition,
    build_aggregated_home,
    build_home_feed,
    create_home_post_key,
    dedupe_home_posts,
    score_candidate,
    select_best_home_feed_candidate,
)
from noa_api.services.wordpress import WordPressError


def _posts(count, prefix="p", country="ng"):
    return [HomePost(id=f"{prefix}{index}", title=f"Post {index}", country=country) for index in range(count)]


class TestSelection:
    def test_score(self):
        assert score_candidate(HomeFeedCandidate("frontpage", _posts(2))) == 1002
        assert score_candidate(HomeFeedCandidate("tagged", _posts(3))) == 503
        assert score_candidate(HomeFeedCandidate("recent", _posts(10))) == 10
        assert score_candidate(HomeFeedCandidate("frontpage", [])) == -1

    def test_frontpage_beats_longer_recent_list(self):
        frontpage = HomeFeedCandidate("frontpage", _posts(1))
        recent = HomeFeedCandidate("recent", _posts(10))
        assert select_best_home_feed_candidate([recent, frontpage]) is frontpage

    def test_empty_frontpage_loses(self):
        frontpage = HomeFeedCandidate("frontpage", [])
        recent = HomeFeedCandidate("recent", _posts(1))
        assert select_best_home_feed_candidate([frontpage, None, recent]) is recent

    def test_first_wins_ties(self):
        first = HomeFeedCandidate("tagged", _posts(2, "a"))
        second = HomeFeedCandidate("tagged", _posts(2, "b"))
        assert select_best_home_feed_candidate([first, second]) is first

    def test_nothing_to_pick(self):
        assert select_best_home_feed_candidate([None, None]) is None


class TestLayout:
    def test_post_keys(self):
        assert create_home_post_key(HomePost(global_relay_id="g1", id="1")) == "g1"
        assert create_home_post_key(HomePost(id="1", country="ng")) == "ng:1"
        assert create_home_post_key(HomePost(slug="s", country="ng")) == "ng:s"
        assert create_home_post_key(HomePost(title="T", date="2024", country="ng")) == "ng::T:2024"

    def test_same_id_in_different_editions_is_kept(self):
        posts = [HomePost(id="1", country="ng"), HomePost(id="1", country="sz"), HomePost(id="1", country="ng")]
        assert len(dedupe_home_posts(posts)) == 2

    def test_layout_split(self):
        home = build_aggregated_home(_posts(6))
        assert home.hero_post.id == "p0"
        assert [post.id for post in home.secondary_posts] == ["p1", "p2", "p3"]
        assert [post.id for post in home.remaining_posts] == ["p4", "p5"]

    def test_empty_layout(self):
        home = build_aggregated_home([])
        assert home.hero_post is None
        assert home.has_content is False


class FakeWordPress:
    def __init__(self, frontpage=None, tagged=None, recent=None, delay=0.0):
        self.frontpage = frontpage
        self.tagged = tagged
        self.recent = recent
        self.delay = delay
        self.tag_requests = []

    async def _answer(self, value):
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(value, Exception):
            raise value
        return value or []

    async def fetch_frontpage_posts(self, edition, *, timeout=None):
        return await self._answer(self.frontpage)

    async def fetch_tagged_posts(self, edition, tag_slug, *, timeout=None):
        self.tag_requests.append(tag_slug)
        return await self._answer(self.tagged)

    async def fetch_recent_posts(self, edition, *, limit=10, timeout=None):
        return await self._answer(self.recent)


class TestAggregation:
    @pytest.mark.asyncio
    async def test_prefers_frontpage(self):
        client = FakeWordPress(frontpage=_posts(2, "f"), tagged=_posts(5, "t"), recent=_posts(10, "r"))
        home = await aggregate_edition(client, "ng", default_tag="fp")
        assert home.hero_post.id == "f0"
        assert client.tag_requests == ["fp"]

    @pytest.mark.asyncio
    async def test_failed_sources_are_skipped(self):
        client = FakeWordPress(frontpage=WordPressError("down"), tagged=[], recent=_posts(3, "r"))
        home = await aggregate_edition(client, "ng", default_tag="fp")
        assert home.hero_post.id == "r0"

    @pytest.mark.asyncio
    async def test_unexpected_source_errors_are_skipped(self):
        client = FakeWordPress(frontpage=ValueError("invalid literal for int()"), recent=_posts(2, "r"))
        home = await aggregate_edition(client, "ng", default_tag="fp")
        assert home.hero_post.id == "r0"

    @pytest.mark.asyncio
    async def test_no_tag_skips_tagged_source(self):
        client = FakeWordPress(recent=_posts(1, "r"))
        await aggregate_edition(client, "za", default_tag="")
        assert client.tag_requests == []

    @pytest.mark.asyncio
    async def test_all_sources_failing_gives_empty_home(self):
        error = WordPressError("down")
        client = FakeWordPress(frontpage=error, tagged=error, recent=error)
        home = await aggregate_edition(client, "ng", default_tag="fp")
        assert home.has_content is False

    @pytest.mark.asyncio
    async def test_slow_sources_time_out(self):
        client = FakeWordPress(frontpage=_posts(1), recent=_posts(1), delay=0.5)
        with patch.multiple(
            settings,
            home_frontpage_timeout_ms=10,
            home_tag_timeout_ms=10,
            home_recent_timeout_ms=10,
        ):
            home = await aggregate_edition(client, "ng", default_tag="fp")
        assert home.has_content is False

    @pytest.mark.asyncio
    async def test_build_home_feed_covers_each_edition(self):
        client = FakeWordPress(recent=_posts(2, "r"))
        payload = await build_home_feed(client, ["sz", "ng"])
        assert list(payload.editions) == ["sz", "ng"]
        assert payload.generated_at is not None

    @pytest.mark.asyncio
    async def test_build_home_feed_without_posts_raises(self):
        error = WordPressError("down")
        client = FakeWordPress(frontpage=error, tagged=error, recent=error)
        with pytest.raises(UpstreamError):
            await build_home_feed(client, ["sz", "ng"])
