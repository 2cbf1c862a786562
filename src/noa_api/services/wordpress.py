"""Async client for the WordPress REST API behind each edition.

Every edition is its own WordPress site; ``WORDPRESS_API_URL`` holds the REST
root with an ``{edition}`` placeholder.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from noa_api.core.errors import UpstreamError
from noa_api.core.settings import settings
from noa_api.schemas.home import HomePost

logger = logging.getLogger(__name__)

HTTP_OK = 200
FRONTPAGE_POST_LIMIT = 6
TAGGED_POST_LIMIT = 8
RECENT_POST_LIMIT = 10

_TAG_RE = re.compile(r"<[^>]+>")


class WordPressError(UpstreamError):
    """Raised when a WordPress site cannot be reached or answers with an error."""


def _plain_text(value: Any) -> str:
    if isinstance(value, Mapping):
        value = value.get("rendered", "")
    if not isinstance(value, str):
        return ""
    return html.unescape(_TAG_RE.sub("", value)).strip()


def _embedded_terms(post: Mapping[str, Any], taxonomy: str) -> list[str]:
    groups = (post.get("_embedded") or {}).get("wp:term") or []
    names = []
    for group in groups:
        for term in group or []:
            if isinstance(term, Mapping) and term.get("taxonomy") == taxonomy and term.get("name"):
                names.append(html.unescape(str(term["name"])))
    return names


def _featured_image(post: Mapping[str, Any]) -> str | None:
    media = (post.get("_embedded") or {}).get("wp:featuredmedia") or []
    if media and isinstance(media[0], Mapping):
        url = media[0].get("source_url")
        return str(url) if url else None
    return None


def map_wordpress_post(post: Mapping[str, Any], edition: str) -> HomePost:
    """Map a raw ``/posts`` item (requested with ``_embed``) onto a home card."""
    raw_id = post.get("id")
    return HomePost(
        id=str(raw_id) if raw_id is not None else None,
        global_relay_id=post.get("global_relay_id") or None,
        slug=post.get("slug") or None,
        title=_plain_text(post.get("title")),
        excerpt=_plain_text(post.get("excerpt")),
        date=post.get("date") or None,
        country=edition,
        featured_image=_featured_image(post),
        categories=_embedded_terms(post, "category"),
        tags=_embedded_terms(post, "post_tag"),
    )


class WordPressClient:
    """HTTP client wrapper for the per-edition WordPress REST APIs."""

    def __init__(
        self,
        *,
        api_url: str | None = None,
        auth_header: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url or settings.wordpress_api_url
        self.auth_header = auth_header if auth_header is not None else settings.wordpress_auth_header
        self.timeout_seconds = timeout_seconds or settings.wordpress_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    def edition_url(self, edition: str) -> str:
        return self.api_url.format(edition=edition).rstrip("/")

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                headers = {"Accept": "application/json"}
                if self.auth_header:
                    headers["Authorization"] = self.auth_header
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    headers=headers,
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(
        self,
        edition: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        client = await self._ensure_client()
        url = f"{self.edition_url(edition)}/{path.lstrip('/')}"
        request_kwargs: dict[str, Any] = {"params": params}
        if timeout:
            request_kwargs["timeout"] = httpx.Timeout(timeout)
        try:
            response = await client.get(url, **request_kwargs)
        except httpx.HTTPError as exc:
            raise WordPressError(f"WordPress request failed for {edition}: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise WordPressError(
                f"WordPress responded with {response.status_code} for {edition} {path}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise WordPressError(f"WordPress returned invalid JSON for {edition} {path}") from exc

    async def fetch_posts(
        self,
        edition: str,
        *,
        per_page: int = RECENT_POST_LIMIT,
        sticky: bool | None = None,
        tag_ids: list[int] | None = None,
        timeout: float | None = None,
    ) -> list[HomePost]:
        params: dict[str, Any] = {"per_page": per_page, "_embed": "1"}
        if sticky is not None:
            params["sticky"] = "true" if sticky else "false"
        if tag_ids:
            params["tags"] = ",".join(str(tag_id) for tag_id in tag_ids)

        payload = await self._get_json(edition, "posts", params=params, timeout=timeout)
        if not isinstance(payload, list):
            raise WordPressError(f"Unexpected posts payload for {edition}")
        posts = []
        for item in payload:
            if not isinstance(item, Mapping):
                continue
            try:
                posts.append(map_wordpress_post(item, edition))
            except ValidationError as exc:
                logger.warning("Skipping unmappable post %s for %s: %s", item.get("id"), edition, exc)
        return posts

    async def fetch_tag_id(self, edition: str, slug: str, *, timeout: float | None = None) -> int | None:
        payload = await self._get_json(edition, "tags", params={"slug": slug}, timeout=timeout)
        if isinstance(payload, list) and payload and isinstance(payload[0], Mapping):
            tag_id = payload[0].get("id")
            return int(tag_id) if tag_id is not None else None
        return None

    async def fetch_frontpage_posts(self, edition: str, *, timeout: float | None = None) -> list[HomePost]:
        return await self.fetch_posts(edition, per_page=FRONTPAGE_POST_LIMIT, sticky=True, timeout=timeout)

    async def fetch_tagged_posts(
        self,
        edition: str,
        tag_slug: str,
        *,
        timeout: float | None = None,
    ) -> list[HomePost]:
        tag_id = await self.fetch_tag_id(edition, tag_slug, timeout=timeout)
        if tag_id is None:
            logger.debug("Tag %s not found for edition %s", tag_slug, edition)
            return []
        return await self.fetch_posts(edition, per_page=TAGGED_POST_LIMIT, tag_ids=[tag_id], timeout=timeout)

    async def fetch_recent_posts(
        self,
        edition: str,
        *,
        limit: int = RECENT_POST_LIMIT,
        timeout: float | None = None,
    ) -> list[HomePost]:
        return await self.fetch_posts(edition, per_page=limit, timeout=timeout)
