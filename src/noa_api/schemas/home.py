"""Pydantic schemas for the aggregated home feed."""
from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class HomePost(CamelModel):
    """Post card as shown on the home page."""

    id: str | None = None
    global_relay_id: str | None = None
    slug: str | None = None
    title: str = ""
    excerpt: str = ""
    date: str | None = None
    country: str | None = None
    featured_image: str | None = None
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class AggregatedHome(CamelModel):
    """Home layout for one edition: a hero, three secondary cards, the rest."""

    hero_post: HomePost | None = None
    secondary_posts: list[HomePost] = Field(default_factory=list)
    remaining_posts: list[HomePost] = Field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.hero_post or self.secondary_posts or self.remaining_posts)


class HomeFeedPayload(CamelModel):
    """Cached home feed body."""

    editions: dict[str, AggregatedHome] = Field(default_factory=dict)
    generated_at: str | None = None
