"""Bookmark-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field

from .common import CamelModel, PaginationInfo


class BookmarkCreate(CamelModel):
    """Schema for saving a post."""

    post_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("postId", "wpPostId", "wp_post_id", "post_id"),
    )
    title: str | None = None
    slug: str | None = None
    excerpt: str | None = None
    featured_image: dict[str, Any] | None = Field(
        None,
        validation_alias=AliasChoices("featuredImage", "featured_image"),
    )
    category: str | None = None
    tags: list[str] | None = None
    note: str | None = Field(None, validation_alias=AliasChoices("note", "notes"))
    read_state: str | None = Field(None, validation_alias=AliasChoices("readState", "read_state"))
    edition_code: str | None = Field(
        None,
        validation_alias=AliasChoices("editionCode", "edition_code", "country"),
    )
    collection_id: str | None = Field(
        None,
        validation_alias=AliasChoices("collectionId", "collection_id"),
    )


class BookmarkUpdate(CamelModel):
    """Partial update; only fields present in the request are applied."""

    title: str | None = None
    slug: str | None = None
    excerpt: str | None = None
    featured_image: Any = Field(None, validation_alias=AliasChoices("featuredImage", "featured_image"))
    category: str | None = None
    tags: Any = None
    note: str | None = Field(None, validation_alias=AliasChoices("note", "notes"))
    read_state: str | None = Field(
        None,
        validation_alias=AliasChoices("readState", "read_state", "status"),
    )
    edition_code: str | None = Field(
        None,
        validation_alias=AliasChoices("editionCode", "edition_code", "country"),
    )
    collection_id: str | None = Field(
        None,
        validation_alias=AliasChoices("collectionId", "collection_id"),
    )


class BookmarkBulkDelete(CamelModel):
    post_ids: list[str] = Field(..., validation_alias=AliasChoices("postIds", "post_ids"))


class BookmarkResponse(CamelModel):
    """Schema for bookmark information returned by the API."""

    id: str
    user_id: str
    wp_post_id: str = Field(..., alias="postId")
    edition_code: str | None = None
    collection_id: str | None = None
    title: str | None = None
    slug: str | None = None
    excerpt: str | None = None
    featured_image: dict[str, Any] | None = None
    category: str | None = None
    tags: list[str] | None = None
    read_state: str | None = None
    note: str | None = None
    created_at: datetime | None = None


class BookmarkStatsResponse(CamelModel):
    total: int = 0
    unread: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    read_states: dict[str, int] = Field(default_factory=dict)
    collections: dict[str, int] = Field(default_factory=dict)


class BookmarkListResponse(CamelModel):
    bookmarks: list[BookmarkResponse]
    stats: BookmarkStatsResponse | None = None
    pagination: PaginationInfo


class BookmarkMutationResponse(CamelModel):
    added: list[BookmarkResponse] = Field(default_factory=list)
    updated: list[BookmarkResponse] = Field(default_factory=list)
    removed: list[BookmarkResponse] = Field(default_factory=list)
    stats_delta: BookmarkStatsResponse
