# src/noa_api/models/bookmark.py
"""SQLAlchemy models for bookmarks, collections and stored counters."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from noa_api.db.session import Base
from noa_api.db.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class BookmarkCollection(Base):
    """Named group of bookmarks; one default collection per edition."""

    __tablename__ = "bookmark_collections"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_bookmark_collections_slug"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)


class Bookmark(Base):
    """Saved WordPress post for one reader."""

    __tablename__ = "bookmarks"
    __table_args__ = (UniqueConstraint("user_id", "wp_post_id", name="uq_bookmarks_user_post"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False)
    wp_post_id: Mapped[str] = mapped_column(String(64), nullable=False)
    edition_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    collection_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("bookmark_collections.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    slug: Mapped[str | None] = mapped_column(Text, nullable=True)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    featured_image: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    # NULL is treated as unread.
    read_state: Mapped[str | None] = mapped_column(String(16), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class BookmarkUserCounter(Base):
    """Denormalized per-user bookmark totals maintained by counter deltas."""

    __tablename__ = "bookmark_user_counters"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    read_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    collections_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    collection_unread_counts: Mapped[dict[str, int] | None] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
