# src/noa_api/models/comment.py
"""SQLAlchemy models for article comments and reactions."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from noa_api.db.session import Base
from noa_api.db.time import utcnow

COMMENT_STATUS_PENDING = "pending"
COMMENT_STATUS_ACTIVE = "active"
COMMENT_STATUS_FLAGGED = "flagged"
COMMENT_STATUS_DELETED = "deleted"

COMMENT_STATUSES = (
    COMMENT_STATUS_PENDING,
    COMMENT_STATUS_ACTIVE,
    COMMENT_STATUS_FLAGGED,
    COMMENT_STATUS_DELETED,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class Comment(Base):
    """Reader comment attached to a WordPress post in one edition.

    Comments are never purged; deletion and moderation only move the status.
    """

    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'flagged', 'deleted')",
            name="ck_comments_status",
        ),
        Index("ix_comments_post_edition_created", "wp_post_id", "edition_code", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    wp_post_id: Mapped[str] = mapped_column(String(64), nullable=False)
    edition_code: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("comments.id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=COMMENT_STATUS_ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    reported_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    report_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # NULL means the comment has never been reacted to.
    reaction_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_rich_text: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class CommentReaction(Base):
    """One reaction per user per comment."""

    __tablename__ = "comment_reactions"
    __table_args__ = (Index("ix_comment_reactions_comment_id", "comment_id"),)

    comment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("comments.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id"),
        primary_key=True,
    )
    reaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
