"""Bookmark listing and mutations for a single reader.

Every mutation keeps ``bookmark_user_counters`` in step by applying the
matching counter delta in the same transaction, and returns a stats delta so
clients can patch their cached :class:`BookmarkStats` without refetching.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from sqlalchemy import asc, desc, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from noa_api.core.errors import ConflictError, InvalidInputError, NotFoundError
from noa_api.db.postgrest import apply_or_filters, quote_filter_value
from noa_api.db.time import isoformat
from noa_api.models import Bookmark
from noa_api.services.bookmark_collections import ensure_collection_assignment
from noa_api.services.bookmark_counters import (
    READ_STATE_IN_PROGRESS,
    READ_STATE_UNREAD,
    BookmarkState,
    apply_counter_delta,
    build_addition_counter_delta,
    build_removal_counter_delta,
    build_update_counter_delta,
)
from noa_api.services.bookmark_stats import (
    BookmarkStats,
    BookmarkStatsDelta,
    combine_stats_deltas,
    compute_stats_delta,
    default_bookmark_stats,
    fetch_bookmark_stats,
)
from noa_api.services.bookmark_validators import (
    UNSET,
    build_bookmark_update_input,
    resolve_sort_column,
    sanitize_collection_id,
    sanitize_edition_code,
    sanitize_read_state,
)
from noa_api.services.pagination import PaginationState, derive_pagination

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_TITLE = "Untitled Post"

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class BookmarkCursor:
    """Keyset position in a bookmark listing."""

    sort_by: str
    sort_order: SortOrder
    value: Any
    id: str | None


@dataclass
class BookmarkListResult:
    bookmarks: list[Bookmark]
    stats: BookmarkStats | None
    pagination: PaginationState


@dataclass
class BookmarkMutationResult:
    added: list[Bookmark] = field(default_factory=list)
    updated: list[Bookmark] = field(default_factory=list)
    removed: list[Bookmark] = field(default_factory=list)
    stats_delta: BookmarkStatsDelta = field(default_factory=BookmarkStatsDelta)


def _cursor_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return isoformat(value)
    return value


def encode_bookmark_cursor(sort_by: str, sort_order: SortOrder, row: Bookmark) -> str | None:
    """Encode the keyset position of ``row`` as an opaque urlsafe token."""
    payload = {
        "sortBy": sort_by,
        "sortOrder": sort_order,
        "value": _cursor_value(getattr(row, sort_by, None)),
        "id": row.id,
    }
    try:
        raw = json.dumps(payload, separators=(",", ":"))
    except (TypeError, ValueError):
        return None
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def decode_bookmark_cursor(value: str | None) -> BookmarkCursor | None:
    """Decode a token from :func:`encode_bookmark_cursor`; ``None`` if invalid."""
    if not value:
        return None
    padding = "=" * (-len(value) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(value + padding))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    sort_order = payload.get("sortOrder")
    sort_by = payload.get("sortBy")
    if sort_order not in ("asc", "desc") or not isinstance(sort_by, str):
        return None
    row_id = payload.get("id")
    return BookmarkCursor(
        sort_by=sort_by,
        sort_order=sort_order,
        value=payload.get("value"),
        id=row_id if isinstance(row_id, str) else None,
    )


def build_bookmark_cursor_conditions(
    cursor: BookmarkCursor | None,
    sort_by: str,
    sort_order: SortOrder,
) -> list[str]:
    """OR-able filter strings selecting rows after ``cursor`` for this ordering.

    Listings put NULL sort values last in both directions, so a non-null
    cursor is followed by every NULL row and a NULL cursor only by NULL rows
    further along in ``id`` order.
    """
    if (
        cursor is None
        or cursor.sort_by != sort_by
        or cursor.sort_order != sort_order
        or not cursor.id
    ):
        return []

    comparator = "gt" if sort_order == "asc" else "lt"
    row_id = quote_filter_value(cursor.id)
    if cursor.value is None:
        return [f"and({sort_by}.is.null,id.{comparator}.{row_id})"]

    value = quote_filter_value(cursor.value)
    return [
        f"{sort_by}.{comparator}.{value}",
        f"and({sort_by}.eq.{value},id.{comparator}.{row_id})",
        f"{sort_by}.is.null",
    ]


def list_bookmarks(
    db: Session,
    user_id: str,
    *,
    limit: int = DEFAULT_PAGE_SIZE,
    search: str | None = None,
    category: str | None = None,
    read_state: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    cursor: str | None = None,
    post_id: str | None = None,
    edition_code: str | None = None,
    collection_id: str | None = None,
    include_stats_on_cursor: bool = False,
) -> BookmarkListResult:
    """Return one page of the user's bookmarks with optional stats."""
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    order: SortOrder = "asc" if sort_order == "asc" else "desc"
    sort_column = resolve_sort_column(sort_by)
    decoded_cursor = decode_bookmark_cursor(cursor)
    if cursor and decoded_cursor is None:
        raise InvalidInputError("Invalid cursor")

    query = db.query(Bookmark).filter(Bookmark.user_id == user_id)

    term = search.strip() if search else ""
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(
                Bookmark.title.ilike(pattern),
                Bookmark.excerpt.ilike(pattern),
                Bookmark.note.ilike(pattern),
                Bookmark.wp_post_id.ilike(pattern),
                Bookmark.edition_code.ilike(pattern),
                Bookmark.collection_id.ilike(pattern),
            )
        )

    if category and category != "all":
        query = query.filter(Bookmark.category == category)

    if post_id and post_id.strip():
        query = query.filter(Bookmark.wp_post_id == post_id.strip())

    if edition_code and edition_code != "all":
        edition_filter = sanitize_edition_code(edition_code)
        if edition_filter is None:
            query = query.filter(Bookmark.edition_code.is_(None))
        elif edition_filter is not UNSET:
            query = query.filter(Bookmark.edition_code == edition_filter)

    if collection_id:
        collection_filter = sanitize_collection_id(collection_id)
        if collection_filter is None:
            query = query.filter(Bookmark.collection_id.is_(None))
        elif collection_filter is not UNSET:
            query = query.filter(Bookmark.collection_id == collection_filter)

    if read_state and read_state != "all":
        state_filter = sanitize_read_state(read_state)
        if state_filter == READ_STATE_UNREAD:
            query = query.filter(
                or_(
                    Bookmark.read_state.in_([READ_STATE_UNREAD, READ_STATE_IN_PROGRESS]),
                    Bookmark.read_state.is_(None),
                )
            )
        elif state_filter is None:
            query = query.filter(Bookmark.read_state.is_(None))
        elif state_filter is not UNSET:
            query = query.filter(Bookmark.read_state == state_filter)

    query = apply_or_filters(
        query,
        Bookmark,
        build_bookmark_cursor_conditions(decoded_cursor, sort_column, order),
    )

    direction = asc if order == "asc" else desc
    rows = (
        query.order_by(direction(getattr(Bookmark, sort_column)).nulls_last(), direction(Bookmark.id))
        .limit(limit + 1)
        .all()
    )

    page = derive_pagination(
        rows=rows,
        limit=limit,
        cursor_encoder=lambda row: encode_bookmark_cursor(sort_column, order, row),
    )

    stats: BookmarkStats | None = None
    if include_stats_on_cursor or decoded_cursor is None:
        try:
            stats = fetch_bookmark_stats(db, user_id) if page.items else default_bookmark_stats()
        except SQLAlchemyError:
            logger.warning("Failed to load bookmark stats for %s", user_id, exc_info=True)
            stats = default_bookmark_stats()

    return BookmarkListResult(bookmarks=page.items, stats=stats, pagination=page.pagination)


def add_bookmark(
    db: Session,
    user_id: str,
    *,
    post_id: str,
    title: str | None = None,
    slug: str | None = None,
    excerpt: str | None = None,
    featured_image: dict[str, Any] | None = None,
    category: str | None = None,
    tags: list[str] | None = None,
    note: str | None = None,
    read_state: str | None = None,
    edition_code: str | None = None,
    collection_id: str | None = None,
) -> BookmarkMutationResult:
    """Save a post for the user.

    Raises:
        InvalidInputError: If ``post_id`` is blank.
        ConflictError: If the post is already bookmarked.
    """
    post_id = (post_id or "").strip()
    if not post_id:
        raise InvalidInputError("Post ID is required")

    edition = sanitize_edition_code(edition_code) or None
    existing = (
        db.query(Bookmark.id)
        .filter(Bookmark.user_id == user_id, Bookmark.wp_post_id == post_id)
        .first()
    )
    if existing is not None:
        raise ConflictError("Bookmark already exists")

    resolved_collection = ensure_collection_assignment(
        db,
        user_id,
        collection_id=sanitize_collection_id(collection_id) or None,
        edition_code=edition,
    )

    bookmark = Bookmark(
        user_id=user_id,
        wp_post_id=post_id,
        edition_code=edition,
        collection_id=resolved_collection,
        title=title or DEFAULT_TITLE,
        slug=slug or "",
        excerpt=excerpt or "",
        featured_image=featured_image,
        category=category,
        tags=tags,
        read_state=sanitize_read_state(read_state) or READ_STATE_UNREAD,
        note=note,
    )
    db.add(bookmark)
    db.flush()

    apply_counter_delta(db, user_id, build_addition_counter_delta(bookmark))
    db.commit()
    db.refresh(bookmark)

    logger.info("User %s bookmarked post %s", user_id, post_id)
    return BookmarkMutationResult(added=[bookmark], stats_delta=compute_stats_delta(next=bookmark))


def update_bookmark(
    db: Session,
    user_id: str,
    post_id: str,
    updates: dict[str, Any],
) -> BookmarkMutationResult:
    """Apply a partial update to the bookmark for ``post_id``.

    Raises:
        InvalidInputError: If ``post_id`` is blank or nothing writable was sent.
        NotFoundError: If the user has not bookmarked the post.
    """
    post_id = (post_id or "").strip()
    if not post_id:
        raise InvalidInputError("Post ID is required")

    bookmark = (
        db.query(Bookmark)
        .filter(Bookmark.user_id == user_id, Bookmark.wp_post_id == post_id)
        .first()
    )
    if bookmark is None:
        raise NotFoundError("Bookmark not found")

    changes = build_bookmark_update_input(updates)
    if not changes:
        raise InvalidInputError("No bookmark updates provided")

    previous = BookmarkState.from_row(bookmark)
    should_resolve_collection = "edition_code" in changes or "collection_id" in changes
    target_edition = changes.get("edition_code", bookmark.edition_code)
    target_collection = changes.pop("collection_id", bookmark.collection_id)

    for key, value in changes.items():
        setattr(bookmark, key, value)

    if should_resolve_collection:
        bookmark.collection_id = ensure_collection_assignment(
            db,
            user_id,
            collection_id=target_collection,
            edition_code=target_edition,
        )

    db.flush()
    apply_counter_delta(db, user_id, build_update_counter_delta(previous, bookmark))
    db.commit()
    db.refresh(bookmark)

    return BookmarkMutationResult(
        updated=[bookmark],
        stats_delta=compute_stats_delta(previous=previous, next=bookmark),
    )


def _detached_copy(row: Bookmark) -> Bookmark:
    return Bookmark(**{column.key: getattr(row, column.key) for column in Bookmark.__table__.columns})


def bulk_remove_bookmarks(db: Session, user_id: str, post_ids: list[str]) -> BookmarkMutationResult:
    """Delete the user's bookmarks for ``post_ids``; unknown ids are ignored.

    Raises:
        InvalidInputError: If no non-blank post id was given.
    """
    cleaned = [post_id.strip() for post_id in post_ids if post_id and post_id.strip()]
    if not cleaned:
        raise InvalidInputError("Post IDs are required")

    rows = (
        db.query(Bookmark)
        .filter(Bookmark.user_id == user_id, Bookmark.wp_post_id.in_(cleaned))
        .all()
    )
    removed = [_detached_copy(row) for row in rows]
    for row in rows:
        db.delete(row)
    db.flush()

    apply_counter_delta(db, user_id, build_removal_counter_delta(removed))
    db.commit()

    if removed:
        logger.info("User %s removed %d bookmark(s)", user_id, len(removed))
    return BookmarkMutationResult(
        removed=removed,
        stats_delta=combine_stats_deltas(compute_stats_delta(previous=row) for row in removed),
    )


def remove_bookmark(db: Session, user_id: str, post_id: str) -> BookmarkMutationResult:
    return bulk_remove_bookmarks(db, user_id, [post_id])
