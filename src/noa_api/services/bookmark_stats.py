# src/noa_api/services/bookmark_stats.py
"""Bookmark statistics and the per-mutation stats deltas sent to clients."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from noa_api.models import Bookmark, BookmarkUserCounter
from noa_api.services.bookmark_counters import (
    READ_STATE_IN_PROGRESS,
    READ_STATE_READ,
    READ_STATE_UNKNOWN,
    READ_STATE_UNREAD,
    UNREAD_READ_STATE_KEYS,
    collection_key_for_id,
    parse_collection_counts,
    resolve_read_state_key,
)


@dataclass
class BookmarkStats:
    """Aggregate view of a user's bookmarks."""

    total: int = 0
    unread: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    read_states: dict[str, int] = field(default_factory=dict)
    collections: dict[str, int] = field(default_factory=dict)


@dataclass
class BookmarkStatsDelta:
    """Change to :class:`BookmarkStats` caused by one or more mutations."""

    total: int = 0
    unread: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    read_states: dict[str, int] = field(
        default_factory=lambda: {
            READ_STATE_UNREAD: 0,
            READ_STATE_IN_PROGRESS: 0,
            READ_STATE_READ: 0,
            READ_STATE_UNKNOWN: 0,
        }
    )
    collections: dict[str, int] = field(default_factory=dict)


def _merge_count(accumulator: dict[str, int], key: str, delta: int) -> None:
    value = accumulator.get(key, 0) + delta
    if value == 0:
        accumulator.pop(key, None)
    else:
        accumulator[key] = value


def _apply_row(delta: BookmarkStatsDelta, row: Any, sign: int) -> None:
    delta.total += sign
    state_key = resolve_read_state_key(getattr(row, "read_state", None))
    _merge_count(delta.read_states, state_key, sign)
    if state_key in UNREAD_READ_STATE_KEYS:
        delta.unread += sign
        _merge_count(
            delta.collections,
            collection_key_for_id(getattr(row, "collection_id", None)),
            sign,
        )
    category = getattr(row, "category", None)
    if category:
        _merge_count(delta.categories, category, sign)


def compute_stats_delta(previous: Any | None = None, next: Any | None = None) -> BookmarkStatsDelta:
    """Stats change from replacing ``previous`` with ``next``.

    Either side may be ``None``: only ``next`` for an insert, only
    ``previous`` for a removal.
    """
    delta = BookmarkStatsDelta()
    if previous is not None:
        _apply_row(delta, previous, -1)
    if next is not None:
        _apply_row(delta, next, 1)
    return delta


def combine_stats_deltas(deltas: Iterable[BookmarkStatsDelta]) -> BookmarkStatsDelta:
    combined = BookmarkStatsDelta()
    for delta in deltas:
        combined.total += delta.total
        combined.unread += delta.unread
        for category, value in delta.categories.items():
            _merge_count(combined.categories, category, value)
        for state, value in delta.read_states.items():
            _merge_count(combined.read_states, state, value)
        for collection, value in delta.collections.items():
            _merge_count(combined.collections, collection, value)
    return combined


def build_bookmark_stats(
    status_rows: Iterable[tuple[str | None, int | None]] = (),
    category_rows: Iterable[tuple[str | None, int | None]] = (),
    collection_rows: Iterable[tuple[str | None, str | None, int | None]] = (),
    counter_row: BookmarkUserCounter | None = None,
) -> BookmarkStats:
    """Assemble stats from grouped counts, preferring the stored counter row.

    Args:
        status_rows: ``(read_state, count)`` pairs.
        category_rows: ``(category, count)`` pairs.
        collection_rows: ``(collection_id, read_state, count)`` triples, only
            consulted when the counter row has no per-collection counts.
        counter_row: The user's ``bookmark_user_counters`` row, if any.
    """
    categories: dict[str, int] = {}
    read_states: dict[str, int] = {}
    collections = (
        parse_collection_counts(counter_row.collection_unread_counts) if counter_row else {}
    )
    total_from_statuses = 0
    unread_from_statuses = 0

    for read_state, count in status_rows:
        count = int(count or 0)
        total_from_statuses += count
        state_key = resolve_read_state_key(read_state)
        read_states[state_key] = read_states.get(state_key, 0) + count
        if state_key in UNREAD_READ_STATE_KEYS:
            unread_from_statuses += count

    for category, count in category_rows:
        if not category:
            continue
        categories[category] = int(count or 0)

    if counter_row is None or not collections:
        for collection_id, read_state, count in collection_rows:
            count = int(count or 0)
            if not count or resolve_read_state_key(read_state) not in UNREAD_READ_STATE_KEYS:
                continue
            key = collection_key_for_id(collection_id)
            collections[key] = collections.get(key, 0) + count

    total = counter_row.total_count if counter_row is not None else total_from_statuses
    unread = counter_row.unread_count if counter_row is not None else unread_from_statuses

    return BookmarkStats(
        total=total,
        unread=unread,
        categories=categories,
        read_states=read_states,
        collections=collections,
    )


def fetch_bookmark_stats(db: Session, user_id: str) -> BookmarkStats:
    """Load grouped bookmark counts for ``user_id`` and build its stats."""
    status_rows = (
        db.query(Bookmark.read_state, func.count(Bookmark.id))
        .filter(Bookmark.user_id == user_id)
        .group_by(Bookmark.read_state)
        .all()
    )
    category_rows = (
        db.query(Bookmark.category, func.count(Bookmark.id))
        .filter(Bookmark.user_id == user_id, Bookmark.category.is_not(None))
        .group_by(Bookmark.category)
        .all()
    )
    collection_rows = (
        db.query(Bookmark.collection_id, Bookmark.read_state, func.count(Bookmark.id))
        .filter(Bookmark.user_id == user_id)
        .group_by(Bookmark.collection_id, Bookmark.read_state)
        .all()
    )
    counter_row = db.get(BookmarkUserCounter, user_id)

    return build_bookmark_stats(
        status_rows=[tuple(row) for row in status_rows],
        category_rows=[tuple(row) for row in category_rows],
        collection_rows=[tuple(row) for row in collection_rows],
        counter_row=counter_row,
    )


def default_bookmark_stats() -> BookmarkStats:
    """Return empty stats, used when aggregation fails or there is nothing saved."""
    return BookmarkStats()
