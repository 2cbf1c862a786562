"""Incremental bookkeeping for the ``bookmark_user_counters`` table.

Every bookmark mutation produces a :class:`BookmarkCounterDelta` describing how
the stored totals move. Deltas are pure values; :func:`apply_counter_delta` is
the only function here that touches the database.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.orm import Session

from noa_api.db.time import utcnow
from noa_api.models import BookmarkUserCounter

logger = logging.getLogger(__name__)

READ_STATE_UNREAD = "unread"
READ_STATE_IN_PROGRESS = "in_progress"
READ_STATE_READ = "read"
READ_STATE_UNKNOWN = "unknown"

READ_STATES = (READ_STATE_UNREAD, READ_STATE_IN_PROGRESS, READ_STATE_READ)
UNREAD_READ_STATE_KEYS = frozenset({READ_STATE_UNREAD, READ_STATE_IN_PROGRESS})

UNASSIGNED_COLLECTION_KEY = "__unassigned__"


class BookmarkCounterRow(Protocol):
    """Anything exposing the fields counter bookkeeping depends on."""

    read_state: str | None
    collection_id: str | None


@dataclass(frozen=True)
class BookmarkState:
    """Immutable copy of the counter-relevant fields of a bookmark.

    ORM rows are updated in place, so the pre-update revision has to be
    captured before the mutation is applied.
    """

    read_state: str | None = None
    collection_id: str | None = None
    category: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> BookmarkState:
        return cls(
            read_state=getattr(row, "read_state", None),
            collection_id=getattr(row, "collection_id", None),
            category=getattr(row, "category", None),
        )


@dataclass(frozen=True)
class BookmarkCounterDelta:
    """Signed change to a user's stored bookmark counters."""

    total: int | None = None
    unread: int | None = None
    read: int | None = None
    collection_unread: dict[str, int] | None = None

    @property
    def is_empty(self) -> bool:
        """Return True when applying the delta would not change anything."""
        has_numbers = bool(self.total or self.unread or self.read)
        return not has_numbers and not self.collection_unread


def resolve_read_state_key(read_state: str | None) -> str:
    """Map a stored read state onto the keys used by stats and counters."""
    if read_state is None:
        return READ_STATE_UNREAD
    if read_state in READ_STATES:
        return read_state
    return READ_STATE_UNKNOWN


def is_unread_read_state(read_state: str | None) -> bool:
    return resolve_read_state_key(read_state) in UNREAD_READ_STATE_KEYS


def collection_key_for_id(collection_id: str | None) -> str:
    """Key used in ``collection_unread_counts`` for a collection id.

    Bookmarks without a collection share a sentinel key; collection ids are
    generated UUIDs, so they never equal it.
    """
    if not collection_id:
        return UNASSIGNED_COLLECTION_KEY
    return collection_id


def _bump(counts: dict[str, int], key: str, change: int) -> None:
    value = counts.get(key, 0) + change
    if value == 0:
        counts.pop(key, None)
    else:
        counts[key] = value


def build_addition_counter_delta(row: BookmarkCounterRow) -> BookmarkCounterDelta:
    """Delta for a newly inserted bookmark."""
    if not is_unread_read_state(row.read_state):
        return BookmarkCounterDelta(total=1)
    key = collection_key_for_id(row.collection_id)
    return BookmarkCounterDelta(total=1, unread=1, collection_unread={key: 1})


def build_removal_counter_delta(rows: list[BookmarkCounterRow]) -> BookmarkCounterDelta | None:
    """Delta for deleting ``rows``; ``None`` when nothing was removed."""
    if not rows:
        return None

    unread = 0
    collections: dict[str, int] = {}
    for row in rows:
        if not is_unread_read_state(row.read_state):
            continue
        unread -= 1
        _bump(collections, collection_key_for_id(row.collection_id), -1)

    return BookmarkCounterDelta(
        total=-len(rows),
        unread=unread or None,
        collection_unread=collections or None,
    )


def build_update_counter_delta(
    previous: BookmarkCounterRow,
    next: BookmarkCounterRow,
) -> BookmarkCounterDelta | None:
    """Delta between two revisions of the same bookmark.

    Returns ``None`` when neither the unread total nor any per-collection
    unread count moves, e.g. a title edit or a move between collections of a
    bookmark that has already been read.
    """
    was_unread = is_unread_read_state(previous.read_state)
    is_unread = is_unread_read_state(next.read_state)

    unread = 0
    if was_unread and not is_unread:
        unread = -1
    elif is_unread and not was_unread:
        unread = 1

    collections: dict[str, int] = {}
    if was_unread:
        _bump(collections, collection_key_for_id(previous.collection_id), -1)
    if is_unread:
        _bump(collections, collection_key_for_id(next.collection_id), 1)

    if not unread and not collections:
        return None

    return BookmarkCounterDelta(
        unread=unread or None,
        collection_unread=collections or None,
    )


def merge_counter_deltas(*deltas: BookmarkCounterDelta | None) -> BookmarkCounterDelta | None:
    """Sum several deltas into one.

    ``total`` is kept even when it sums to zero so that an add followed by a
    remove of the same bookmark reads as ``BookmarkCounterDelta(total=0)``.
    Returns ``None`` when every input is ``None``.
    """
    present = [delta for delta in deltas if delta is not None]
    if not present:
        return None

    total: int | None = None
    unread = 0
    read = 0
    collections: dict[str, int] = {}
    for delta in present:
        if delta.total is not None:
            total = (total or 0) + delta.total
        unread += delta.unread or 0
        read += delta.read or 0
        for key, change in (delta.collection_unread or {}).items():
            _bump(collections, key, change)

    return BookmarkCounterDelta(
        total=total,
        unread=unread or None,
        read=read or None,
        collection_unread=collections or None,
    )


def parse_collection_counts(value: Any) -> dict[str, int]:
    """Read a stored ``collection_unread_counts`` map, keeping positive counts."""
    if not isinstance(value, Mapping):
        return {}

    counts: dict[str, int] = {}
    for key, raw in value.items():
        try:
            number = float(raw)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number) and number > 0:
            counts[str(key)] = int(number)
    return counts


def apply_counter_delta(
    db: Session,
    user_id: str,
    delta: BookmarkCounterDelta | None,
) -> BookmarkUserCounter | None:
    """Upsert the counter row for ``user_id`` with ``delta`` applied.

    Totals are clamped at zero and ``read_count`` is always derived as
    ``total - unread``. The caller owns the transaction; this only flushes.
    Concurrent writers are not serialized: the last upsert wins.
    """
    if not user_id:
        raise ValueError("user_id is required to update bookmark counters")
    if delta is None or delta.is_empty:
        return None

    counter = db.get(BookmarkUserCounter, user_id)
    current_total = counter.total_count if counter else 0
    current_unread = counter.unread_count if counter else 0
    current_counts = parse_collection_counts(counter.collection_unread_counts if counter else None)

    total = max(0, current_total + (delta.total or 0))
    unread = max(0, current_unread + (delta.unread or 0))
    read = max(0, total - unread)

    merged = dict(current_counts)
    for key, change in (delta.collection_unread or {}).items():
        if not change:
            continue
        value = max(0, merged.get(key, 0) + change)
        if value == 0:
            merged.pop(key, None)
        else:
            merged[key] = value

    if counter is None:
        counter = BookmarkUserCounter(user_id=user_id)
        db.add(counter)

    counter.total_count = total
    counter.unread_count = unread
    counter.read_count = read
    counter.collection_unread_counts = merged
    counter.collections_count = len(merged)
    counter.updated_at = utcnow()
    db.flush()

    logger.debug(
        "Applied bookmark counter delta for %s: total=%d unread=%d collections=%d",
        user_id,
        total,
        unread,
        len(merged),
    )
    return counter
