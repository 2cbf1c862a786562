"""Page slicing for list endpoints that over-fetch by one row."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PaginationState:
    """Where a page sits in a listing and how to request the next one."""

    page: int
    limit: int
    has_more: bool
    next_page: int | None = None
    next_cursor: str | None = None


@dataclass(frozen=True)
class PaginatedSlice(Generic[T]):
    """Items kept for the current page plus its pagination state."""

    items: list[T] = field(default_factory=list)
    pagination: PaginationState = field(
        default_factory=lambda: PaginationState(page=1, limit=1, has_more=False)
    )


def derive_pagination(
    *,
    rows: Sequence[T],
    limit: int,
    page: int = 1,
    cursor_encoder: Callable[[T], str | None] | None = None,
) -> PaginatedSlice[T]:
    """Trim ``rows`` to ``limit`` and work out whether another page exists.

    Callers fetch ``limit + 1`` rows; the extra row only signals ``has_more``
    and is never returned. ``limit`` is floored at 1.
    """
    limit = max(1, int(limit))
    has_more = len(rows) > limit
    items = list(rows[:limit])

    next_cursor = None
    if has_more and cursor_encoder is not None and items:
        next_cursor = cursor_encoder(items[-1])

    return PaginatedSlice(
        items=items,
        pagination=PaginationState(
            page=page,
            limit=limit,
            has_more=has_more,
            next_page=page + 1 if has_more else None,
            next_cursor=next_cursor,
        ),
    )
