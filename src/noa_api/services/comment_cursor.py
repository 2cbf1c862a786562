"""Opaque keyset cursors for comment listings.

A cursor records the sort keys of the last comment on a page. It travels to
the client as a ``|``-joined string whose parts are percent-encoded one by one,
so values that themselves contain ``|`` survive the round trip::

    newest|2024-05-01T10%3A00%3A00%2B00%3A00|6f1c...
    popular|3|2024-05-01T10%3A00%3A00%2B00%3A00|6f1c...

``build_cursor_conditions`` turns a decoded cursor into PostgREST ``or()``
conditions implementing "strictly after this row" for the matching order.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Literal, Union
from urllib.parse import quote, unquote

from noa_api.db.postgrest import quote_filter_value

__all__ = [
    "COMMENT_SORTS",
    "CommentCursor",
    "CommentSort",
    "PopularCursor",
    "TimeCursor",
    "build_cursor_conditions",
    "decode_comment_cursor",
    "encode_comment_cursor",
]

CommentSort = Literal["newest", "oldest", "popular"]
COMMENT_SORTS: tuple[CommentSort, ...] = ("newest", "oldest", "popular")

# Characters encodeURIComponent leaves untouched.
_URI_COMPONENT_SAFE = "-_.!~*'()"
_NULL = "null"
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class TimeCursor:
    """Position in a listing ordered by creation time."""

    sort: Literal["newest", "oldest"]
    created_at: str
    id: str


@dataclass(frozen=True)
class PopularCursor:
    """Position in a listing ordered by reactions, then creation time."""

    reaction_count: float | None
    created_at: str
    id: str
    sort: Literal["popular"] = "popular"


CommentCursor = Union[TimeCursor, PopularCursor]


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def encode_comment_cursor(cursor: CommentCursor) -> str:
    """Serialize ``cursor`` into its opaque string form."""
    parts: list[str] = [cursor.sort]
    if isinstance(cursor, PopularCursor):
        reaction_part = _NULL if cursor.reaction_count is None else _format_number(cursor.reaction_count)
        parts.extend([reaction_part, cursor.created_at, cursor.id])
    else:
        parts.extend([cursor.created_at, cursor.id])
    return "|".join(quote(part, safe=_URI_COMPONENT_SAFE) for part in parts)


def decode_comment_cursor(value: str | None) -> CommentCursor | None:
    """Parse an opaque cursor string.

    Returns ``None`` for empty input and for anything structurally invalid:
    unknown sort, too few parts, a reaction count that is neither ``null`` nor
    a finite number, or undecodable percent escapes.
    """
    if not value or _MALFORMED_ESCAPE.search(value):
        return None

    try:
        parts = [unquote(part, errors="strict") for part in value.split("|")]
    except UnicodeDecodeError:
        return None

    if len(parts) < 3:
        return None

    sort = parts[0]
    if sort in ("newest", "oldest"):
        return TimeCursor(sort=sort, created_at=parts[1], id=parts[2])

    if sort == "popular":
        if len(parts) < 4:
            return None
        reaction_part = parts[1]
        if reaction_part == _NULL:
            reaction_count = None
        else:
            try:
                reaction_count = float(reaction_part)
            except ValueError:
                return None
            if not math.isfinite(reaction_count):
                return None
        return PopularCursor(reaction_count=reaction_count, created_at=parts[2], id=parts[3])

    return None


def build_cursor_conditions(sort: CommentSort, cursor: CommentCursor | None) -> list[str]:
    """Return OR-able PostgREST conditions selecting rows after ``cursor``.

    An empty list means "start from the top": either there is no cursor or it
    was issued for a different sort order.
    """
    if cursor is None or cursor.sort != sort:
        return []

    created_at = quote_filter_value(cursor.created_at)
    row_id = quote_filter_value(cursor.id)

    if sort == "newest":
        return [
            f"created_at.lt.{created_at}",
            f"and(created_at.eq.{created_at},id.lt.{row_id})",
        ]

    if sort == "oldest":
        return [
            f"created_at.gt.{created_at}",
            f"and(created_at.eq.{created_at},id.gt.{row_id})",
        ]

    if sort == "popular" and isinstance(cursor, PopularCursor):
        if cursor.reaction_count is None:
            # Unreacted comments sort last, so only other unreacted ones follow.
            return [
                f"and(reaction_count.is.null,created_at.lt.{created_at})",
                f"and(reaction_count.is.null,created_at.eq.{created_at},id.lt.{row_id})",
            ]

        reactions = _format_number(cursor.reaction_count)
        return [
            f"reaction_count.lt.{reactions}",
            "reaction_count.is.null",
            f"and(reaction_count.eq.{reactions},created_at.lt.{created_at})",
            f"and(reaction_count.eq.{reactions},created_at.eq.{created_at},id.lt.{row_id})",
        ]

    return []
