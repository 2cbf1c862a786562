"""Normalization of loosely typed bookmark inputs.

Each sanitizer distinguishes three outcomes: a cleaned value, ``None`` for an
explicit "clear this field", and :data:`UNSET` when the input should be
ignored altogether.
"""

from __future__ import annotations

from typing import Any, Final

from noa_api.services.bookmark_counters import READ_STATES


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

SORTABLE_COLUMNS = {
    "created_at": "createdAt",
    "title": "title",
    "read_state": "readState",
    "wp_post_id": "postId",
    "edition_code": "editionCode",
    "collection_id": "collectionId",
}
DEFAULT_SORT_COLUMN = "created_at"


def sanitize_read_state(value: Any) -> str | None | _Unset:
    """Return a canonical read state, ``None`` for null, else :data:`UNSET`.

    ``"In-Progress"`` becomes ``"in_progress"``; the string ``"null"`` clears.
    """
    if isinstance(value, str):
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "null":
            return None
        if normalized in READ_STATES:
            return normalized
        return UNSET
    if value is None:
        return None
    return UNSET


def sanitize_edition_code(value: Any) -> str | None | _Unset:
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized or normalized == "null":
            return None
        return normalized
    if value is None:
        return None
    return UNSET


def sanitize_collection_id(value: Any) -> str | None | _Unset:
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed or trimmed.lower() == "null":
            return None
        return trimmed
    if value is None:
        return None
    return UNSET


def sanitize_category(value: Any) -> str | None | _Unset:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if value is None:
        return None
    return UNSET


def sanitize_string_list(value: Any) -> list[str] | None:
    """Keep non-empty trimmed strings; ``None`` when nothing survives."""
    if not isinstance(value, list):
        return None
    cleaned = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return cleaned or None


def build_bookmark_update_input(raw: dict[str, Any]) -> dict[str, Any]:
    """Sanitize a partial bookmark update, dropping fields that should be ignored."""
    updates: dict[str, Any] = {}

    for key in ("title", "slug", "excerpt", "note"):
        if key in raw and (raw[key] is None or isinstance(raw[key], str)):
            updates[key] = raw[key]

    sanitized = {
        "category": sanitize_category(raw["category"]) if "category" in raw else UNSET,
        "read_state": sanitize_read_state(raw["read_state"]) if "read_state" in raw else UNSET,
        "edition_code": sanitize_edition_code(raw["edition_code"]) if "edition_code" in raw else UNSET,
        "collection_id": (
            sanitize_collection_id(raw["collection_id"]) if "collection_id" in raw else UNSET
        ),
    }
    for key, value in sanitized.items():
        if value is not UNSET:
            updates[key] = value

    if "tags" in raw:
        updates["tags"] = sanitize_string_list(raw["tags"])
    if "featured_image" in raw:
        image = raw["featured_image"]
        updates["featured_image"] = image if isinstance(image, dict) else None

    return updates


def resolve_sort_column(value: str | None) -> str:
    """Return ``value`` when it is an allow-listed sort column, else ``created_at``."""
    if value and value in SORTABLE_COLUMNS:
        return value
    return DEFAULT_SORT_COLUMN
