"""Resolution of the collection a bookmark is filed under."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from noa_api.models import BookmarkCollection

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_SLUG = "general"
DEFAULT_COLLECTION_NAME = "Saved Articles"
DEFAULT_COLLECTION_DESCRIPTION = "Articles saved outside a specific edition"


def collection_slug_for_edition(edition_code: str | None) -> str:
    if edition_code and edition_code.strip():
        return edition_code.strip().lower()
    return DEFAULT_COLLECTION_SLUG


def collection_name_for_edition(edition_code: str | None) -> str:
    if edition_code and edition_code.strip():
        return f"{edition_code.strip().upper()} Edition"
    return DEFAULT_COLLECTION_NAME


def ensure_collection_assignment(
    db: Session,
    user_id: str,
    collection_id: str | None = None,
    edition_code: str | None = None,
) -> str:
    """Return the id of the collection a bookmark should belong to.

    An explicit ``collection_id`` is honoured when it belongs to the user.
    Otherwise the per-edition collection is looked up by slug and created on
    first use; bookmarks without an edition land in the default collection.
    """
    if not user_id:
        raise ValueError("user_id is required to resolve collection assignments")

    if collection_id:
        existing = (
            db.query(BookmarkCollection.id)
            .filter(BookmarkCollection.user_id == user_id, BookmarkCollection.id == collection_id)
            .scalar()
        )
        if existing:
            return existing
        logger.debug("Collection %s not owned by %s; falling back to edition", collection_id, user_id)

    slug = collection_slug_for_edition(edition_code)
    existing = (
        db.query(BookmarkCollection.id)
        .filter(BookmarkCollection.user_id == user_id, BookmarkCollection.slug == slug)
        .scalar()
    )
    if existing:
        return existing

    is_default = slug == DEFAULT_COLLECTION_SLUG
    collection = BookmarkCollection(
        user_id=user_id,
        name=collection_name_for_edition(edition_code),
        slug=slug,
        description=DEFAULT_COLLECTION_DESCRIPTION if is_default else None,
        is_default=is_default,
        metadata_={"edition_code": edition_code} if edition_code else None,
    )
    db.add(collection)
    db.flush()
    logger.info("Created bookmark collection %s (%s) for %s", collection.id, slug, user_id)
    return collection.id
