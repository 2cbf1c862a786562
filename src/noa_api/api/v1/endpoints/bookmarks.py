# src/noa_api/api/v1/endpoints/bookmarks.py
"""Bookmark endpoints for the News On Africa API."""

from fastapi import APIRouter, Query, status

from noa_api.api.v1.dependencies import CurrentUserDep, SessionDep, raise_http_error
from noa_api.core.errors import NoaError
from noa_api.schemas.bookmark import (
    BookmarkBulkDelete,
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkMutationResponse,
    BookmarkStatsResponse,
    BookmarkUpdate,
)
from noa_api.services import bookmarks as bookmark_service
from noa_api.services.bookmark_stats import fetch_bookmark_stats

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("", response_model=BookmarkListResponse)
async def list_bookmarks(
    user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(bookmark_service.DEFAULT_PAGE_SIZE, description="Page size, capped at 100"),
    search: str | None = Query(None),
    category: str | None = Query(None),
    read_state: str | None = Query(None, alias="status"),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    cursor: str | None = Query(None),
    post_id: str | None = Query(None, alias="postId"),
    edition_code: str | None = Query(None, alias="editionCode"),
    collection_id: str | None = Query(None, alias="collectionId"),
    include_stats: bool = Query(False, alias="includeStats"),
) -> BookmarkListResponse:
    """List the caller's bookmarks.

    Stats are included on the first page, and on later pages only when
    ``includeStats`` is set.
    """
    try:
        result = bookmark_service.list_bookmarks(
            db,
            user.id,
            limit=limit,
            search=search,
            category=category,
            read_state=read_state,
            sort_by=sort_by,
            sort_order=sort_order,
            cursor=cursor,
            post_id=post_id,
            edition_code=edition_code,
            collection_id=collection_id,
            include_stats_on_cursor=include_stats,
        )
    except NoaError as exc:
        raise_http_error(exc)
    return BookmarkListResponse.model_validate(result)


@router.get("/stats", response_model=BookmarkStatsResponse)
async def get_bookmark_stats(user: CurrentUserDep, db: SessionDep) -> BookmarkStatsResponse:
    """Return totals, unread count and per-category/collection breakdowns."""
    return BookmarkStatsResponse.model_validate(fetch_bookmark_stats(db, user.id))


@router.post("", response_model=BookmarkMutationResponse, status_code=status.HTTP_201_CREATED)
async def add_bookmark(
    payload: BookmarkCreate,
    user: CurrentUserDep,
    db: SessionDep,
) -> BookmarkMutationResponse:
    """Save a post to the caller's bookmarks."""
    try:
        result = bookmark_service.add_bookmark(
            db,
            user.id,
            post_id=payload.post_id,
            title=payload.title,
            slug=payload.slug,
            excerpt=payload.excerpt,
            featured_image=payload.featured_image,
            category=payload.category,
            tags=payload.tags,
            note=payload.note,
            read_state=payload.read_state,
            edition_code=payload.edition_code,
            collection_id=payload.collection_id,
        )
    except NoaError as exc:
        raise_http_error(exc)
    return BookmarkMutationResponse.model_validate(result)


@router.post("/bulk-delete", response_model=BookmarkMutationResponse)
async def bulk_delete_bookmarks(
    payload: BookmarkBulkDelete,
    user: CurrentUserDep,
    db: SessionDep,
) -> BookmarkMutationResponse:
    """Remove several bookmarks at once; unknown post ids are ignored."""
    try:
        result = bookmark_service.bulk_remove_bookmarks(db, user.id, payload.post_ids)
    except NoaError as exc:
        raise_http_error(exc)
    return BookmarkMutationResponse.model_validate(result)


@router.patch("/{post_id}", response_model=BookmarkMutationResponse)
async def update_bookmark(
    post_id: str,
    payload: BookmarkUpdate,
    user: CurrentUserDep,
    db: SessionDep,
) -> BookmarkMutationResponse:
    """Apply a partial update to a bookmark."""
    try:
        result = bookmark_service.update_bookmark(
            db,
            user.id,
            post_id,
            payload.model_dump(exclude_unset=True),
        )
    except NoaError as exc:
        raise_http_error(exc)
    return BookmarkMutationResponse.model_validate(result)


@router.delete("/{post_id}", response_model=BookmarkMutationResponse)
async def delete_bookmark(post_id: str, user: CurrentUserDep, db: SessionDep) -> BookmarkMutationResponse:
    """Remove a single bookmark."""
    try:
        result = bookmark_service.remove_bookmark(db, user.id, post_id)
    except NoaError as exc:
        raise_http_error(exc)
    return BookmarkMutationResponse.model_validate(result)
