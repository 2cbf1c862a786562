# src/noa_api/api/v1/endpoints/comments.py
"""Comment endpoints for the News On Africa API."""

from fastapi import APIRouter, Query, status

from noa_api.api.v1.dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    RateLimiterDep,
    SessionDep,
    raise_http_error,
)
from noa_api.core.errors import NoaError
from noa_api.schemas.comment import (
    CommentActionRequest,
    CommentActionResponse,
    CommentBodyUpdate,
    CommentCreate,
    CommentListResponse,
    CommentReactionRequest,
    CommentResponse,
    ReactionToggleResponse,
)
from noa_api.services import comments as comment_service

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("", response_model=CommentListResponse)
async def list_comments(
    db: SessionDep,
    viewer: OptionalUserDep,
    wp_post_id: str = Query(..., alias="wpPostId", description="WordPress post id"),
    edition_code: str | None = Query(None, alias="editionCode"),
    limit: int = Query(comment_service.DEFAULT_PAGE_SIZE, description="Page size"),
    sort: str = Query("newest", description="newest, oldest or popular"),
    comment_status: str | None = Query("active", alias="status"),
    parent_id: str | None = Query(None, alias="parentId"),
    cursor: str | None = Query(None, description="Opaque cursor from a previous page"),
) -> CommentListResponse:
    """List comments for a post, one keyset page at a time.

    Anonymous readers only see active comments; signed-in readers also see
    their own comments in any state; moderators see everything.
    """
    try:
        page = comment_service.list_comments(
            db,
            wp_post_id=wp_post_id,
            edition_code=edition_code,
            limit=limit,
            sort=sort,
            status=comment_status,
            parent_id=parent_id,
            cursor=cursor,
            viewer=viewer,
        )
    except NoaError as exc:
        raise_http_error(exc)

    return CommentListResponse(
        comments=[CommentResponse.from_view(view) for view in page.comments],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
        total_count=page.total_count,
    )


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    payload: CommentCreate,
    user: CurrentUserDep,
    db: SessionDep,
    rate_limiter: RateLimiterDep,
) -> CommentResponse:
    """Post a comment or a reply as the signed-in reader."""
    try:
        view = comment_service.create_comment(
            db,
            author=user,
            wp_post_id=payload.wp_post_id,
            body=payload.body,
            edition_code=payload.edition_code,
            parent_id=payload.parent_id,
            is_rich_text=payload.is_rich_text,
            rate_limiter=rate_limiter,
        )
    except NoaError as exc:
        raise_http_error(exc)
    return CommentResponse.from_view(view)


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    payload: CommentBodyUpdate,
    user: CurrentUserDep,
    db: SessionDep,
) -> CommentResponse:
    """Edit the body of one of the caller's own comments."""
    try:
        view = comment_service.update_comment_body(
            db,
            comment_id=comment_id,
            user=user,
            body=payload.body,
        )
    except NoaError as exc:
        raise_http_error(exc)
    return CommentResponse.from_view(view)


@router.post("/{comment_id}/actions", response_model=CommentActionResponse)
async def comment_action(
    comment_id: str,
    payload: CommentActionRequest,
    user: CurrentUserDep,
    db: SessionDep,
) -> CommentActionResponse:
    """Report, delete or approve a comment."""
    try:
        comment = comment_service.apply_comment_action(
            db,
            comment_id=comment_id,
            action=payload.action,
            actor=user,
            reason=payload.reason,
        )
    except NoaError as exc:
        raise_http_error(exc)
    return CommentActionResponse(action=payload.action, status=comment.status)


@router.post("/{comment_id}/reactions", response_model=ReactionToggleResponse)
async def toggle_reaction(
    comment_id: str,
    payload: CommentReactionRequest,
    user: CurrentUserDep,
    db: SessionDep,
) -> ReactionToggleResponse:
    """Toggle the caller's reaction on a comment."""
    try:
        result = comment_service.toggle_reaction(
            db,
            comment_id=comment_id,
            user=user,
            reaction_type=payload.reaction_type,
        )
    except NoaError as exc:
        raise_http_error(exc)
    return ReactionToggleResponse(action=result.action, comment=CommentResponse.from_view(result.view))
