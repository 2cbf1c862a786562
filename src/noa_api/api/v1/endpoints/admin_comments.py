"""Moderator endpoints for the comment review queue."""

from fastapi import APIRouter, Query

from noa_api.api.v1.dependencies import ModeratorDep, SessionDep, raise_http_error
from noa_api.core.errors import NoaError
from noa_api.schemas.comment import AdminCommentUpdate, CommentResponse
from noa_api.services import comments as comment_service

router = APIRouter(prefix="/admin/comments", tags=["moderation"])


@router.get("", response_model=list[CommentResponse])
async def list_moderation_queue(
    moderator: ModeratorDep,
    db: SessionDep,
    comment_status: str = Query("all", alias="status"),
    limit: int = Query(100, ge=1, le=500),
) -> list[CommentResponse]:
    """List comments for review, newest first.

    Args:
        moderator: Authenticated moderator profile
        db: Database session
        comment_status: Status filter; ``all`` or an unknown value lists everything
        limit: Maximum number of comments to return

    Returns:
        Comments with their reaction summaries and authors
    """
    rows = comment_service.list_admin_comments(db, comment_status, limit)
    views = comment_service.build_comment_views(db, rows, moderator)
    return [CommentResponse.from_view(view) for view in views]


@router.patch("/{comment_id}", response_model=CommentResponse)
async def review_comment(
    comment_id: str,
    payload: AdminCommentUpdate,
    moderator: ModeratorDep,
    db: SessionDep,
) -> CommentResponse:
    """Record a moderator decision on a comment."""
    try:
        comment = comment_service.admin_update_comment(
            db,
            comment_id=comment_id,
            status=payload.status,
            moderator=moderator,
        )
    except NoaError as exc:
        raise_http_error(exc)
    view = comment_service.build_comment_views(db, [comment], moderator)[0]
    return CommentResponse.from_view(view)
