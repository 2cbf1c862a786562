# src/noa_api/services/comments.py
"""Comment threads: listing with keyset cursors, posting, moderation, reactions.

Comments are never physically deleted. Owner deletion, reports and moderator
decisions only move ``status`` between ``pending``, ``active``, ``flagged`` and
``deleted``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import asc, desc, func, or_
from sqlalchemy.orm import Query, Session

from noa_api.core.errors import (
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
)
from noa_api.core.settings import settings
from noa_api.db.postgrest import apply_or_filters
from noa_api.db.time import isoformat, utcnow
from noa_api.models import Comment, CommentReaction, Profile
from noa_api.models.comment import (
    COMMENT_STATUS_ACTIVE,
    COMMENT_STATUS_DELETED,
    COMMENT_STATUS_FLAGGED,
    COMMENT_STATUSES,
)
from noa_api.services.comment_cursor import (
    COMMENT_SORTS,
    CommentCursor,
    CommentSort,
    PopularCursor,
    TimeCursor,
    build_cursor_conditions,
    decode_comment_cursor,
    encode_comment_cursor,
)
from noa_api.services.pagination import derive_pagination
from noa_api.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

STATUS_ALL = "all"
LEGACY_STATUS_ALIASES = {"approved": COMMENT_STATUS_ACTIVE, "rejected": COMMENT_STATUS_DELETED}

COMMENT_ACTION_REPORT = "report"
COMMENT_ACTION_DELETE = "delete"
COMMENT_ACTION_APPROVE = "approve"
COMMENT_ACTIONS = (COMMENT_ACTION_REPORT, COMMENT_ACTION_DELETE, COMMENT_ACTION_APPROVE)

REACTION_TYPES = ("like", "love", "laugh", "sad", "angry")
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class ReactionSummary:
    type: str
    count: int
    reacted_by_current_user: bool = False


@dataclass(frozen=True)
class CommentAuthor:
    username: str | None = None
    avatar_url: str | None = None


@dataclass
class CommentView:
    """A comment row together with its reaction summary and author."""

    comment: Comment
    reactions: list[ReactionSummary] = field(default_factory=list)
    user_reaction: str | None = None
    author: CommentAuthor | None = None

    @property
    def reactions_total(self) -> int:
        return sum(reaction.count for reaction in self.reactions)


@dataclass
class CommentPage:
    comments: list[CommentView]
    has_more: bool
    next_cursor: str | None = None
    total_count: int | None = None


@dataclass
class ReactionToggleResult:
    action: str
    view: CommentView


def normalize_status(value: str | None, *, allow_all: bool = False) -> str:
    """Return a canonical status, translating legacy aliases.

    Raises:
        InvalidInputError: If ``value`` is not a known status.
    """
    normalized = (value or COMMENT_STATUS_ACTIVE).strip().lower()
    normalized = LEGACY_STATUS_ALIASES.get(normalized, normalized)
    if normalized in COMMENT_STATUSES or (allow_all and normalized == STATUS_ALL):
        return normalized
    raise InvalidInputError(f"Invalid status value: {value}")


def normalize_edition_code(value: str | None) -> str | None:
    """Return a supported lowercase edition code, else ``None``."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if normalized in settings.supported_editions:
        return normalized
    return None


def _is_moderator(viewer: Profile | None) -> bool:
    return bool(viewer is not None and viewer.is_admin)


def _apply_visibility(query: Query, status: str, viewer: Profile | None) -> Query:
    if viewer is None:
        return query.filter(Comment.status == (COMMENT_STATUS_ACTIVE if status == STATUS_ALL else status))

    if _is_moderator(viewer):
        return query if status == STATUS_ALL else query.filter(Comment.status == status)

    if status == STATUS_ALL:
        return query.filter(or_(Comment.status == COMMENT_STATUS_ACTIVE, Comment.user_id == viewer.id))

    if status == COMMENT_STATUS_ACTIVE:
        return query.filter(Comment.status == COMMENT_STATUS_ACTIVE)

    return query.filter(Comment.status == status, Comment.user_id == viewer.id)


def _ordering(sort: CommentSort) -> tuple:
    if sort == "oldest":
        return (asc(Comment.created_at), asc(Comment.id))
    if sort == "popular":
        return (
            desc(Comment.reaction_count).nulls_last(),
            desc(Comment.created_at),
            desc(Comment.id),
        )
    return (desc(Comment.created_at), desc(Comment.id))


def cursor_for_comment(sort: CommentSort, comment: Comment) -> CommentCursor:
    created_at = isoformat(comment.created_at) or ""
    if sort == "popular":
        return PopularCursor(reaction_count=comment.reaction_count, created_at=created_at, id=comment.id)
    return TimeCursor(sort=sort, created_at=created_at, id=comment.id)


def _load_authors(db: Session, user_ids: Iterable[str]) -> dict[str, CommentAuthor]:
    ids = set(user_ids)
    if not ids:
        return {}
    rows = db.query(Profile.id, Profile.username, Profile.avatar_url).filter(Profile.id.in_(ids)).all()
    return {row.id: CommentAuthor(username=row.username, avatar_url=row.avatar_url) for row in rows}


def build_comment_views(
    db: Session,
    comments: list[Comment],
    viewer: Profile | None = None,
) -> list[CommentView]:
    """Attach reaction summaries (with the viewer's own reaction) and authors."""
    if not comments:
        return []

    ids = [comment.id for comment in comments]
    reaction_rows = (
        db.query(CommentReaction.comment_id, CommentReaction.reaction_type, CommentReaction.user_id)
        .filter(CommentReaction.comment_id.in_(ids))
        .all()
    )

    grouped: dict[str, dict[str, list[int | bool]]] = {}
    for comment_id, reaction_type, user_id in reaction_rows:
        entry = grouped.setdefault(comment_id, {}).setdefault(reaction_type, [0, False])
        entry[0] += 1
        if viewer is not None and user_id == viewer.id:
            entry[1] = True

    authors = _load_authors(db, (comment.user_id for comment in comments))

    views = []
    for comment in comments:
        reactions = [
            ReactionSummary(type=reaction_type, count=int(count), reacted_by_current_user=bool(mine))
            for reaction_type, (count, mine) in sorted(grouped.get(comment.id, {}).items())
        ]
        user_reaction = next(
            (reaction.type for reaction in reactions if reaction.reacted_by_current_user),
            None,
        )
        views.append(
            CommentView(
                comment=comment,
                reactions=reactions,
                user_reaction=user_reaction,
                author=authors.get(comment.user_id),
            )
        )
    return views


def list_comments(
    db: Session,
    *,
    wp_post_id: str,
    edition_code: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    sort: str = "newest",
    status: str | None = COMMENT_STATUS_ACTIVE,
    parent_id: str | None = None,
    cursor: str | None = None,
    viewer: Profile | None = None,
) -> CommentPage:
    """Return one page of comments for a post.

    ``parent_id`` of ``None`` lists every comment; ``"null"`` or an empty
    string restricts the page to top-level comments.

    Raises:
        InvalidInputError: For a missing post id, bad limit, sort, status or
            edition, or a cursor that is malformed or was issued for a
            different sort order.
    """
    post_id = (wp_post_id or "").strip()
    if not post_id:
        raise InvalidInputError("WordPress post ID is required")
    if limit < 1 or limit > settings.comments_max_page_size:
        raise InvalidInputError(
            f"Limit must be between 1 and {settings.comments_max_page_size}"
        )
    if sort not in COMMENT_SORTS:
        raise InvalidInputError(f"Invalid sort value: {sort}")
    resolved_status = normalize_status(status, allow_all=True)

    edition = settings.default_edition
    if edition_code:
        edition = normalize_edition_code(edition_code)
        if edition is None:
            raise InvalidInputError("Edition code is invalid")

    decoded = decode_comment_cursor(cursor)
    if cursor and (decoded is None or decoded.sort != sort):
        raise InvalidInputError("Invalid cursor")

    query = db.query(Comment).filter(Comment.wp_post_id == post_id, Comment.edition_code == edition)
    if parent_id is not None:
        parent = parent_id.strip()
        if not parent or parent.lower() == "null":
            query = query.filter(Comment.parent_id.is_(None))
        else:
            query = query.filter(Comment.parent_id == parent)
    query = _apply_visibility(query, resolved_status, viewer)

    total_count = query.count() if decoded is None else None

    rows = (
        apply_or_filters(query, Comment, build_cursor_conditions(sort, decoded))
        .order_by(*_ordering(sort))
        .limit(limit + 1)
        .all()
    )

    page = derive_pagination(
        rows=rows,
        limit=limit,
        cursor_encoder=lambda row: encode_comment_cursor(cursor_for_comment(sort, row)),
    )
    return CommentPage(
        comments=build_comment_views(db, page.items, viewer),
        has_more=page.pagination.has_more,
        next_cursor=page.pagination.next_cursor,
        total_count=total_count,
    )


def _validate_body(body: str | None) -> str:
    if body is None or not body.strip():
        raise InvalidInputError("Comment body is required")
    if len(body) > settings.comment_max_length:
        raise InvalidInputError("Comment is too long")
    return body


def _get_comment(db: Session, comment_id: str) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def create_comment(
    db: Session,
    *,
    author: Profile,
    wp_post_id: str,
    body: str,
    edition_code: str | None = None,
    parent_id: str | None = None,
    is_rich_text: bool = False,
    rate_limiter: RateLimiter | None = None,
) -> CommentView:
    """Post a new active comment.

    Raises:
        InvalidInputError: For a missing post id or an empty or oversized body.
        NotFoundError: If ``parent_id`` does not name a comment on the same post.
        RateLimitedError: If the author has posted too often recently.
    """
    post_id = (wp_post_id or "").strip()
    if not post_id:
        raise InvalidInputError("WordPress post ID is required")
    body = _validate_body(body)
    edition = normalize_edition_code(edition_code) or settings.default_edition

    if parent_id:
        parent = db.get(Comment, parent_id)
        if parent is None or parent.wp_post_id != post_id:
            raise NotFoundError("Parent comment not found")

    if rate_limiter is not None:
        result = rate_limiter.check(
            f"comments:{author.id}",
            settings.comment_rate_limit,
            settings.comment_rate_window_seconds,
        )
        if not result.allowed:
            raise RateLimitedError(
                f"Rate limited. Please wait {result.retry_after} seconds before commenting again.",
                retry_after=result.retry_after,
            )

    comment = Comment(
        wp_post_id=post_id,
        edition_code=edition,
        user_id=author.id,
        body=body,
        parent_id=parent_id or None,
        status=COMMENT_STATUS_ACTIVE,
        is_rich_text=is_rich_text,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    logger.info("User %s commented on post %s (%s)", author.id, post_id, edition)
    return CommentView(
        comment=comment,
        author=CommentAuthor(username=author.username, avatar_url=author.avatar_url),
    )


def update_comment_body(db: Session, *, comment_id: str, user: Profile, body: str) -> CommentView:
    """Replace the body of the caller's own active comment."""
    comment = _get_comment(db, comment_id)
    if comment.user_id != user.id:
        raise PermissionDeniedError("You can only edit your own comments")
    if comment.status != COMMENT_STATUS_ACTIVE:
        raise InvalidInputError(f"Cannot edit a comment with status: {comment.status}")

    comment.body = _validate_body(body)
    db.commit()
    db.refresh(comment)
    return build_comment_views(db, [comment], user)[0]


def apply_comment_action(
    db: Session,
    *,
    comment_id: str,
    action: str,
    actor: Profile,
    reason: str | None = None,
) -> Comment:
    """Report, soft-delete or approve a comment.

    Raises:
        InvalidInputError: For an unknown action or a report without a reason.
        NotFoundError: If the comment does not exist.
        PermissionDeniedError: When deleting someone else's comment or
            approving without moderator rights.
    """
    if action not in COMMENT_ACTIONS:
        raise InvalidInputError("Invalid action")
    if action == COMMENT_ACTION_REPORT and not (reason and reason.strip()):
        raise InvalidInputError("Report reason is required")

    comment = _get_comment(db, comment_id)

    if action == COMMENT_ACTION_DELETE:
        if comment.user_id != actor.id:
            raise PermissionDeniedError("You can only delete your own comments")
        comment.status = COMMENT_STATUS_DELETED
    elif action == COMMENT_ACTION_REPORT:
        comment.status = COMMENT_STATUS_FLAGGED
        comment.reported_by = actor.id
        comment.report_reason = reason
    else:
        if not _is_moderator(actor):
            raise PermissionDeniedError("Only moderators can approve comments")
        comment.status = COMMENT_STATUS_ACTIVE
        comment.reviewed_by = actor.id
        comment.reviewed_at = utcnow()

    db.commit()
    db.refresh(comment)
    logger.info("User %s applied %s to comment %s", actor.id, action, comment_id)
    return comment


def toggle_reaction(
    db: Session,
    *,
    comment_id: str,
    user: Profile,
    reaction_type: str,
) -> ReactionToggleResult:
    """Add, switch or remove the caller's reaction on an active comment.

    Sending the reaction the user already has removes it; sending a different
    one replaces it. ``reaction_count`` is recomputed from the reaction rows.
    """
    reaction_type = (reaction_type or "").strip().lower()
    if reaction_type not in REACTION_TYPES:
        raise InvalidInputError("Invalid reaction type")

    comment = _get_comment(db, comment_id)
    if comment.status != COMMENT_STATUS_ACTIVE:
        raise InvalidInputError("Cannot react to a comment that is not active")

    existing = db.get(CommentReaction, (comment_id, user.id))
    if existing is None:
        db.add(CommentReaction(comment_id=comment_id, user_id=user.id, reaction_type=reaction_type))
        action = "added"
    elif existing.reaction_type == reaction_type:
        db.delete(existing)
        action = "removed"
    else:
        existing.reaction_type = reaction_type
        action = "updated"
    db.flush()

    comment.reaction_count = (
        db.query(func.count()).select_from(CommentReaction)
        .filter(CommentReaction.comment_id == comment_id)
        .scalar()
    )
    db.commit()
    db.refresh(comment)

    return ReactionToggleResult(action=action, view=build_comment_views(db, [comment], user)[0])


def list_admin_comments(db: Session, status: str | None = STATUS_ALL, limit: int = 100) -> list[Comment]:
    """Return the moderation queue, newest first; unknown statuses list everything."""
    try:
        resolved = normalize_status(status, allow_all=True)
    except InvalidInputError:
        resolved = STATUS_ALL

    query = db.query(Comment)
    if resolved != STATUS_ALL:
        query = query.filter(Comment.status == resolved)
    return query.order_by(desc(Comment.created_at), desc(Comment.id)).limit(max(1, limit)).all()


def admin_update_comment(db: Session, *, comment_id: str, status: str, moderator: Profile) -> Comment:
    """Set a comment's status as a moderator decision."""
    resolved = normalize_status(status)
    comment = _get_comment(db, comment_id)
    comment.status = resolved
    comment.reviewed_by = moderator.id
    comment.reviewed_at = utcnow()
    db.commit()
    db.refresh(comment)
    logger.info("Moderator %s set comment %s to %s", moderator.id, comment_id, resolved)
    return comment
