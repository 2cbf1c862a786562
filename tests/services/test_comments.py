# tests/services/test_comments.py
"""Tests for the comment service layer."""

from datetime import timedelta

import pytest

from noa_api.core.errors import (
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
)
from noa_api.db.time import utcnow
from noa_api.models import Comment
from noa_api.services import comments as comment_service
from noa_api.services.rate_limit import RateLimiter
from noa_api.services.ttl_store import TTLStore


def _seed(db_session, author, count, *, post_id="42", edition="african", **fields):
    base = utcnow()
    rows = []
    for index in range(count):
        row = Comment(
            id=f"{post_id}-{index:02d}",
            wp_post_id=post_id,
            edition_code=edition,
            user_id=author.id,
            body=f"comment {index}",
            created_at=base - timedelta(minutes=index),
            **fields,
        )
        db_session.add(row)
        rows.append(row)
    db_session.flush()
    return rows


class TestStatusNormalization:
    def test_legacy_aliases(self):
        assert comment_service.normalize_status("approved") == "active"
        assert comment_service.normalize_status("rejected") == "deleted"
        assert comment_service.normalize_status(None) == "active"

    def test_all_requires_opt_in(self):
        assert comment_service.normalize_status("all", allow_all=True) == "all"
        with pytest.raises(InvalidInputError):
            comment_service.normalize_status("all")

    def test_edition_codes(self):
        assert comment_service.normalize_edition_code(" NG ") == "ng"
        assert comment_service.normalize_edition_code("xx") is None


class TestListing:
    def test_newest_pages_are_disjoint(self, db_session, test_user):
        _seed(db_session, test_user, 5)

        first = comment_service.list_comments(db_session, wp_post_id="42", limit=2)
        assert [view.comment.id for view in first.comments] == ["42-00", "42-01"]
        assert first.has_more is True
        assert first.total_count == 5

        second = comment_service.list_comments(db_session, wp_post_id="42", limit=2, cursor=first.next_cursor)
        assert [view.comment.id for view in second.comments] == ["42-02", "42-03"]
        assert second.total_count is None

        third = comment_service.list_comments(db_session, wp_post_id="42", limit=2, cursor=second.next_cursor)
        assert [view.comment.id for view in third.comments] == ["42-04"]
        assert third.has_more is False
        assert third.next_cursor is None

    def test_oldest_order(self, db_session, test_user):
        _seed(db_session, test_user, 3)
        page = comment_service.list_comments(db_session, wp_post_id="42", sort="oldest")
        assert [view.comment.id for view in page.comments] == ["42-02", "42-01", "42-00"]

    def test_popular_sorts_unreacted_last_and_pages_through_them(self, db_session, test_user):
        rows = _seed(db_session, test_user, 4)
        rows[2].reaction_count = 5
        rows[3].reaction_count = 1
        db_session.flush()

        first = comment_service.list_comments(db_session, wp_post_id="42", sort="popular", limit=3)
        assert [view.comment.id for view in first.comments] == ["42-02", "42-03", "42-00"]

        second = comment_service.list_comments(
            db_session, wp_post_id="42", sort="popular", limit=3, cursor=first.next_cursor
        )
        assert [view.comment.id for view in second.comments] == ["42-01"]

    def test_cursor_for_other_sort_is_rejected(self, db_session, test_user):
        _seed(db_session, test_user, 3)
        page = comment_service.list_comments(db_session, wp_post_id="42", limit=1)
        with pytest.raises(InvalidInputError):
            comment_service.list_comments(db_session, wp_post_id="42", sort="oldest", cursor=page.next_cursor)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"wp_post_id": " "},
            {"wp_post_id": "42", "limit": 0},
            {"wp_post_id": "42", "limit": 51},
            {"wp_post_id": "42", "sort": "best"},
            {"wp_post_id": "42", "status": "hidden"},
            {"wp_post_id": "42", "edition_code": "xx"},
            {"wp_post_id": "42", "cursor": "garbage"},
        ],
    )
    def test_invalid_arguments(self, db_session, kwargs):
        with pytest.raises(InvalidInputError):
            comment_service.list_comments(db_session, **kwargs)

    def test_editions_are_isolated(self, db_session, test_user):
        _seed(db_session, test_user, 2, edition="ng")
        assert comment_service.list_comments(db_session, wp_post_id="42").comments == []
        assert len(comment_service.list_comments(db_session, wp_post_id="42", edition_code="ng").comments) == 2

    def test_top_level_filter(self, db_session, test_user):
        parent = _seed(db_session, test_user, 1)[0]
        db_session.add(
            Comment(id="reply", wp_post_id="42", edition_code="african", user_id=test_user.id, body="r", parent_id=parent.id)
        )
        db_session.flush()

        top = comment_service.list_comments(db_session, wp_post_id="42", parent_id="null")
        assert [view.comment.id for view in top.comments] == [parent.id]
        replies = comment_service.list_comments(db_session, wp_post_id="42", parent_id=parent.id)
        assert [view.comment.id for view in replies.comments] == ["reply"]


class TestVisibility:
    @pytest.fixture()
    def mixed(self, db_session, test_user, other_user):
        for comment_id, author, status in (
            ("mine-active", test_user, "active"),
            ("mine-flagged", test_user, "flagged"),
            ("theirs-flagged", other_user, "flagged"),
        ):
            db_session.add(
                Comment(
                    id=comment_id,
                    wp_post_id="7",
                    edition_code="african",
                    user_id=author.id,
                    body="x",
                    status=status,
                )
            )
        db_session.flush()

    def test_anonymous_sees_only_active(self, db_session, mixed):
        page = comment_service.list_comments(db_session, wp_post_id="7", status="all")
        assert {view.comment.status for view in page.comments} == {"active"}

    def test_author_sees_own_comments_in_any_state(self, db_session, mixed, test_user):
        page = comment_service.list_comments(db_session, wp_post_id="7", status="all", viewer=test_user)
        ids = {view.comment.id for view in page.comments}
        assert "mine-flagged" in ids
        assert "theirs-flagged" not in ids

    def test_author_filtering_flagged_sees_only_own(self, db_session, mixed, test_user):
        page = comment_service.list_comments(db_session, wp_post_id="7", status="flagged", viewer=test_user)
        assert [view.comment.id for view in page.comments] == ["mine-flagged"]

    def test_moderator_sees_everything(self, db_session, mixed, moderator):
        page = comment_service.list_comments(db_session, wp_post_id="7", status="all", viewer=moderator)
        assert len(page.comments) == 3


class TestMutations:
    def test_create_comment_defaults(self, db_session, test_user):
        view = comment_service.create_comment(db_session, author=test_user, wp_post_id="9", body="Hello")
        assert view.comment.status == "active"
        assert view.comment.edition_code == "african"
        assert view.author.username == test_user.username

    def test_create_rejects_empty_and_oversized_bodies(self, db_session, test_user):
        with pytest.raises(InvalidInputError):
            comment_service.create_comment(db_session, author=test_user, wp_post_id="9", body="   ")
        with pytest.raises(InvalidInputError):
            comment_service.create_comment(db_session, author=test_user, wp_post_id="9", body="x" * 2001)

    def test_reply_to_missing_parent(self, db_session, test_user):
        with pytest.raises(NotFoundError):
            comment_service.create_comment(
                db_session, author=test_user, wp_post_id="9", body="hi", parent_id="nope"
            )

    def test_rate_limit(self, db_session, test_user):
        limiter = RateLimiter(TTLStore())
        for _ in range(5):
            comment_service.create_comment(
                db_session, author=test_user, wp_post_id="9", body="hi", rate_limiter=limiter
            )
        with pytest.raises(RateLimitedError) as exc_info:
            comment_service.create_comment(
                db_session, author=test_user, wp_post_id="9", body="hi", rate_limiter=limiter
            )
        assert exc_info.value.retry_after > 0

    def test_only_author_can_delete(self, db_session, test_user, other_user):
        comment = _seed(db_session, test_user, 1)[0]
        with pytest.raises(PermissionDeniedError):
            comment_service.apply_comment_action(
                db_session, comment_id=comment.id, action="delete", actor=other_user
            )
        updated = comment_service.apply_comment_action(
            db_session, comment_id=comment.id, action="delete", actor=test_user
        )
        assert updated.status == "deleted"

    def test_report_requires_reason(self, db_session, test_user, other_user):
        comment = _seed(db_session, test_user, 1)[0]
        with pytest.raises(InvalidInputError):
            comment_service.apply_comment_action(
                db_session, comment_id=comment.id, action="report", actor=other_user, reason=" "
            )
        flagged = comment_service.apply_comment_action(
            db_session, comment_id=comment.id, action="report", actor=other_user, reason="spam"
        )
        assert flagged.status == "flagged"
        assert flagged.reported_by == other_user.id

    def test_approve_is_moderator_only(self, db_session, test_user, moderator):
        comment = _seed(db_session, test_user, 1, status="flagged")[0]
        with pytest.raises(PermissionDeniedError):
            comment_service.apply_comment_action(
                db_session, comment_id=comment.id, action="approve", actor=test_user
            )
        approved = comment_service.apply_comment_action(
            db_session, comment_id=comment.id, action="approve", actor=moderator
        )
        assert approved.status == "active"
        assert approved.reviewed_by == moderator.id

    def test_edit_own_active_comment(self, db_session, test_user, other_user):
        comment = _seed(db_session, test_user, 1)[0]
        with pytest.raises(PermissionDeniedError):
            comment_service.update_comment_body(db_session, comment_id=comment.id, user=other_user, body="x")
        view = comment_service.update_comment_body(db_session, comment_id=comment.id, user=test_user, body="edited")
        assert view.comment.body == "edited"


class TestReactions:
    def test_toggle_cycle(self, db_session, test_user, other_user):
        comment = _seed(db_session, test_user, 1)[0]

        added = comment_service.toggle_reaction(db_session, comment_id=comment.id, user=other_user, reaction_type="like")
        assert added.action == "added"
        assert added.view.comment.reaction_count == 1
        assert added.view.user_reaction == "like"

        switched = comment_service.toggle_reaction(db_session, comment_id=comment.id, user=other_user, reaction_type="love")
        assert switched.action == "updated"
        assert [reaction.type for reaction in switched.view.reactions] == ["love"]

        removed = comment_service.toggle_reaction(db_session, comment_id=comment.id, user=other_user, reaction_type="love")
        assert removed.action == "removed"
        assert removed.view.comment.reaction_count == 0
        assert removed.view.user_reaction is None

    def test_unknown_reaction(self, db_session, test_user):
        comment = _seed(db_session, test_user, 1)[0]
        with pytest.raises(InvalidInputError):
            comment_service.toggle_reaction(db_session, comment_id=comment.id, user=test_user, reaction_type="meh")

    def test_summary_marks_viewer_reaction(self, db_session, test_user, other_user):
        comment = _seed(db_session, test_user, 1)[0]
        comment_service.toggle_reaction(db_session, comment_id=comment.id, user=other_user, reaction_type="like")
        comment_service.toggle_reaction(db_session, comment_id=comment.id, user=test_user, reaction_type="like")

        view = comment_service.build_comment_views(db_session, [comment], other_user)[0]
        assert view.reactions[0].count == 2
        assert view.reactions[0].reacted_by_current_user is True
        assert view.reactions_total == 2


class TestAdmin:
    def test_queue_filters_by_status(self, db_session, test_user):
        _seed(db_session, test_user, 2)
        _seed(db_session, test_user, 1, post_id="8", status="flagged")
        flagged = comment_service.list_admin_comments(db_session, "flagged")
        assert [row.status for row in flagged] == ["flagged"]
        assert len(comment_service.list_admin_comments(db_session, "whatever")) == 3

    def test_admin_update(self, db_session, test_user, moderator):
        comment = _seed(db_session, test_user, 1, status="flagged")[0]
        updated = comment_service.admin_update_comment(
            db_session, comment_id=comment.id, status="approved", moderator=moderator
        )
        assert updated.status == "active"
        assert updated.reviewed_at is not None
        with pytest.raises(InvalidInputError):
            comment_service.admin_update_comment(
                db_session, comment_id=comment.id, status="hidden", moderator=moderator
            )
