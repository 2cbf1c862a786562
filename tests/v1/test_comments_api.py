# tests/v1/test_comments_api.py
"""Tests for comment endpoints."""

from fastapi import status

from noa_api.models import Comment


def _post_comment(client, headers, body="Great reporting", **extra):
    payload = {"wpPostId": "101", "editionCode": "ng", "body": body}
    payload.update(extra)
    return client.post("/api/v1/comments", json=payload, headers=headers)


def test_create_comment_success(client, test_user, auth_token) -> None:
    """Test posting a comment as a signed-in reader."""
    response = _post_comment(client, auth_token)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["body"] == "Great reporting"
    assert data["wp_post_id"] == "101"
    assert data["edition_code"] == "ng"
    assert data["status"] == "active"
    assert data["user_id"] == test_user.id
    assert data["profile"]["username"] == "reader"


def test_create_comment_requires_auth(client) -> None:
    """Test anonymous readers cannot comment."""
    response = _post_comment(client, {})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Authentication required"


def test_create_comment_unknown_edition_falls_back(client, auth_token) -> None:
    response = _post_comment(client, auth_token, editionCode="atlantis")
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["edition_code"] == "african"


def test_create_comment_too_long(client, auth_token) -> None:
    response = _post_comment(client, auth_token, body="x" * 2001)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Comment is too long"


def test_reply_to_missing_parent(client, auth_token) -> None:
    response = _post_comment(client, auth_token, parentId="nope")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_create_comment_rate_limited(client, auth_token) -> None:
    """Test the sixth comment inside a minute is rejected with Retry-After."""
    for index in range(5):
        assert _post_comment(client, auth_token, body=f"comment {index}").status_code == status.HTTP_201_CREATED

    response = _post_comment(client, auth_token, body="one too many")
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert int(response.headers["Retry-After"]) >= 1
    assert "Rate limited" in response.json()["detail"]


def test_list_comments_anonymous(client, auth_token) -> None:
    """Test anonymous listing returns active comments with pagination fields."""
    for index in range(3):
        _post_comment(client, auth_token, body=f"comment {index}")

    response = client.get("/api/v1/comments", params={"wpPostId": "101", "editionCode": "ng", "limit": 2})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data["comments"]) == 2
    assert data["hasMore"] is True
    assert data["nextCursor"]
    assert data["totalCount"] == 3

    second = client.get(
        "/api/v1/comments",
        params={"wpPostId": "101", "editionCode": "ng", "limit": 2, "cursor": data["nextCursor"]},
    )
    assert second.status_code == status.HTTP_200_OK
    assert len(second.json()["comments"]) == 1
    assert second.json()["hasMore"] is False


def test_list_comments_requires_post_id(client) -> None:
    response = client.get("/api/v1/comments", params={"wpPostId": " "})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_list_comments_invalid_cursor(client) -> None:
    response = client.get("/api/v1/comments", params={"wpPostId": "101", "cursor": "garbage"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Invalid cursor"


def test_list_comments_invalid_sort(client) -> None:
    response = client.get("/api/v1/comments", params={"wpPostId": "101", "sort": "loudest"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_edit_own_comment(client, auth_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]

    response = client.patch(f"/api/v1/comments/{comment_id}", json={"body": "Edited"}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["body"] == "Edited"


def test_edit_someone_elses_comment(client, auth_token, other_auth_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]

    response = client.patch(f"/api/v1/comments/{comment_id}", json={"body": "Mine now"}, headers=other_auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_report_comment(client, db_session, other_user, auth_token, other_auth_token) -> None:
    """Test reporting flags the comment and records the reporter."""
    comment_id = _post_comment(client, auth_token).json()["id"]

    response = client.post(
        f"/api/v1/comments/{comment_id}/actions",
        json={"action": "report", "reason": "spam"},
        headers=other_auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "action": "report", "status": "flagged"}

    comment = db_session.get(Comment, comment_id)
    assert comment.reported_by == other_user.id
    assert comment.report_reason == "spam"


def test_report_requires_reason(client, auth_token, other_auth_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]
    response = client.post(
        f"/api/v1/comments/{comment_id}/actions",
        json={"action": "report"},
        headers=other_auth_token,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_unknown_action_is_rejected(client, auth_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]
    response = client.post(f"/api/v1/comments/{comment_id}/actions", json={"action": "boost"}, headers=auth_token)
    assert response.status_code == 422


def test_delete_hides_comment_from_anonymous(client, auth_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]
    response = client.post(f"/api/v1/comments/{comment_id}/actions", json={"action": "delete"}, headers=auth_token)
    assert response.json()["status"] == "deleted"

    listing = client.get("/api/v1/comments", params={"wpPostId": "101", "editionCode": "ng"})
    assert listing.json()["comments"] == []


def test_approve_requires_moderator(client, auth_token, moderator_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]

    denied = client.post(f"/api/v1/comments/{comment_id}/actions", json={"action": "approve"}, headers=auth_token)
    assert denied.status_code == status.HTTP_403_FORBIDDEN

    approved = client.post(
        f"/api/v1/comments/{comment_id}/actions",
        json={"action": "approve"},
        headers=moderator_token,
    )
    assert approved.status_code == status.HTTP_200_OK
    assert approved.json()["status"] == "active"


def test_toggle_reaction(client, auth_token, other_auth_token) -> None:
    """Test adding, switching and removing a reaction."""
    comment_id = _post_comment(client, auth_token).json()["id"]
    url = f"/api/v1/comments/{comment_id}/reactions"

    added = client.post(url, json={"reactionType": "like"}, headers=other_auth_token)
    assert added.status_code == status.HTTP_200_OK
    assert added.json()["action"] == "added"
    assert added.json()["comment"]["reaction_count"] == 1
    assert added.json()["comment"]["user_reaction"] == "like"
    assert added.json()["comment"]["reactions"] == [
        {"type": "like", "count": 1, "reactedByCurrentUser": True}
    ]

    switched = client.post(url, json={"reactionType": "love"}, headers=other_auth_token)
    assert switched.json()["action"] == "updated"

    removed = client.post(url, json={"reactionType": "love"}, headers=other_auth_token)
    assert removed.json()["action"] == "removed"
    assert removed.json()["comment"]["reaction_count"] == 0


def test_invalid_reaction_type(client, auth_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]
    response = client.post(f"/api/v1/comments/{comment_id}/reactions", json={"type": "meh"}, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_admin_queue_requires_moderator(client, auth_token) -> None:
    response = client.get("/api/v1/admin/comments", headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_admin_queue_and_review(client, auth_token, other_auth_token, moderator_token) -> None:
    """Test a moderator can list flagged comments and restore them."""
    comment_id = _post_comment(client, auth_token).json()["id"]
    _post_comment(client, auth_token, body="untouched")
    client.post(
        f"/api/v1/comments/{comment_id}/actions",
        json={"action": "report", "reason": "abuse"},
        headers=other_auth_token,
    )

    queue = client.get("/api/v1/admin/comments", params={"status": "flagged"}, headers=moderator_token)
    assert queue.status_code == status.HTTP_200_OK
    assert [item["id"] for item in queue.json()] == [comment_id]

    everything = client.get("/api/v1/admin/comments", headers=moderator_token)
    assert len(everything.json()) == 2

    review = client.patch(
        f"/api/v1/admin/comments/{comment_id}",
        json={"status": "approved"},
        headers=moderator_token,
    )
    assert review.status_code == status.HTTP_200_OK
    assert review.json()["status"] == "active"
    assert review.json()["reviewed_by"] is not None


def test_admin_review_invalid_status(client, auth_token, moderator_token) -> None:
    comment_id = _post_comment(client, auth_token).json()["id"]
    response = client.patch(
        f"/api/v1/admin/comments/{comment_id}",
        json={"status": "vanished"},
        headers=moderator_token,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
