# src/noa_api/schemas/comment.py
"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from noa_api.services.comments import CommentView

from .common import CamelModel


class CommentCreate(BaseModel):
    """Schema for posting a new comment."""

    wp_post_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("wp_post_id", "wpPostId", "postId"),
        description="WordPress post the comment belongs to",
    )
    edition_code: str | None = Field(
        None,
        validation_alias=AliasChoices("edition_code", "editionCode"),
        description="Edition code; defaults to the pan-African edition",
    )
    body: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("body", "content"),
        description="Comment text",
    )
    parent_id: str | None = Field(None, validation_alias=AliasChoices("parent_id", "parentId"))
    is_rich_text: bool = Field(False, validation_alias=AliasChoices("is_rich_text", "isRichText"))


class CommentBodyUpdate(BaseModel):
    """Schema for editing the body of an existing comment."""

    body: str = Field(..., min_length=1, validation_alias=AliasChoices("body", "content"))


class CommentActionRequest(BaseModel):
    """Schema for reporting, deleting or approving a comment."""

    action: Literal["report", "delete", "approve"]
    reason: str | None = Field(None, description="Required when reporting")


class CommentReactionRequest(BaseModel):
    """Schema for toggling a reaction."""

    reaction_type: str = Field(
        ...,
        validation_alias=AliasChoices("reaction_type", "reactionType", "type"),
    )


class AdminCommentUpdate(BaseModel):
    """Schema for a moderator status decision."""

    status: str = Field(..., description="pending, active, flagged or deleted (approved/rejected accepted)")


class ReactionSummaryResponse(CamelModel):
    type: str
    count: int
    reacted_by_current_user: bool = False


class CommentAuthorResponse(BaseModel):
    username: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    """Schema for comment information returned by the API."""

    id: str
    wp_post_id: str
    edition_code: str
    user_id: str
    body: str
    parent_id: str | None = None
    status: str
    created_at: datetime
    reported_by: str | None = None
    report_reason: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    reaction_count: int | None = None
    is_rich_text: bool = False
    reactions: list[ReactionSummaryResponse] = Field(default_factory=list)
    user_reaction: str | None = None
    profile: CommentAuthorResponse | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_view(cls, view: CommentView) -> CommentResponse:
        response = cls.model_validate(view.comment)
        return response.model_copy(
            update={
                "reactions": [ReactionSummaryResponse.model_validate(item) for item in view.reactions],
                "user_reaction": view.user_reaction,
                "profile": (
                    CommentAuthorResponse.model_validate(view.author) if view.author else None
                ),
            }
        )


class CommentListResponse(CamelModel):
    """Envelope for a page of comments."""

    comments: list[CommentResponse]
    has_more: bool
    next_cursor: str | None = None
    total_count: int | None = None


class CommentActionResponse(CamelModel):
    success: bool = True
    action: str
    status: str


class ReactionToggleResponse(CamelModel):
    action: Literal["added", "removed", "updated"]
    comment: CommentResponse
