# src/noa_api/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .bookmark import (
    BookmarkBulkDelete,
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkMutationResponse,
    BookmarkResponse,
    BookmarkStatsResponse,
    BookmarkUpdate,
)
from .comment import (
    AdminCommentUpdate,
    CommentActionRequest,
    CommentActionResponse,
    CommentBodyUpdate,
    CommentCreate,
    CommentListResponse,
    CommentReactionRequest,
    CommentResponse,
    ReactionToggleResponse,
)
from .common import CamelModel, PaginationInfo
from .home import AggregatedHome, HomeFeedPayload, HomePost
from .search import SuggestionResponse

__all__ = [
    "AdminCommentUpdate", "CommentActionRequest", "CommentActionResponse",
    "CommentBodyUpdate", "CommentCreate", "CommentListResponse",
    "CommentReactionRequest", "CommentResponse", "ReactionToggleResponse",
    "BookmarkBulkDelete", "BookmarkCreate", "BookmarkListResponse",
    "BookmarkMutationResponse", "BookmarkResponse", "BookmarkStatsResponse", "BookmarkUpdate",
    "CamelModel", "PaginationInfo",
    "AggregatedHome", "HomeFeedPayload", "HomePost",
    "SuggestionResponse",
]
