# src/noa_api/models/__init__.py
"""SQLAlchemy models for the News On Africa API."""

from .bookmark import Bookmark, BookmarkCollection, BookmarkUserCounter
from .comment import Comment, CommentReaction
from .profile import Profile

__all__ = [
    "Bookmark", "BookmarkCollection", "BookmarkUserCounter",
    "Comment", "CommentReaction",
    "Profile",
]
