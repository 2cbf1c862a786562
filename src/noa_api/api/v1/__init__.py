# src/noa_api/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_comments_router,
    bookmarks_router,
    comments_router,
    home_feed_router,
    search_router,
)

__all__ = [
    "admin_comments_router",
    "bookmarks_router",
    "comments_router",
    "home_feed_router",
    "search_router",
]
