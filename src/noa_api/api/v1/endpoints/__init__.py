# src/noa_api/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin_comments import router as admin_comments_router
from .bookmarks import router as bookmarks_router
from .comments import router as comments_router
from .home_feed import router as home_feed_router
from .search import router as search_router

__all__ = [
    "admin_comments_router",
    "bookmarks_router",
    "comments_router",
    "home_feed_router",
    "search_router",
]
