# src/noa_api/main.py
"""Main entry point for the News On Africa API."""

from __future__ import annotations

import logging
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from redis import asyncio as aioredis

from noa_api.api.v1 import (
    admin_comments_router,
    bookmarks_router,
    comments_router,
    home_feed_router,
    search_router,
)
from noa_api.core.settings import settings
from noa_api.services.home_feed import build_home_feed
from noa_api.services.home_feed_cache import HomeFeedCache
from noa_api.services.rate_limit import RateLimiter
from noa_api.services.refresh import BackgroundRefresher
from noa_api.services.suggestions import SuggestionIndex
from noa_api.services.ttl_store import TTLStore
from noa_api.services.wordpress import WordPressClient

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Comments, bookmarks and home feed for News On Africa",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=["X-Cache", "Retry-After"],
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(comments_router, prefix="/api/v1")
app.include_router(admin_comments_router, prefix="/api/v1")
app.include_router(bookmarks_router, prefix="/api/v1")
app.include_router(home_feed_router, prefix="/api/v1")
app.include_router(search_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    store = TTLStore(sweep_interval=settings.ttl_store_sweep_seconds)
    await store.start()
    app.state.ttl_store = store
    app.state.rate_limiter = RateLimiter(store)

    wordpress = WordPressClient()
    app.state.wordpress = wordpress
    app.state.suggestion_index = SuggestionIndex(wordpress, store)

    refresher = BackgroundRefresher(
        settings.background_refresh_concurrency,
        settings.background_refresh_max_pending,
    )
    app.state.refresher = refresher

    redis = None
    if settings.redis_url:
        redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    else:
        logger.info("REDIS_URL is not set; home feed responses will not be cached")
    app.state.redis = redis
    app.state.home_feed_cache = HomeFeedCache(
        redis,
        partial(build_home_feed, wordpress),
        refresher,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    refresher: BackgroundRefresher | None = getattr(app.state, "refresher", None)
    if refresher:
        await refresher.close()
    wordpress: WordPressClient | None = getattr(app.state, "wordpress", None)
    if wordpress:
        await wordpress.close()
    redis = getattr(app.state, "redis", None)
    if redis is not None:
        await redis.aclose()
    store: TTLStore | None = getattr(app.state, "ttl_store", None)
    if store:
        await store.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("noa_api.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
