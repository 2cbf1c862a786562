"""Aggregated home feed endpoint."""

from fastapi import APIRouter, Response

from noa_api.api.v1.dependencies import HomeFeedCacheDep, raise_http_error
from noa_api.core.errors import NoaError
from noa_api.schemas.home import HomeFeedPayload

router = APIRouter(tags=["home"])


@router.get("/home-feed", response_model=HomeFeedPayload)
async def get_home_feed(response: Response, cache: HomeFeedCacheDep) -> HomeFeedPayload:
    """Return the aggregated home feed for every configured edition.

    ``X-Cache`` reports how the response was produced (HIT, STALE, MISS,
    REFRESH or BYPASS) and ``Cache-Control`` lets the edge keep serving it
    while it is revalidated.
    """
    try:
        result = await cache.get()
    except NoaError as exc:
        raise_http_error(exc)

    response.headers["Cache-Control"] = result.cache_control
    response.headers["X-Cache"] = result.status.value
    return result.payload
