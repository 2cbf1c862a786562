"""Search suggestion endpoint."""

from fastapi import APIRouter, Query

from noa_api.api.v1.dependencies import SuggestionIndexDep
from noa_api.schemas.search import SuggestionResponse

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/suggest", response_model=SuggestionResponse)
async def suggest(
    index: SuggestionIndexDep,
    q: str = Query("", description="Prefix typed by the reader"),
    limit: int = Query(8, ge=1, le=20),
) -> SuggestionResponse:
    """Return search terms starting with ``q`` drawn from recent headlines."""
    result = await index.suggest(q, limit)
    return SuggestionResponse(query=q, suggestions=result.suggestions, cache_hit=result.cache_hit)
