"""Search suggestion schemas."""
from __future__ import annotations

from .common import CamelModel


class SuggestionResponse(CamelModel):
    query: str
    suggestions: list[str]
    cache_hit: bool = False
