# src/noa_api/services/__init__.py
"""Business logic services for the News On Africa API."""

from .rate_limit import RateLimiter
from .refresh import BackgroundRefresher
from .ttl_store import TTLStore

__all__ = [
    "BackgroundRefresher",
    "RateLimiter",
    "TTLStore",
]
