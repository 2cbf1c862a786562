"""Domain exceptions raised by the service layer.

Route handlers translate these into HTTP responses; services never import
FastAPI so they stay usable from scripts and background tasks.
"""

from __future__ import annotations


class NoaError(RuntimeError):
    """Base exception for domain failures."""


class InvalidInputError(NoaError):
    """Raised when caller-supplied data is malformed or out of range."""


class NotFoundError(NoaError):
    """Raised when the requested entity does not exist."""


class PermissionDeniedError(NoaError):
    """Raised when the caller may not act on the requested entity."""


class ConflictError(NoaError):
    """Raised when an entity already exists."""


class RateLimitedError(NoaError):
    """Raised when a caller exceeds an action quota."""

    def __init__(self, message: str, retry_after: int = 0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(NoaError):
    """Raised when a content source cannot be reached."""
