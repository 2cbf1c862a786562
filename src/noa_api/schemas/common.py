"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing field names in camelCase for the web client."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationInfo(CamelModel):
    """Pagination block returned by list endpoints."""

    page: int = Field(..., description="1-based page number of this response.")
    limit: int = Field(..., description="Maximum number of items per page.")
    has_more: bool = Field(..., description="Whether another page exists.")
    next_page: int | None = Field(None, description="Page number to request next.")
    next_cursor: str | None = Field(None, description="Opaque cursor for the next page.")
