# src/noa_api/models/profile.py
"""SQLAlchemy model for reader profiles."""

from __future__ import annotations

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from noa_api.db.session import Base


class Profile(Base):
    """Public profile keyed by the Supabase auth user id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Moderators may see and act on comments in every status.
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
