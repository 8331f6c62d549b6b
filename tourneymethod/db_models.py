"""Shared SQLAlchemy building blocks for the TourneyMethod backend."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, func


class TimestampMixin:
    """Mixin that adds created_at/updated_at audit fields."""

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
