"""ORM model for the local, durable cache table.

The cache lives in its own declarative base so it can be created on the local
SQLite file without touching the remote schema.
"""

from __future__ import annotations

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class CacheBase(DeclarativeBase):
    pass


class CacheEntryRecord(CacheBase):
    """One cached payload, keyed by category and coordinate (or empty) key."""

    __tablename__ = "cache_entries"

    category: Mapped[str] = mapped_column(String(32), primary_key=True)
    key: Mapped[str] = mapped_column(String(64), primary_key=True, default="")
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    cached_at: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        doc="Epoch seconds at which the payload was captured.",
    )


__all__ = ["CacheBase", "CacheEntryRecord"]
