"""SQLAlchemy ORM model for the remote saved-city table.

The table is owned by the remote backend; the declarative model mirrors its
current schema so tests and local runs can create it with ``create_all``.
Deployments that predate the favorites migration lack ``is_favorite``, which
the persistence layer detects at runtime instead of assuming.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Float, Index, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


def new_city_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class SavedCityRecord(Base):
    """A city saved by a single owner, optionally flagged as favorite."""

    __tablename__ = "saved_cities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_city_id)
    user_id: Mapped[str] = mapped_column(
        String(128),
        index=True,
        nullable=False,
        doc=(
            "Opaque identifier of the owner established by the auth transport."
            " Every read filters on it."
        ),
    )
    city_name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    is_favorite: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        default=False,
        doc="Absent on legacy schemas; readers treat NULL/missing as favorite.",
    )


# A plain UNIQUE treats NULL countries as distinct, so the index folds them to ''.
Index(
    "uq_saved_cities_user_name_country",
    SavedCityRecord.user_id,
    SavedCityRecord.city_name,
    func.coalesce(SavedCityRecord.country, ""),
    unique=True,
)


__all__ = ["Base", "SavedCityRecord", "new_city_id", "utcnow"]
