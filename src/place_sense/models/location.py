"""Location model for curated (LV) place records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from place_sense.models.base import Base, JSONType


class Location(Base):
    """A place in the curated ratings database.

    The id is created once and never reused. ``google_place_id`` is the
    cross-reference id issued by the place-search provider and may be
    absent; ``michelin_id`` is set only by the award backfill, when the row
    was seeded from the award dataset or matched to one of its rows by name.
    """

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(512))
    address: Mapped[str | None] = mapped_column(String(1024))
    city: Mapped[str | None] = mapped_column(String(255))
    country: Mapped[str | None] = mapped_column(String(255))
    lat: Mapped[float | None] = mapped_column(Float)
    lng: Mapped[float | None] = mapped_column(Float)
    category: Mapped[str | None] = mapped_column(String(64))
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list)

    lv_editor_score: Mapped[float | None] = mapped_column(Float)
    """Editor rating, 0.0-11.0 scale."""

    lv_avg_user_score: Mapped[float | None] = mapped_column(Float)
    """Crowd rating, 0.0-10.0 scale (cached from user ratings)."""

    michelin_stars: Mapped[int | None] = mapped_column(Integer)
    michelin_distinction: Mapped[str | None] = mapped_column(String(64))
    michelin_green_star: Mapped[bool] = mapped_column(Boolean, default=False)

    google_place_id: Mapped[str | None] = mapped_column(String(255), index=True)
    michelin_id: Mapped[str | None] = mapped_column(String(64), index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
