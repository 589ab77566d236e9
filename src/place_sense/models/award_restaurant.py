"""AwardRestaurant model for the fine-dining award dataset."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from place_sense.models.base import Base


class AwardRestaurant(Base):
    """A row from the award dataset (stars, Bib Gourmand, Plate, green star).

    Sourced from its own table, independent of the curated ratings.
    ``google_place_id`` starts out empty for most rows and is attached
    through the candidate validation workflow.
    """

    __tablename__ = "award_restaurants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(512))
    address: Mapped[str | None] = mapped_column(String(1024))
    location: Mapped[str | None] = mapped_column(String(255))
    """City / region label as published by the dataset."""

    lat: Mapped[float | None] = mapped_column(Float)
    lng: Mapped[float | None] = mapped_column(Float)

    award: Mapped[str] = mapped_column(String(128), default="")
    """Raw award label, e.g. "2 Stars", "Bib Gourmand", "Selected Restaurants"."""

    green_star: Mapped[bool] = mapped_column(Boolean, default=False)
    cuisine: Mapped[str | None] = mapped_column(String(255))
    price: Mapped[str | None] = mapped_column(String(32))

    google_place_id: Mapped[str | None] = mapped_column(String(255), index=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
