"""Per-user list membership: favorites and want-to-go."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from place_sense.models.base import Base, JSONType


class Favorite(Base):
    """A location the user has favorited.

    ``location_id`` holds a curated location id, an award marker id
    (``award-<id>``) or a bare cross-reference id, whichever the client
    had at hand when the favorite was created.
    """

    __tablename__ = "favorites"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    location_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class WantToGo(Base):
    """A want-to-go list entry.

    Keeps a full place snapshot so entries for places that are in neither
    the curated nor the award source can still be rendered.
    """

    __tablename__ = "want_to_go"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    location_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    snapshot: Mapped[dict[str, object]] = mapped_column(JSONType, default=dict)
    """Place payload as captured when the entry was added (name, lat, lng, place_id, ...)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
