"""PlaceValidation model recording human review of candidate matches."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from place_sense.models.base import Base
from place_sense.models.enums import ValidationStatus


class PlaceValidation(Base):
    """One decision about a suggested cross-reference id for an award row.

    A row with ``status=PENDING`` and ``auto_applied=True`` is written when
    the server links a high-confidence candidate speculatively; the human
    decision that follows is recorded as its own row.

    Unsure is stored distinctly from rejected for downstream analytics even
    though neither mutates the award row.
    """

    __tablename__ = "place_validations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    award_restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("award_restaurants.id"), index=True
    )
    candidate_place_id: Mapped[str] = mapped_column(String(255), index=True)

    status: Mapped[ValidationStatus] = mapped_column(default=ValidationStatus.PENDING)

    confidence: Mapped[int | None] = mapped_column(Integer)
    """Confidence (0-100) of the suggestion that was reviewed, if known."""

    auto_applied: Mapped[bool] = mapped_column(Boolean, default=False)
    """True if the link was applied before any human acted."""

    user_id: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
