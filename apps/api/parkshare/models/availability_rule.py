"""Availability rule model."""
from __future__ import annotations

from datetime import date, datetime
import enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Date, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, enum_values as _enum_values, new_id, utcnow

if TYPE_CHECKING:
    from .listing import Listing


class RuleKind(str, enum.Enum):
    OPEN = "open"
    BLOCKED = "blocked"


class AvailabilityRule(Base):
    """Open or blocked window for a listing, optionally repeating weekly."""

    __tablename__ = "listing_availability"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    listing_id: Mapped[str] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[RuleKind] = mapped_column(
        Enum(RuleKind, name="availability_kind", values_callable=_enum_values), nullable=False
    )
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Weekday numbers, 0=Sunday..6=Saturday. NULL means the rule applies once.
    repeat_weekdays: Mapped[list[int] | None] = mapped_column(JSON)
    repeat_until: Mapped[date | None] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    listing: Mapped["Listing"] = relationship("Listing", back_populates="availability_rules")
