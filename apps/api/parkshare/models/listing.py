"""Listing model."""
from __future__ import annotations

from datetime import datetime
import enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Enum, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, enum_values as _enum_values, new_id, utcnow

if TYPE_CHECKING:
    from .availability_rule import AvailabilityRule
    from .booking import Booking


class ListingStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class Listing(Base):
    """Parking space offered by a host."""

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    host_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    address: Mapped[str] = mapped_column(String, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    price_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    availability_text: Mapped[str | None] = mapped_column(String)
    amenities: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    image_urls: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    rating: Mapped[float | None] = mapped_column(Float)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, name="listing_status", values_callable=_enum_values),
        default=ListingStatus.ACTIVE,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="listing")
    availability_rules: Mapped[list["AvailabilityRule"]] = relationship(
        "AvailabilityRule", back_populates="listing", cascade="all, delete-orphan"
    )
