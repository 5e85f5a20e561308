"""Schemas for booking creation and lifecycle."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..models.booking import BookingStatus
from ..services.intervals import ensure_utc
from .common import TimeWindow


class CreateBookingRequest(TimeWindow):
    listing_id: str
    vehicle_plate: str | None = Field(default=None, min_length=2, max_length=12, pattern=r"^[A-Za-z0-9 ]+$")
    checkout_session_id: str | None = Field(default=None, max_length=255)
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    @field_validator("vehicle_plate")
    @classmethod
    def _upper_plate(cls, value: str | None) -> str | None:
        return value.strip().upper() if value else value


class BookingOut(BaseModel):
    id: str
    listing_id: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    amount_cents: int
    currency: str
    vehicle_plate: str | None = None
    checkout_session_id: str | None = None
    listing_title: str | None = None
    listing_address: str | None = None


class BookingResponse(BaseModel):
    booking: BookingOut


class BookingListResponse(BaseModel):
    bookings: list[BookingOut]


class CancelBookingResponse(BaseModel):
    ok: bool = True
    already_canceled: bool = False


class ExtendBookingRequest(BaseModel):
    new_end_time: datetime

    @field_validator("new_end_time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class CheckoutStatusRequest(BaseModel):
    checkout_session_id: str
    status: Literal["confirmed", "canceled"]


class CheckoutStatusResponse(BaseModel):
    updated: bool
