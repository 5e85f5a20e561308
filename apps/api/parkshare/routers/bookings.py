"""Booking endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..schemas import bookings as bookings_schema
from ..services import bookings as bookings_service
from ..services.rate_limit import enforce_booking_limit
from .deps import get_current_user_id

router = APIRouter()


@router.post("", response_model=bookings_schema.BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: bookings_schema.CreateBookingRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    """Reserve a listing for a time window."""

    enforce_booking_limit(user_id)
    return await bookings_service.create_booking(payload, user_id, session)


@router.get("/me", response_model=bookings_schema.BookingListResponse)
async def list_my_bookings(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingListResponse:
    """Return the caller's bookings."""

    return await bookings_service.list_my_bookings(user_id, session)


@router.post("/checkout-status", response_model=bookings_schema.CheckoutStatusResponse)
async def update_checkout_status(
    payload: bookings_schema.CheckoutStatusRequest,
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.CheckoutStatusResponse:
    """Record the payment outcome for a checkout session."""

    return await bookings_service.update_checkout_status(payload, session)


@router.post("/{booking_id}/cancel", response_model=bookings_schema.CancelBookingResponse)
async def cancel_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.CancelBookingResponse:
    """Cancel one of the caller's bookings."""

    enforce_booking_limit(user_id)
    return await bookings_service.cancel_booking(booking_id, user_id, session)


@router.post("/{booking_id}/extend", response_model=bookings_schema.BookingResponse)
async def extend_booking(
    booking_id: str,
    payload: bookings_schema.ExtendBookingRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    """Extend one of the caller's confirmed bookings."""

    enforce_booking_limit(user_id)
    return await bookings_service.extend_booking(booking_id, payload, user_id, session)
