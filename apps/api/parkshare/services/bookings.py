"""Booking creation and lifecycle.

Creating or extending a booking re-runs the availability verdict inside the
same transaction as the write, while holding the listing lock, so two
overlapping requests for one listing cannot both pass the check.
"""
from __future__ import annotations

import logging
import math
from datetime import timedelta

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..db.capabilities import get_capabilities
from ..models.booking import BookingStatus
from ..models.listing import ListingStatus
from ..repositories import bookings as bookings_repo
from ..repositories import listings as listings_repo
from ..schemas import bookings as schemas
from .availability import ListingAvailability, UnavailableReason, Verdict, resolve
from .intervals import Interval
from .listings import load_availability
from .locks import listing_locks

logger = logging.getLogger(__name__)

SLOT_TAKEN = "Slot no longer available"
LISTING_CLOSED = "Listing is not available for the selected time"
OVERLAP_CONSTRAINT = "bookings_no_overlap"
EXCLUSION_VIOLATION = "23P01"


def quote_amount_cents(price_per_day: int, window: Interval) -> int:
    """Charge whole days, rounding partial days and hours up."""

    hours = max(1, math.ceil(window.duration.total_seconds() / 3600))
    days = max(1, math.ceil(hours / 24))
    return price_per_day * days * 100


async def create_booking(
    payload: schemas.CreateBookingRequest,
    driver_id: str,
    session: AsyncSession,
) -> schemas.BookingResponse:
    """Create a pending booking if the listing is free for the window."""

    window = payload.interval
    _check_window_length(window)
    capabilities = get_capabilities()

    try:
        async with listing_locks.hold(payload.listing_id):
            async with session.begin():
                listing = await listings_repo.lock_listing(session, payload.listing_id)
                if listing is None or listing.status == ListingStatus.ARCHIVED:
                    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")

                availability = await load_availability(
                    session, listing_ids=[listing.listing_id], window=window, capabilities=capabilities
                )
                verdict = resolve(
                    availability.get(listing.listing_id) or ListingAvailability(listing_id=listing.listing_id),
                    window,
                    open_rule_mode=settings.open_rule_mode,
                )
                if not verdict:
                    _raise_unavailable(verdict)

                record = await bookings_repo.create_booking(
                    session,
                    listing_id=listing.listing_id,
                    driver_id=driver_id,
                    window=window,
                    amount_cents=quote_amount_cents(listing.price_per_day, window),
                    currency=(payload.currency or settings.default_currency).lower(),
                    capabilities=capabilities,
                    vehicle_plate=payload.vehicle_plate,
                    checkout_session_id=payload.checkout_session_id,
                )
    except IntegrityError as exc:
        if _is_overlap_violation(exc):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLOT_TAKEN) from exc
        raise

    logger.info(
        "Booking %s created for listing %s [%s, %s)",
        record.booking_id,
        record.listing_id,
        window.start.isoformat(),
        window.end.isoformat(),
    )
    return schemas.BookingResponse(booking=_to_out(record))


async def cancel_booking(
    booking_id: str,
    driver_id: str,
    session: AsyncSession,
) -> schemas.CancelBookingResponse:
    """Soft-cancel a driver's booking; canceling twice is a no-op."""

    capabilities = get_capabilities()
    if not capabilities.booking_status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking cannot be canceled until the bookings table is migrated",
        )

    async with session.begin():
        record = await bookings_repo.get_booking_for_driver(
            session, booking_id=booking_id, driver_id=driver_id, capabilities=capabilities, for_update=True
        )
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
        if record.status == BookingStatus.CANCELED:
            return schemas.CancelBookingResponse(already_canceled=True)
        await bookings_repo.set_status(session, booking_id=booking_id, status=BookingStatus.CANCELED)

    logger.info("Booking %s canceled by driver", booking_id)
    return schemas.CancelBookingResponse()


async def extend_booking(
    booking_id: str,
    payload: schemas.ExtendBookingRequest,
    driver_id: str,
    session: AsyncSession,
) -> schemas.BookingResponse:
    """Move the end of a confirmed booking later if the extra time is free."""

    capabilities = get_capabilities()
    async with session.begin():
        current = await bookings_repo.get_booking_for_driver(
            session, booking_id=booking_id, driver_id=driver_id, capabilities=capabilities
        )
    if current is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")

    async with listing_locks.hold(current.listing_id):
        async with session.begin():
            await listings_repo.lock_listing(session, current.listing_id)
            record = await bookings_repo.get_booking_for_driver(
                session, booking_id=booking_id, driver_id=driver_id, capabilities=capabilities, for_update=True
            )
            if record is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
            if record.status != BookingStatus.CONFIRMED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail="Only confirmed bookings can be extended"
                )
            if payload.new_end_time <= record.end_time:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="New end time must be after current end time",
                )

            window = Interval(record.start_time, payload.new_end_time)
            _check_window_length(window)
            availability = await load_availability(
                session, listing_ids=[record.listing_id], window=window, capabilities=capabilities
            )
            verdict = resolve(
                availability.get(record.listing_id) or ListingAvailability(listing_id=record.listing_id),
                window,
                open_rule_mode=settings.open_rule_mode,
                exclude_booking_id=record.booking_id,
            )
            if not verdict:
                _raise_unavailable(verdict)

            record.end_time = window.end
            record.amount_cents = quote_amount_cents(record.price_per_day or 0, window)
            await bookings_repo.set_window_end(
                session, booking_id=record.booking_id, end_time=record.end_time, amount_cents=record.amount_cents
            )

    logger.info("Booking %s extended to %s", booking_id, record.end_time.isoformat())
    return schemas.BookingResponse(booking=_to_out(record))


async def update_checkout_status(
    payload: schemas.CheckoutStatusRequest,
    session: AsyncSession,
) -> schemas.CheckoutStatusResponse:
    """Apply a payment outcome to the booking created for a checkout session."""

    async with session.begin():
        updated = await bookings_repo.set_status_by_checkout_session(
            session,
            checkout_session_id=payload.checkout_session_id,
            status=BookingStatus(payload.status),
            capabilities=get_capabilities(),
        )
    if not updated:
        logger.warning("No pending booking updated for checkout session %s", payload.checkout_session_id)
    return schemas.CheckoutStatusResponse(updated=updated)


async def list_my_bookings(driver_id: str, session: AsyncSession) -> schemas.BookingListResponse:
    records = await bookings_repo.list_driver_bookings(
        session, driver_id=driver_id, capabilities=get_capabilities()
    )
    return schemas.BookingListResponse(bookings=[_to_out(record) for record in records])


def _check_window_length(window: Interval) -> None:
    if window.duration > timedelta(days=settings.max_booking_window_days):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Bookings cannot exceed {settings.max_booking_window_days} days",
        )


def _raise_unavailable(verdict: Verdict) -> None:
    detail = SLOT_TAKEN if verdict.reason is UnavailableReason.BOOKING_CONFLICT else LISTING_CLOSED
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _is_overlap_violation(exc: IntegrityError) -> bool:
    """Recognise the PostgreSQL exclusion constraint on booking windows."""

    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == EXCLUSION_VIOLATION or OVERLAP_CONSTRAINT in str(orig)


def _to_out(record: bookings_repo.BookingRecord) -> schemas.BookingOut:
    return schemas.BookingOut(
        id=record.booking_id,
        listing_id=record.listing_id,
        start_time=record.start_time,
        end_time=record.end_time,
        status=record.status,
        amount_cents=record.amount_cents,
        currency=record.currency,
        vehicle_plate=record.vehicle_plate,
        checkout_session_id=record.checkout_session_id,
        listing_title=record.listing_title,
        listing_address=record.listing_address,
    )
