"""Booking, search and detail flows against a SQLite database."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from parkshare.models import BookingStatus
from parkshare.schemas import bookings as booking_schemas
from parkshare.schemas import listings as listing_schemas
from parkshare.schemas.common import TimeWindow
from parkshare.services import bookings as bookings_service
from parkshare.services import listings as listings_service
from parkshare.services.availability import SearchMode, UnavailableReason
from parkshare.services.locks import listing_locks


def _at(hour: int, day: int = 1) -> datetime:
    return datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc)


def _request(start: int, end: int, listing_id: str = "lst-near", **kwargs) -> booking_schemas.CreateBookingRequest:
    return booking_schemas.CreateBookingRequest(listing_id=listing_id, from_=_at(start), to=_at(end), **kwargs)


async def _book(factory, payload, driver_id: str = "driver-1") -> booking_schemas.BookingResponse:
    async with factory() as session:
        return await bookings_service.create_booking(payload, driver_id, session)


async def _search(factory, start: int, end: int, mode: SearchMode = SearchMode.FILTER, **kwargs):
    params = listing_schemas.SearchListingsParams(
        from_=_at(start), to=_at(end), lat=52.3700, lng=4.8900, radius_km=5, mode=mode, **kwargs
    )
    async with factory() as session:
        return await listings_service.search_listings(params, session)


@pytest.mark.asyncio
async def test_booked_window_is_no_longer_available(session_factory) -> None:
    response = await _book(session_factory, _request(9, 12, vehicle_plate="ab 123 c"))

    booking = response.booking
    assert booking.status is BookingStatus.PENDING
    assert booking.amount_cents == 2000
    assert booking.vehicle_plate == "AB 123 C"

    async with session_factory() as session:
        detail = await listings_service.get_listing_detail(
            "lst-near", session, TimeWindow(from_=_at(11), to=_at(13))
        )
    assert detail.listing.is_available is False
    assert detail.unavailable_reason is UnavailableReason.BOOKING_CONFLICT

    async with session_factory() as session:
        detail = await listings_service.get_listing_detail(
            "lst-near", session, TimeWindow(from_=_at(12), to=_at(13))
        )
    assert detail.listing.is_available is True
    assert detail.unavailable_reason is None


@pytest.mark.asyncio
async def test_back_to_back_bookings_both_succeed(session_factory) -> None:
    first = await _book(session_factory, _request(9, 10))
    second = await _book(session_factory, _request(10, 11), driver_id="driver-2")

    assert first.booking.end_time == second.booking.start_time


@pytest.mark.asyncio
async def test_overlapping_booking_is_a_conflict(session_factory) -> None:
    await _book(session_factory, _request(9, 12))

    with pytest.raises(HTTPException) as exc:
        await _book(session_factory, _request(11, 13), driver_id="driver-2")

    assert exc.value.status_code == 409
    assert exc.value.detail == bookings_service.SLOT_TAKEN


@pytest.mark.asyncio
async def test_concurrent_overlapping_requests_only_one_wins(session_factory) -> None:
    results = await asyncio.gather(
        _book(session_factory, _request(9, 11), driver_id="driver-1"),
        _book(session_factory, _request(10, 12), driver_id="driver-2"),
        return_exceptions=True,
    )

    successes = [item for item in results if isinstance(item, booking_schemas.BookingResponse)]
    conflicts = [item for item in results if isinstance(item, HTTPException)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert conflicts[0].status_code == 409
    assert len(listing_locks) == 0


@pytest.mark.asyncio
async def test_archived_or_unknown_listing_cannot_be_booked(session_factory) -> None:
    for listing_id in ("lst-archived", "missing"):
        with pytest.raises(HTTPException) as exc:
            await _book(session_factory, _request(9, 10, listing_id=listing_id))
        assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_cancel_frees_the_window(session_factory) -> None:
    created = await _book(session_factory, _request(9, 12))

    async with session_factory() as session:
        canceled = await bookings_service.cancel_booking(created.booking.id, "driver-1", session)
    async with session_factory() as session:
        again = await bookings_service.cancel_booking(created.booking.id, "driver-1", session)

    assert canceled.already_canceled is False
    assert again.already_canceled is True

    rebooked = await _book(session_factory, _request(10, 11), driver_id="driver-2")
    assert rebooked.booking.listing_id == "lst-near"


@pytest.mark.asyncio
async def test_cancel_requires_ownership(session_factory) -> None:
    created = await _book(session_factory, _request(9, 12))

    async with session_factory() as session:
        with pytest.raises(HTTPException) as exc:
            await bookings_service.cancel_booking(created.booking.id, "someone-else", session)

    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_checkout_confirmation_then_extension(session_factory) -> None:
    created = await _book(session_factory, _request(9, 10, checkout_session_id="cs_test_1"))
    await _book(session_factory, _request(12, 13), driver_id="driver-2")

    async with session_factory() as session:
        status_update = await bookings_service.update_checkout_status(
            booking_schemas.CheckoutStatusRequest(checkout_session_id="cs_test_1", status="confirmed"), session
        )
    assert status_update.updated is True

    async with session_factory() as session:
        extended = await bookings_service.extend_booking(
            created.booking.id, booking_schemas.ExtendBookingRequest(new_end_time=_at(12)), "driver-1", session
        )
    assert extended.booking.end_time == _at(12)
    assert extended.booking.status is BookingStatus.CONFIRMED

    async with session_factory() as session:
        with pytest.raises(HTTPException) as exc:
            await bookings_service.extend_booking(
                created.booking.id,
                booking_schemas.ExtendBookingRequest(new_end_time=_at(13)),
                "driver-1",
                session,
            )
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_pending_booking_cannot_be_extended(session_factory) -> None:
    created = await _book(session_factory, _request(9, 10))

    async with session_factory() as session:
        with pytest.raises(HTTPException) as exc:
            await bookings_service.extend_booking(
                created.booking.id, booking_schemas.ExtendBookingRequest(new_end_time=_at(11)), "driver-1", session
            )

    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_my_bookings_include_listing_details(session_factory) -> None:
    await _book(session_factory, _request(9, 10))
    await _book(session_factory, _request(14, 15))
    await _book(session_factory, _request(9, 10, listing_id="lst-far"), driver_id="driver-2")

    async with session_factory() as session:
        mine = await bookings_service.list_my_bookings("driver-1", session)

    assert [item.start_time for item in mine.bookings] == [_at(14), _at(9)]
    assert mine.bookings[0].listing_title == "Garage near the station"


@pytest.mark.asyncio
async def test_search_filters_or_annotates_by_availability(session_factory) -> None:
    await _book(session_factory, _request(9, 12))

    filtered = await _search(session_factory, 10, 11)
    annotated = await _search(session_factory, 10, 11, mode=SearchMode.ANNOTATE)

    assert [item.id for item in filtered.results] == ["lst-far"]
    assert [(item.id, item.is_available) for item in annotated.results] == [
        ("lst-near", False),
        ("lst-far", True),
    ]
    assert annotated.results[0].distance_km == 0.0


@pytest.mark.asyncio
async def test_search_applies_listing_filters(session_factory) -> None:
    by_amenity = await _search(session_factory, 10, 11, amenities=["EV_CHARGER"])
    by_price = await _search(session_factory, 10, 11, price_max=15)
    by_text = await _search(session_factory, 10, 11, q="park lane")

    assert [item.id for item in by_amenity.results] == ["lst-near"]
    assert [item.id for item in by_price.results] == ["lst-far"]
    assert [item.id for item in by_text.results] == ["lst-far"]


@pytest.mark.asyncio
async def test_late_confirmation_does_not_revive_a_canceled_booking(session_factory) -> None:
    first = await _book(session_factory, _request(9, 12, checkout_session_id="cs_first"))
    async with session_factory() as session:
        await bookings_service.cancel_booking(first.booking.id, "driver-1", session)
    second = await _book(session_factory, _request(9, 12, checkout_session_id="cs_second"), driver_id="driver-2")

    async with session_factory() as session:
        late = await bookings_service.update_checkout_status(
            booking_schemas.CheckoutStatusRequest(checkout_session_id="cs_first", status="confirmed"), session
        )
    assert late.updated is False

    async with session_factory() as session:
        first_mine = await bookings_service.list_my_bookings("driver-1", session)
        second_mine = await bookings_service.list_my_bookings("driver-2", session)
    assert first_mine.bookings[0].status is BookingStatus.CANCELED
    assert second_mine.bookings[0].id == second.booking.id
    assert second_mine.bookings[0].status is BookingStatus.PENDING

    async with session_factory() as session:
        confirmed = await bookings_service.update_checkout_status(
            booking_schemas.CheckoutStatusRequest(checkout_session_id="cs_second", status="confirmed"), session
        )
    assert confirmed.updated is True
