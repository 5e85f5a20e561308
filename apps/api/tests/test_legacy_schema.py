"""Reduced-feature behaviour on a database that has not been migrated."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from parkshare.db.capabilities import detect_capabilities
from parkshare.models import BookingStatus
from parkshare.schemas import bookings as booking_schemas
from parkshare.schemas import listings as listing_schemas
from parkshare.services import bookings as bookings_service
from parkshare.services import listings as listings_service
from parkshare.services.availability import SearchMode


def _at(hour: int) -> datetime:
    return datetime(2024, 1, 1, hour, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def legacy_factory(tmp_path, legacy_ddl):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'legacy.db'}")
    async with engine.begin() as conn:
        for statement in legacy_ddl:
            await conn.execute(text(statement))
        await conn.execute(
            text(
                "INSERT INTO listings (id, host_id, title, address, latitude, longitude, price_per_day, "
                "amenities, status) VALUES ('lst-old', 'host-1', 'Old garage', '5 Dock Street', "
                "52.37, 4.89, 8, '[]', 'active')"
            )
        )
    await detect_capabilities(engine)

    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


async def _book(factory, start: int, end: int, driver_id: str = "driver-1"):
    payload = booking_schemas.CreateBookingRequest(listing_id="lst-old", from_=_at(start), to=_at(end))
    async with factory() as session:
        return await bookings_service.create_booking(payload, driver_id, session)


@pytest.mark.asyncio
async def test_booking_on_legacy_schema_counts_as_confirmed(legacy_factory) -> None:
    created = await _book(legacy_factory, 9, 10)

    assert created.booking.status is BookingStatus.CONFIRMED
    assert created.booking.checkout_session_id is None

    await _book(legacy_factory, 10, 11, driver_id="driver-2")
    with pytest.raises(HTTPException) as exc:
        await _book(legacy_factory, 9, 11, driver_id="driver-3")
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_search_and_detail_degrade_without_new_columns(legacy_factory) -> None:
    await _book(legacy_factory, 9, 12)

    params = listing_schemas.SearchListingsParams(
        from_=_at(10), to=_at(11), lat=52.37, lng=4.89, mode=SearchMode.ANNOTATE
    )
    async with legacy_factory() as session:
        search = await listings_service.search_listings(params, session)
        detail = await listings_service.get_listing_detail("lst-old", session)

    assert [(item.id, item.is_available) for item in search.results] == [("lst-old", False)]
    assert search.results[0].image_urls == []
    assert detail.listing.rating_count == 0


@pytest.mark.asyncio
async def test_status_changes_need_migrated_bookings(legacy_factory) -> None:
    created = await _book(legacy_factory, 9, 10)

    async with legacy_factory() as session:
        with pytest.raises(HTTPException) as exc:
            await bookings_service.cancel_booking(created.booking.id, "driver-1", session)
    assert exc.value.status_code == 400

    async with legacy_factory() as session:
        result = await bookings_service.update_checkout_status(
            booking_schemas.CheckoutStatusRequest(checkout_session_id="cs_1", status="confirmed"), session
        )
    assert result.updated is False
