"""Booking persistence helpers."""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import column, insert, select, table, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.capabilities import SchemaCapabilities
from ..models.base import new_id, utcnow
from ..models.booking import Booking, BookingStatus
from ..models.listing import Listing
from ..services.availability import BookingSpan
from ..services.intervals import Interval, ensure_utc

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BookingRecord:
    """Booking row flattened for the service layer."""

    booking_id: str
    listing_id: str
    driver_id: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    amount_cents: int
    currency: str
    vehicle_plate: str | None = None
    checkout_session_id: str | None = None
    listing_title: str | None = None
    listing_address: str | None = None
    price_per_day: int | None = None


def _booking_columns(capabilities: SchemaCapabilities) -> list[Any]:
    columns: list[Any] = [
        Booking.id,
        Booking.listing_id,
        Booking.driver_id,
        Booking.start_time,
        Booking.end_time,
        Booking.amount_cents,
        Booking.currency,
        Booking.vehicle_plate,
    ]
    if capabilities.booking_status:
        columns.append(Booking.status)
    if capabilities.booking_checkout_session:
        columns.append(Booking.checkout_session_id)
    return columns


def _to_record(row: Mapping[str, Any]) -> BookingRecord:
    return BookingRecord(
        booking_id=row["id"],
        listing_id=row["listing_id"],
        driver_id=row["driver_id"],
        start_time=ensure_utc(row["start_time"]),
        end_time=ensure_utc(row["end_time"]),
        # Without a status column every booking is treated as confirmed.
        status=row.get("status") or BookingStatus.CONFIRMED,
        amount_cents=row["amount_cents"] or 0,
        currency=row["currency"],
        vehicle_plate=row["vehicle_plate"],
        checkout_session_id=row.get("checkout_session_id"),
        listing_title=row.get("title"),
        listing_address=row.get("address"),
        price_per_day=row.get("price_per_day"),
    )


async def list_blocking_bookings(
    session: AsyncSession,
    *,
    listing_ids: Sequence[str],
    window: Interval,
    capabilities: SchemaCapabilities,
) -> dict[str, list[BookingSpan]]:
    """Return non-canceled bookings overlapping the window, grouped by listing."""

    if not listing_ids:
        return {}

    columns: list[Any] = [Booking.id, Booking.listing_id, Booking.start_time, Booking.end_time]
    stmt = select(*columns).where(
        Booking.listing_id.in_(list(listing_ids)),
        Booking.start_time < window.end,
        Booking.end_time > window.start,
    )
    if capabilities.booking_status:
        stmt = stmt.add_columns(Booking.status).where(Booking.status != BookingStatus.CANCELED)

    grouped: dict[str, list[BookingSpan]] = defaultdict(list)
    for row in (await session.execute(stmt)).mappings():
        status = row.get("status") or BookingStatus.CONFIRMED
        grouped[row["listing_id"]].append(
            BookingSpan(
                start=ensure_utc(row["start_time"]),
                end=ensure_utc(row["end_time"]),
                status=BookingStatus(status).value,
                booking_id=row["id"],
            )
        )
    return dict(grouped)


async def create_booking(
    session: AsyncSession,
    *,
    listing_id: str,
    driver_id: str,
    window: Interval,
    amount_cents: int,
    currency: str,
    capabilities: SchemaCapabilities,
    vehicle_plate: str | None = None,
    checkout_session_id: str | None = None,
) -> BookingRecord:
    """Persist a new pending booking and return it."""

    booking_id = new_id()
    values: dict[str, Any] = {
        "id": booking_id,
        "listing_id": listing_id,
        "driver_id": driver_id,
        "start_time": window.start,
        "end_time": window.end,
        "amount_cents": amount_cents,
        "currency": currency,
        "vehicle_plate": vehicle_plate,
        "created_at": utcnow(),
    }

    if capabilities.booking_status and capabilities.booking_checkout_session:
        booking = Booking(status=BookingStatus.PENDING, checkout_session_id=checkout_session_id, **values)
        session.add(booking)
        await session.flush()
        status = BookingStatus.PENDING
    else:
        logger.warning(
            "bookings table missing %s; inserting with legacy columns",
            ", ".join(name for name in capabilities.missing if name.startswith("booking_")),
        )
        status = BookingStatus.CONFIRMED
        if capabilities.booking_status:
            values["status"] = BookingStatus.PENDING
            status = BookingStatus.PENDING
        if capabilities.booking_checkout_session:
            values["checkout_session_id"] = checkout_session_id
        else:
            checkout_session_id = None
        legacy = table("bookings", *(column(name, Booking.__table__.c[name].type) for name in values))
        await session.execute(insert(legacy).values(**values))

    return BookingRecord(
        booking_id=booking_id,
        listing_id=listing_id,
        driver_id=driver_id,
        start_time=window.start,
        end_time=window.end,
        status=status,
        amount_cents=amount_cents,
        currency=currency,
        vehicle_plate=vehicle_plate,
        checkout_session_id=checkout_session_id,
    )


async def get_booking_for_driver(
    session: AsyncSession,
    *,
    booking_id: str,
    driver_id: str,
    capabilities: SchemaCapabilities,
    for_update: bool = False,
) -> BookingRecord | None:
    """Return a booking owned by the driver, with the listing price."""

    stmt = (
        select(*_booking_columns(capabilities), Listing.price_per_day)
        .join(Listing, Listing.id == Booking.listing_id)
        .where(Booking.id == booking_id, Booking.driver_id == driver_id)
    )
    if for_update:
        stmt = stmt.with_for_update(of=Booking)
    row = (await session.execute(stmt)).mappings().first()
    if row is None:
        return None
    return _to_record(row)


async def list_driver_bookings(
    session: AsyncSession,
    *,
    driver_id: str,
    capabilities: SchemaCapabilities,
    limit: int = 50,
) -> list[BookingRecord]:
    """Return the driver's bookings, most recent start first."""

    stmt = (
        select(*_booking_columns(capabilities), Listing.title, Listing.address)
        .join(Listing, Listing.id == Booking.listing_id)
        .where(Booking.driver_id == driver_id)
        .order_by(Booking.start_time.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [_to_record(row) for row in result.mappings()]


async def set_status(session: AsyncSession, *, booking_id: str, status: BookingStatus) -> None:
    stmt = update(Booking).where(Booking.id == booking_id).values(status=status)
    await session.execute(stmt)


async def set_status_by_checkout_session(
    session: AsyncSession,
    *,
    checkout_session_id: str,
    status: BookingStatus,
    capabilities: SchemaCapabilities,
) -> bool:
    """Update the status of the booking created for a checkout session.

    Only pending bookings move; a canceled booking may already have lost its
    window to another driver. Returns False when no pending booking matched or
    the schema cannot record it.
    """

    if not (capabilities.booking_status and capabilities.booking_checkout_session):
        logger.warning("bookings table missing status/checkout_session_id columns; status update skipped")
        return False

    stmt = (
        update(Booking)
        .where(
            Booking.checkout_session_id == checkout_session_id,
            Booking.status == BookingStatus.PENDING,
        )
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return bool(result.rowcount)


async def set_window_end(
    session: AsyncSession,
    *,
    booking_id: str,
    end_time: datetime,
    amount_cents: int,
) -> None:
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id)
        .values(end_time=end_time, amount_cents=amount_cents)
        .execution_options(synchronize_session=False)
    )
    await session.execute(stmt)
