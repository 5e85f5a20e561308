"""Data access helpers for parking listings."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from geopy.distance import geodesic
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.capabilities import SchemaCapabilities
from ..models.listing import Listing, ListingStatus

KM_PER_DEGREE_LAT = 111.32


@dataclass(slots=True)
class ListingRow:
    """Flattened listing details used by the service layer."""

    listing_id: str
    host_id: str
    title: str
    address: str
    latitude: float
    longitude: float
    price_per_day: int
    status: ListingStatus
    availability_text: str | None = None
    amenities: list[str] = field(default_factory=list)
    image_urls: list[str] = field(default_factory=list)
    rating: float | None = None
    rating_count: int = 0
    distance_km: float | None = None


class ListingFiltersProtocol:
    """Protocol-like duck-type to avoid pydantic dependency at repo layer."""

    price_min: int | None
    price_max: int | None
    amenities: list[str]
    q: str | None


def _listing_columns(capabilities: SchemaCapabilities) -> list[Any]:
    columns: list[Any] = [
        Listing.id,
        Listing.host_id,
        Listing.title,
        Listing.address,
        Listing.latitude,
        Listing.longitude,
        Listing.price_per_day,
        Listing.status,
        Listing.availability_text,
        Listing.amenities,
        Listing.rating,
    ]
    if capabilities.listing_image_urls:
        columns.append(Listing.image_urls)
    if capabilities.listing_rating_count:
        columns.append(Listing.rating_count)
    return columns


def _to_row(row: Mapping[str, Any], distance_km: float | None = None) -> ListingRow:
    return ListingRow(
        listing_id=row["id"],
        host_id=row["host_id"],
        title=row["title"],
        address=row["address"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        price_per_day=row["price_per_day"],
        status=row["status"],
        availability_text=row["availability_text"],
        amenities=list(row["amenities"] or []),
        image_urls=list(row.get("image_urls") or []),
        rating=row["rating"],
        rating_count=int(row.get("rating_count") or 0),
        distance_km=distance_km,
    )


async def find_candidates(
    session: AsyncSession,
    *,
    lat: float,
    lng: float,
    radius_km: float,
    filters: ListingFiltersProtocol,
    capabilities: SchemaCapabilities,
) -> list[ListingRow]:
    """Return non-archived listings within ``radius_km`` ordered by distance.

    A bounding box narrows the rows in SQL; the exact geodesic distance is
    computed afterwards so the query runs on any backend.
    """

    lat_delta = radius_km / KM_PER_DEGREE_LAT
    stmt = select(*_listing_columns(capabilities)).where(
        Listing.status != ListingStatus.ARCHIVED,
        Listing.latitude.between(lat - lat_delta, lat + lat_delta),
    )

    cos_lat = math.cos(math.radians(lat))
    if cos_lat > 0.01:
        lng_delta = radius_km / (KM_PER_DEGREE_LAT * cos_lat)
        if lng_delta < 180:
            stmt = stmt.where(Listing.longitude.between(lng - lng_delta, lng + lng_delta))

    if filters.price_min is not None:
        stmt = stmt.where(Listing.price_per_day >= filters.price_min)
    if filters.price_max is not None:
        stmt = stmt.where(Listing.price_per_day <= filters.price_max)
    if filters.q:
        pattern = f"%{filters.q.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Listing.title).like(pattern),
                func.lower(Listing.address).like(pattern),
            )
        )

    rows = (await session.execute(stmt)).mappings().all()

    required = {item.lower() for item in filters.amenities or []}
    candidates: list[ListingRow] = []
    for row in rows:
        if required and not required.issubset({str(item).lower() for item in row["amenities"] or []}):
            continue
        distance = geodesic((lat, lng), (row["latitude"], row["longitude"])).km
        if distance > radius_km:
            continue
        candidates.append(_to_row(row, distance_km=round(distance, 3)))

    candidates.sort(key=lambda item: (item.distance_km, item.listing_id))
    return candidates


async def get_listing(
    session: AsyncSession,
    listing_id: str,
    *,
    capabilities: SchemaCapabilities,
) -> ListingRow | None:
    """Fetch one listing by identifier, archived ones included."""

    stmt = select(*_listing_columns(capabilities)).where(Listing.id == listing_id)
    row = (await session.execute(stmt)).mappings().first()
    if row is None:
        return None
    return _to_row(row)


async def lock_listing(session: AsyncSession, listing_id: str) -> ListingRow | None:
    """Lock the listing row for the rest of the transaction and return it.

    Concurrent booking attempts for the same listing queue up on this lock on
    PostgreSQL; other backends ignore ``FOR UPDATE``.
    """

    stmt = (
        select(*_listing_columns(SchemaCapabilities(listing_image_urls=False, listing_rating_count=False)))
        .where(Listing.id == listing_id)
        .with_for_update()
    )
    row = (await session.execute(stmt)).mappings().first()
    if row is None:
        return None
    return _to_row(row)


async def get_host_id(session: AsyncSession, listing_id: str) -> str | None:
    """Return the owning host for a listing."""

    stmt = select(Listing.host_id).where(Listing.id == listing_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
