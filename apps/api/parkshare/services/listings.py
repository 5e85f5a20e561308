"""Listing search and detail with availability for a time window."""
from __future__ import annotations

from typing import Sequence

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..db.capabilities import SchemaCapabilities, get_capabilities
from ..models.listing import ListingStatus
from ..repositories import availability_rules as rules_repo
from ..repositories import bookings as bookings_repo
from ..repositories import listings as listings_repo
from ..schemas import listings as schemas
from ..schemas.common import TimeWindow
from .availability import ListingAvailability, SearchMode, UnavailableReason, filter_candidates, resolve
from .intervals import Interval


async def load_availability(
    session: AsyncSession,
    *,
    listing_ids: Sequence[str],
    window: Interval,
    capabilities: SchemaCapabilities,
) -> dict[str, ListingAvailability]:
    """Fetch bookings and rules for the listings in two queries."""

    bookings = await bookings_repo.list_blocking_bookings(
        session, listing_ids=listing_ids, window=window, capabilities=capabilities
    )
    rules = await rules_repo.list_specs_for_listings(
        session, listing_ids=listing_ids, capabilities=capabilities
    )
    return {
        listing_id: ListingAvailability(
            listing_id=listing_id,
            bookings=bookings.get(listing_id, []),
            rules=rules.get(listing_id, []),
        )
        for listing_id in listing_ids
    }


async def search_listings(
    params: schemas.SearchListingsParams,
    session: AsyncSession,
) -> schemas.SearchListingsResponse:
    """Return listings near the point, filtered or annotated by availability.

    Results keep the distance order of the candidate query. Filter mode caps
    after dropping unavailable listings; annotate mode caps first.
    """

    capabilities = get_capabilities()
    window = params.interval

    candidates = await listings_repo.find_candidates(
        session,
        lat=params.lat,
        lng=params.lng,
        radius_km=params.radius_km,
        filters=params,
        capabilities=capabilities,
    )
    if params.mode is SearchMode.ANNOTATE:
        candidates = candidates[: params.limit]

    availability = await load_availability(
        session,
        listing_ids=[row.listing_id for row in candidates],
        window=window,
        capabilities=capabilities,
    )
    annotated = filter_candidates(
        candidates,
        availability,
        window,
        mode=params.mode,
        limit=params.limit,
        open_rule_mode=settings.open_rule_mode,
    )

    results = [_to_card(item.candidate, is_available=item.is_available) for item in annotated]
    return schemas.SearchListingsResponse(mode=params.mode, results=results)


async def get_listing_detail(
    listing_id: str,
    session: AsyncSession,
    window: TimeWindow | None = None,
) -> schemas.ListingDetailResponse:
    """Return listing detail, with a verdict when a window is supplied."""

    capabilities = get_capabilities()
    row = await listings_repo.get_listing(session, listing_id, capabilities=capabilities)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")

    detail = schemas.ListingDetail(
        **_to_card(row).model_dump(),
        host_id=row.host_id,
        status=ListingStatus(row.status).value,
    )
    if window is None:
        return schemas.ListingDetailResponse(listing=detail)

    interval = window.interval
    if row.status == ListingStatus.ARCHIVED:
        reason: UnavailableReason | None = UnavailableReason.LISTING_ARCHIVED
        detail.is_available = False
    else:
        availability = await load_availability(
            session, listing_ids=[listing_id], window=interval, capabilities=capabilities
        )
        verdict = resolve(availability[listing_id], interval, open_rule_mode=settings.open_rule_mode)
        detail.is_available = verdict.available
        reason = verdict.reason

    return schemas.ListingDetailResponse(
        listing=detail,
        window_start=interval.start,
        window_end=interval.end,
        unavailable_reason=reason,
    )


def _to_card(row: listings_repo.ListingRow, *, is_available: bool | None = None) -> schemas.ListingCard:
    return schemas.ListingCard(
        id=row.listing_id,
        title=row.title,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        price_per_day=row.price_per_day,
        rating=row.rating,
        rating_count=row.rating_count,
        availability_text=row.availability_text,
        amenities=row.amenities,
        image_urls=row.image_urls,
        distance_km=round(row.distance_km, 1) if row.distance_km is not None else None,
        is_available=is_available,
    )
