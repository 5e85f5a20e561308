"""Listing search and detail endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..schemas import listings as listings_schema
from ..schemas.common import TimeWindow
from ..services import listings as listings_service

router = APIRouter()


@router.get("/search", response_model=listings_schema.SearchListingsResponse)
async def search_listings(
    params: Annotated[listings_schema.SearchListingsParams, Query()],
    session: AsyncSession = Depends(get_session),
) -> listings_schema.SearchListingsResponse:
    """Return listings near a point for a time window."""

    return await listings_service.search_listings(params, session)


@router.get("/{listing_id}", response_model=listings_schema.ListingDetailResponse)
async def get_listing(
    listing_id: str,
    from_: datetime | None = Query(default=None, alias="from"),
    to: datetime | None = None,
    session: AsyncSession = Depends(get_session),
) -> listings_schema.ListingDetailResponse:
    """Return a listing, with availability when both bounds are given."""

    window: TimeWindow | None = None
    if from_ is not None or to is not None:
        if from_ is None or to is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Both from and to are required"
            )
        try:
            window = TimeWindow(from_=from_, to=to)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="End time must be after start time"
            ) from exc

    return await listings_service.get_listing_detail(listing_id, session, window)
