"""Schemas for listing search and detail."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from ..core.config import settings
from ..services.availability import SearchMode, UnavailableReason
from .common import TimeWindow


class SearchListingsParams(TimeWindow):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(default=settings.search_default_radius_km, gt=0, le=settings.search_max_radius_km)
    mode: SearchMode = SearchMode.FILTER
    price_min: int | None = Field(default=None, ge=0)
    price_max: int | None = Field(default=None, ge=0)
    amenities: list[str] = Field(default_factory=list)
    q: str | None = Field(default=None, max_length=100)
    limit: int = Field(default=settings.search_result_cap, ge=1, le=settings.search_result_cap)

    @model_validator(mode="after")
    def _check_price_range(self) -> "SearchListingsParams":
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            raise ValueError("price_min must not exceed price_max")
        return self


class ListingCard(BaseModel):
    id: str
    title: str
    address: str
    latitude: float
    longitude: float
    price_per_day: int
    rating: float | None = None
    rating_count: int = 0
    availability_text: str | None = None
    amenities: list[str] = Field(default_factory=list)
    image_urls: list[str] = Field(default_factory=list)
    distance_km: float | None = None
    is_available: bool | None = None


class SearchListingsResponse(BaseModel):
    mode: SearchMode
    results: list[ListingCard]


class ListingDetail(ListingCard):
    host_id: str
    status: str


class ListingDetailResponse(BaseModel):
    listing: ListingDetail
    window_start: datetime | None = None
    window_end: datetime | None = None
    unavailable_reason: UnavailableReason | None = None
