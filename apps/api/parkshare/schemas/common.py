"""Shared schema pieces."""
from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.config import settings
from ..services.intervals import Interval, ensure_utc


class TimeWindow(BaseModel):
    """Half-open ``[from, to)`` window; naive timestamps are read as UTC."""

    model_config = ConfigDict(populate_by_name=True)

    from_: datetime = Field(alias="from")
    to: datetime

    @field_validator("from_", "to")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.to <= self.from_:
            raise ValueError("End time must be after start time")
        # Rule expansion walks the window day by day.
        if self.to - self.from_ > timedelta(days=settings.max_query_window_days):
            raise ValueError(f"Time window cannot exceed {settings.max_query_window_days} days")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(self.from_, self.to)
