"""Schemas for host availability rule management."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.availability_rule import RuleKind
from ..services.intervals import ensure_utc

Weekday = int


def _normalise_weekdays(value: list[int] | None) -> list[int] | None:
    if value is None:
        return None
    for day in value:
        if not 0 <= day <= 6:
            raise ValueError("Weekdays must be between 0 (Sunday) and 6 (Saturday)")
    # An empty set means the rule does not repeat.
    return sorted(set(value)) or None


class AvailabilityRuleCreate(BaseModel):
    kind: RuleKind
    starts_at: datetime
    ends_at: datetime
    repeat_weekdays: list[Weekday] | None = None
    repeat_until: date | None = None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("repeat_weekdays")
    @classmethod
    def _weekdays(cls, value: list[int] | None) -> list[int] | None:
        return _normalise_weekdays(value)

    @model_validator(mode="after")
    def _check_order(self) -> "AvailabilityRuleCreate":
        if self.ends_at <= self.starts_at:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityRuleUpdate(BaseModel):
    """Partial update; fields left out are kept, explicit nulls clear them."""

    kind: RuleKind | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    repeat_weekdays: list[Weekday] | None = None
    repeat_until: date | None = None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @field_validator("repeat_weekdays")
    @classmethod
    def _weekdays(cls, value: list[int] | None) -> list[int] | None:
        return _normalise_weekdays(value)

    @model_validator(mode="after")
    def _check_order(self) -> "AvailabilityRuleUpdate":
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    listing_id: str
    kind: RuleKind
    starts_at: datetime
    ends_at: datetime
    repeat_weekdays: list[int] = Field(default_factory=list)
    repeat_until: date | None = None
    created_at: datetime | None = None

    @field_validator("repeat_weekdays", mode="before")
    @classmethod
    def _null_weekdays(cls, value: object) -> object:
        return value or []

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class AvailabilityRuleResponse(BaseModel):
    availability: AvailabilityRuleOut


class AvailabilityRuleListResponse(BaseModel):
    availability: list[AvailabilityRuleOut]
