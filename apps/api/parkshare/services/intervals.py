"""Half-open time intervals shared by bookings and availability rules."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable


class InvalidIntervalError(ValueError):
    """Raised when an interval does not start strictly before it ends."""


def ensure_utc(value: datetime) -> datetime:
    """Ensure the datetime is timezone-aware in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class Interval:
    """``[start, end)``: start inclusive, end exclusive, always UTC."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = ensure_utc(self.start)
        end = ensure_utc(self.end)
        if start >= end:
            raise InvalidIntervalError(f"Interval start {start.isoformat()} must be before end {end.isoformat()}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open intersection test; touching endpoints do not overlap."""

    return a_start < b_end and b_start < a_end


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Union of intervals as a sorted list of disjoint intervals.

    Intervals that touch (``a.end == b.start``) are joined, so consecutive
    open windows cover the instant between them.
    """

    merged: list[Interval] = []
    for item in sorted(intervals, key=lambda iv: (iv.start, iv.end)):
        if merged and item.start <= merged[-1].end:
            last = merged[-1]
            if item.end > last.end:
                merged[-1] = Interval(last.start, item.end)
            continue
        merged.append(item)
    return merged


def covers(intervals: Iterable[Interval], target: Interval) -> bool:
    """Return True if the union of ``intervals`` contains ``target`` entirely."""

    return any(block.contains(target) for block in merge(intervals))
