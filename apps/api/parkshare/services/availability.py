"""Availability resolution for listings over half-open time windows.

Precedence for a single listing and window:

1. any non-canceled booking overlapping the window makes it unavailable,
   before rules are looked at;
2. any ``blocked`` occurrence overlapping the window makes it unavailable;
3. when the listing has at least one ``open`` rule it is closed by default and
   the window has to be admitted by the open occurrences;
4. otherwise the listing is available.

Everything here is pure: callers load bookings and rules first.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Iterable, Literal, Mapping, Protocol, Sequence, TypeVar

from .intervals import Interval, covers, overlaps
from .recurrence import RuleSpec, expand_rules

OpenRuleMode = Literal["contained", "intersects"]

CANCELED_STATUS = "canceled"
OPEN_KIND = "open"
BLOCKED_KIND = "blocked"


class UnavailableReason(str, enum.Enum):
    BOOKING_CONFLICT = "booking_conflict"
    BLOCKED = "blocked"
    OUTSIDE_OPEN_HOURS = "outside_open_hours"
    LISTING_ARCHIVED = "listing_archived"


class SearchMode(str, enum.Enum):
    FILTER = "filter"
    ANNOTATE = "annotate"


@dataclass(frozen=True, slots=True)
class BookingSpan:
    """Booking window as seen by the resolver."""

    start: datetime
    end: datetime
    status: str | None = None
    booking_id: str | None = None

    @property
    def blocks(self) -> bool:
        # Legacy rows without a status count as held.
        return self.status != CANCELED_STATUS


@dataclass(slots=True)
class ListingAvailability:
    """Bookings and rules recorded for one listing."""

    listing_id: str
    bookings: Sequence[BookingSpan] = field(default_factory=list)
    rules: Sequence[RuleSpec] = field(default_factory=list)

    @property
    def open_rules(self) -> list[RuleSpec]:
        return [rule for rule in self.rules if rule.kind == OPEN_KIND]

    @property
    def blocked_rules(self) -> list[RuleSpec]:
        return [rule for rule in self.rules if rule.kind == BLOCKED_KIND]


@dataclass(frozen=True, slots=True)
class Verdict:
    available: bool
    reason: UnavailableReason | None = None

    def __bool__(self) -> bool:
        return self.available


AVAILABLE = Verdict(available=True)


def has_booking_conflict(
    bookings: Iterable[BookingSpan],
    window: Interval,
    *,
    exclude_booking_id: str | None = None,
) -> bool:
    """Return True if a non-canceled booking overlaps the window."""

    for booking in bookings:
        if exclude_booking_id is not None and booking.booking_id == exclude_booking_id:
            continue
        if booking.blocks and overlaps(booking.start, booking.end, window.start, window.end):
            return True
    return False


def resolve(
    listing: ListingAvailability,
    window: Interval,
    *,
    open_rule_mode: OpenRuleMode = "contained",
    exclude_booking_id: str | None = None,
) -> Verdict:
    """Decide whether ``listing`` can be booked for ``window``.

    ``exclude_booking_id`` ignores one booking, used when a booking is moved or
    extended and must not conflict with itself.
    """

    if has_booking_conflict(listing.bookings, window, exclude_booking_id=exclude_booking_id):
        return Verdict(available=False, reason=UnavailableReason.BOOKING_CONFLICT)

    blocked = expand_rules(listing.blocked_rules, window)
    if any(occurrence.overlaps(window) for occurrence in blocked):
        return Verdict(available=False, reason=UnavailableReason.BLOCKED)

    open_rules = listing.open_rules
    if open_rules:
        opened = expand_rules(open_rules, window)
        if open_rule_mode == "intersects":
            admitted = any(occurrence.overlaps(window) for occurrence in opened)
        else:
            admitted = covers(opened, window)
        if not admitted:
            return Verdict(available=False, reason=UnavailableReason.OUTSIDE_OPEN_HOURS)

    return AVAILABLE


def is_available(
    listing: ListingAvailability,
    window: Interval,
    *,
    open_rule_mode: OpenRuleMode = "contained",
) -> bool:
    return resolve(listing, window, open_rule_mode=open_rule_mode).available


class HasListingId(Protocol):
    listing_id: str


CandidateT = TypeVar("CandidateT", bound=HasListingId)


@dataclass(frozen=True)
class AnnotatedCandidate(Generic[CandidateT]):
    candidate: CandidateT
    is_available: bool


def filter_candidates(
    candidates: Sequence[CandidateT],
    availability: Mapping[str, ListingAvailability],
    window: Interval,
    *,
    mode: SearchMode = SearchMode.FILTER,
    limit: int = 200,
    open_rule_mode: OpenRuleMode = "contained",
) -> list[AnnotatedCandidate[CandidateT]]:
    """Filter or annotate distance-ordered candidates without reordering them.

    In filter mode the cap is applied after availability, so up to ``limit``
    bookable listings come back. In annotate mode the nearest ``limit``
    candidates are kept first and each one is flagged, unavailable ones
    included.
    """

    def _check(candidate: CandidateT) -> bool:
        data = availability.get(candidate.listing_id) or ListingAvailability(listing_id=candidate.listing_id)
        return is_available(data, window, open_rule_mode=open_rule_mode)

    if SearchMode(mode) is SearchMode.ANNOTATE:
        return [AnnotatedCandidate(candidate, _check(candidate)) for candidate in candidates[:limit]]

    results: list[AnnotatedCandidate[CandidateT]] = []
    for candidate in candidates:
        if len(results) >= limit:
            break
        if _check(candidate):
            results.append(AnnotatedCandidate(candidate, True))
    return results
