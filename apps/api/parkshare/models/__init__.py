"""Expose ORM models."""
from .availability_rule import AvailabilityRule, RuleKind
from .booking import Booking, BookingStatus
from .listing import Listing, ListingStatus

__all__ = [
    "AvailabilityRule",
    "Booking",
    "BookingStatus",
    "Listing",
    "ListingStatus",
    "RuleKind",
]
