"""Availability rule repository helpers."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.capabilities import SchemaCapabilities
from ..models.availability_rule import AvailabilityRule, RuleKind
from ..models.listing import Listing
from ..services.intervals import InvalidIntervalError
from ..services.recurrence import RuleSpec

logger = logging.getLogger(__name__)


def to_spec(rule: AvailabilityRule) -> RuleSpec:
    return RuleSpec.build(
        kind=rule.kind,
        starts_at=rule.starts_at,
        ends_at=rule.ends_at,
        repeat_weekdays=rule.repeat_weekdays,
        repeat_until=rule.repeat_until,
    )


async def list_specs_for_listings(
    session: AsyncSession,
    *,
    listing_ids: Sequence[str],
    capabilities: SchemaCapabilities,
) -> dict[str, list[RuleSpec]]:
    """Return every rule of the listings as resolver specs, grouped by listing.

    All rules are loaded, not only the ones near the query window, because the
    mere presence of an open rule changes the listing's default state.
    """

    if not listing_ids or not capabilities.availability_rules:
        return {}

    stmt = select(AvailabilityRule).where(AvailabilityRule.listing_id.in_(list(listing_ids)))
    result = await session.execute(stmt)

    grouped: dict[str, list[RuleSpec]] = defaultdict(list)
    for rule in result.scalars():
        try:
            grouped[rule.listing_id].append(to_spec(rule))
        except InvalidIntervalError:
            logger.warning("Ignoring availability rule %s with an empty window", rule.id)
    return dict(grouped)


async def list_for_listing(session: AsyncSession, listing_id: str) -> list[AvailabilityRule]:
    """Return the listing's rules ordered by start."""

    stmt = (
        select(AvailabilityRule)
        .where(AvailabilityRule.listing_id == listing_id)
        .order_by(AvailabilityRule.starts_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_owned(session: AsyncSession, *, rule_id: str, host_id: str) -> AvailabilityRule | None:
    """Return a rule only if it belongs to a listing owned by the host."""

    stmt = (
        select(AvailabilityRule)
        .join(Listing, Listing.id == AvailabilityRule.listing_id)
        .where(AvailabilityRule.id == rule_id, Listing.host_id == host_id)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_rule(
    session: AsyncSession,
    *,
    listing_id: str,
    kind: RuleKind,
    starts_at: datetime,
    ends_at: datetime,
    repeat_weekdays: list[int] | None = None,
    repeat_until: date | None = None,
) -> AvailabilityRule:
    """Persist a new availability rule."""

    rule = AvailabilityRule(
        listing_id=listing_id,
        kind=kind,
        starts_at=starts_at,
        ends_at=ends_at,
        repeat_weekdays=repeat_weekdays or None,
        repeat_until=repeat_until,
    )
    session.add(rule)
    await session.flush()
    return rule
