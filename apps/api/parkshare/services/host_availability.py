"""Host management of listing availability rules."""
from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.capabilities import get_capabilities
from ..repositories import availability_rules as rules_repo
from ..repositories import listings as listings_repo
from ..schemas import availability as schemas
from .intervals import ensure_utc


async def list_rules(
    listing_id: str,
    host_id: str,
    session: AsyncSession,
) -> schemas.AvailabilityRuleListResponse:
    """Return the rules of a listing the host owns."""

    _require_rules_table()
    await _require_owner(session, listing_id=listing_id, host_id=host_id)
    rules = await rules_repo.list_for_listing(session, listing_id)
    return schemas.AvailabilityRuleListResponse(
        availability=[schemas.AvailabilityRuleOut.model_validate(rule) for rule in rules]
    )


async def create_rule(
    listing_id: str,
    payload: schemas.AvailabilityRuleCreate,
    host_id: str,
    session: AsyncSession,
) -> schemas.AvailabilityRuleResponse:
    """Add an open or blocked rule to one of the host's listings."""

    _require_rules_table()
    async with session.begin():
        await _require_owner(session, listing_id=listing_id, host_id=host_id)
        rule = await rules_repo.create_rule(
            session,
            listing_id=listing_id,
            kind=payload.kind,
            starts_at=payload.starts_at,
            ends_at=payload.ends_at,
            repeat_weekdays=payload.repeat_weekdays,
            repeat_until=payload.repeat_until,
        )
    return schemas.AvailabilityRuleResponse(availability=schemas.AvailabilityRuleOut.model_validate(rule))


async def update_rule(
    rule_id: str,
    payload: schemas.AvailabilityRuleUpdate,
    host_id: str,
    session: AsyncSession,
) -> schemas.AvailabilityRuleResponse:
    """Apply a partial update to a rule on one of the host's listings."""

    _require_rules_table()
    provided = payload.model_fields_set

    async with session.begin():
        rule = await rules_repo.get_owned(session, rule_id=rule_id, host_id=host_id)
        if rule is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

        if payload.kind is not None:
            rule.kind = payload.kind
        if payload.starts_at is not None:
            rule.starts_at = payload.starts_at
        if payload.ends_at is not None:
            rule.ends_at = payload.ends_at
        if "repeat_weekdays" in provided:
            rule.repeat_weekdays = payload.repeat_weekdays
        if "repeat_until" in provided:
            rule.repeat_until = payload.repeat_until

        # One bound may have changed on its own; check the stored pair.
        if ensure_utc(rule.ends_at) <= ensure_utc(rule.starts_at):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="End time must be after start time"
            )
        session.add(rule)

    return schemas.AvailabilityRuleResponse(availability=schemas.AvailabilityRuleOut.model_validate(rule))


async def delete_rule(rule_id: str, host_id: str, session: AsyncSession) -> None:
    """Remove a rule from one of the host's listings."""

    _require_rules_table()
    async with session.begin():
        rule = await rules_repo.get_owned(session, rule_id=rule_id, host_id=host_id)
        if rule is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
        await session.delete(rule)


async def _require_owner(session: AsyncSession, *, listing_id: str, host_id: str) -> None:
    owner_id = await listings_repo.get_host_id(session, listing_id)
    if owner_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")
    if owner_id != host_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def _require_rules_table() -> None:
    if not get_capabilities().availability_rules:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Availability rules are not supported until the database is migrated",
        )
