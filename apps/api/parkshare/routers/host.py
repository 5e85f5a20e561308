"""Host endpoints for managing listing availability rules."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..schemas import availability as availability_schema
from ..services import host_availability as host_service
from .deps import get_current_user_id

router = APIRouter()


@router.get(
    "/listings/{listing_id}/availability",
    response_model=availability_schema.AvailabilityRuleListResponse,
)
async def list_availability(
    listing_id: str,
    host_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> availability_schema.AvailabilityRuleListResponse:
    return await host_service.list_rules(listing_id, host_id, session)


@router.post(
    "/listings/{listing_id}/availability",
    response_model=availability_schema.AvailabilityRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_availability(
    listing_id: str,
    payload: availability_schema.AvailabilityRuleCreate,
    host_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> availability_schema.AvailabilityRuleResponse:
    return await host_service.create_rule(listing_id, payload, host_id, session)


@router.patch("/availability/{rule_id}", response_model=availability_schema.AvailabilityRuleResponse)
async def update_availability(
    rule_id: str,
    payload: availability_schema.AvailabilityRuleUpdate,
    host_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> availability_schema.AvailabilityRuleResponse:
    return await host_service.update_rule(rule_id, payload, host_id, session)


@router.delete("/availability/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_availability(
    rule_id: str,
    host_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await host_service.delete_rule(rule_id, host_id, session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
