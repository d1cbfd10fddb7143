"""Booking routes - reconcile approved bookings into clients, jobs and invoices."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.business import Business
from ..portal.client import PortalError
from ..schemas.booking import BookingRequest
from ..services import booking_svc
from ..tenant.deps import get_current_business, get_portal_factory

router = APIRouter(prefix="/api", tags=["bookings"])


@router.post("/businesses/{business_id}/bookings/reconcile")
async def reconcile_bookings(
    payload: list[dict],
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
):
    try:
        bookings = [BookingRequest.model_validate(item) for item in payload]
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    result = await booking_svc.reconcile_booking_requests(db, business.id, bookings)
    return result.model_dump()


@router.post("/businesses/{business_id}/bookings/refresh")
async def refresh_bookings(
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
    portal_factory=Depends(get_portal_factory),
):
    try:
        async with portal_factory() as portal:
            result = await booking_svc.refresh_booking_requests(db, business.id, portal)
    except PortalError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return result.model_dump()
