"""FastAPI dependencies for business resolution and app-owned services."""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.business import Business
from ..sync.publisher import SitePublisher


async def get_current_business(
    business_id: uuid.UUID = Path(..., description="Business id"),
    db: AsyncSession = Depends(get_db),
) -> Business:
    """Resolve the business id in the path. Raises 404 if not found."""
    business = await db.get(Business, business_id)
    if not business:
        raise HTTPException(status_code=404, detail=f"Business '{business_id}' not found")
    return business


def get_publisher(request: Request) -> SitePublisher:
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        raise HTTPException(status_code=503, detail="Site publisher not running")
    return publisher


def get_portal_factory(request: Request):
    factory = getattr(request.app.state, "portal_factory", None)
    if factory is None:
        raise HTTPException(status_code=503, detail="Portal client not configured")
    return factory
