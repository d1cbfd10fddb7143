"""Public site routes - draft editing, publishing and the queued-site sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.business import Business
from ..schemas.site import SiteDraftResponse, SiteDraftUpdate
from ..services import business_svc, site_svc
from ..sync.publisher import SitePublisher
from ..tenant.deps import get_current_business, get_publisher

router = APIRouter(prefix="/api", tags=["sites"])


@router.get("/businesses/{business_id}/site")
async def get_site_draft(
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
):
    draft = await site_svc.get_or_create_draft(db, business.id)
    return SiteDraftResponse.model_validate(draft)


@router.patch("/businesses/{business_id}/site")
async def update_site_draft(
    data: SiteDraftUpdate,
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
):
    draft = await site_svc.get_or_create_draft(db, business.id)
    draft = await site_svc.save_draft_edits(db, draft, **data.model_dump(exclude_unset=True))
    return SiteDraftResponse.model_validate(draft)


@router.post("/businesses/{business_id}/site/publish")
async def publish_site(
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
    publisher: SitePublisher = Depends(get_publisher),
):
    draft = await site_svc.get_or_create_draft(db, business.id)
    profile = await business_svc.get_profile(db, business.id)
    try:
        status = await publisher.queue_publish(db, draft, profile, business)
    except site_svc.InvalidHandleError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "attempted": status is not None,
        "site": SiteDraftResponse.model_validate(draft).model_dump(mode="json"),
    }


@router.post("/sites/sync")
async def sync_sites(publisher: SitePublisher = Depends(get_publisher)):
    results = await publisher.sync_queued_sites()
    return {
        "attempted": sum(1 for status in results.values() if status is not None),
        "results": {
            str(site_id): status.value if status else None
            for site_id, status in results.items()
        },
    }
