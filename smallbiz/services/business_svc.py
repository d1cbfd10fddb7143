"""Business service - tenant root and profile access."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.business import Business, BusinessProfile


async def get_business(db: AsyncSession, business_id: uuid.UUID) -> Business | None:
    return await db.get(Business, business_id)


async def create_business(db: AsyncSession, name: str, slug: str | None = None) -> Business:
    business = Business(name=name, slug=slug)
    db.add(business)
    await db.commit()
    return business


async def get_profile(db: AsyncSession, business_id: uuid.UUID) -> BusinessProfile | None:
    stmt = select(BusinessProfile).where(BusinessProfile.business_id == business_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, business_id: uuid.UUID) -> BusinessProfile:
    """Return the business's profile, inserting a default one (uncommitted) if absent."""
    profile = await get_profile(db, business_id)
    if profile:
        return profile
    profile = BusinessProfile(business_id=business_id)
    db.add(profile)
    await db.flush()
    return profile
