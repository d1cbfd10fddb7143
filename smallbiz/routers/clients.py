"""Client routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.business import Business
from ..schemas.client import ClientCreate, ClientResponse
from ..services import client_svc
from ..tenant.deps import get_current_business

router = APIRouter(prefix="/api", tags=["clients"])


@router.get("/businesses/{business_id}/clients")
async def list_clients(
    offset: int = 0,
    limit: int = 50,
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
):
    clients = await client_svc.list_clients(db, business.id, offset=offset, limit=limit)
    return [ClientResponse.model_validate(c) for c in clients]


@router.post("/businesses/{business_id}/clients", status_code=201)
async def create_client(
    data: ClientCreate,
    business: Business = Depends(get_current_business),
    db: AsyncSession = Depends(get_db),
):
    client = await client_svc.create_client(db, business.id, **data.model_dump())
    return ClientResponse.model_validate(client)
