"""Client service - CRUD plus identity resolution for inbound bookings."""

from __future__ import annotations

import re
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.client import Client

FALLBACK_CLIENT_NAME = "New Client"

_NON_DIGITS = re.compile(r"\D")


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: str | None) -> str:
    """Strip everything but digits: "(555) 123-4567" -> "5551234567"."""
    return _NON_DIGITS.sub("", value or "")


def normalize_name(value: str | None) -> str:
    return (value or "").strip().lower()


async def list_clients(
    db: AsyncSession,
    business_id: uuid.UUID,
    *,
    offset: int = 0,
    limit: int = 50,
) -> list[Client]:
    stmt = (
        select(Client)
        .where(Client.business_id == business_id)
        .order_by(Client.name)
        .offset(offset)
        .limit(limit)
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_client(db: AsyncSession, client_id: uuid.UUID) -> Client | None:
    return await db.get(Client, client_id)


async def create_client(db: AsyncSession, business_id: uuid.UUID, **kwargs) -> Client:
    """Create a new client."""
    client = Client(business_id=business_id, **kwargs)
    db.add(client)
    await db.commit()
    return client


async def update_client(db: AsyncSession, client_id: uuid.UUID, **kwargs) -> Client | None:
    """Update an existing client."""
    client = await get_client(db, client_id)
    if not client:
        return None
    for key, value in kwargs.items():
        setattr(client, key, value)
    await db.commit()
    return client


def match_client(
    clients: list[Client],
    *,
    email: str | None = None,
    phone: str | None = None,
    name: str | None = None,
) -> Client | None:
    """Pick the first client matching by email, then phone digits, then name."""
    email_key = normalize_email(email)
    if email_key:
        for client in clients:
            if normalize_email(client.email) == email_key:
                return client

    phone_key = normalize_phone(phone)
    if phone_key:
        for client in clients:
            if normalize_phone(client.phone) == phone_key:
                return client

    name_key = normalize_name(name)
    if name_key:
        for client in clients:
            if normalize_name(client.name) == name_key:
                return client

    return None


async def resolve_or_create_client(
    db: AsyncSession,
    business_id: uuid.UUID,
    *,
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> Client:
    """Return the business's client matching the contact fields, creating one if needed.

    A new client is committed immediately, even when the caller only meant to
    look one up.
    """
    stmt = select(Client).where(Client.business_id == business_id).order_by(Client.created_at)
    clients = list((await db.execute(stmt)).scalars().all())

    existing = match_client(clients, email=email, phone=phone, name=name)
    if existing:
        return existing

    display_name = (name or "").strip() or (email or "").strip() or FALLBACK_CLIENT_NAME
    return await create_client(
        db,
        business_id,
        name=display_name,
        email=(email or "").strip(),
        phone=(phone or "").strip(),
    )
