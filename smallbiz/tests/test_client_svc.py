"""Test client service and identity resolution."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smallbiz.models.business import Business
from smallbiz.models.client import Client
from smallbiz.services import business_svc, client_svc


async def _client_count(db: AsyncSession, business: Business) -> int:
    stmt = select(func.count()).select_from(Client).where(Client.business_id == business.id)
    return (await db.execute(stmt)).scalar() or 0


def test_normalize_phone_strips_formatting():
    assert client_svc.normalize_phone("(555) 123-4567") == "5551234567"
    assert client_svc.normalize_phone("555-123-4567") == "5551234567"
    assert client_svc.normalize_phone(None) == ""


@pytest.mark.asyncio
async def test_resolve_matches_email_case_and_whitespace(db: AsyncSession, business: Business):
    existing = await client_svc.create_client(db, business.id, name="Ann", email="a@test.com")

    resolved = await client_svc.resolve_or_create_client(db, business.id, email="A@Test.com ")
    assert resolved.id == existing.id
    assert await _client_count(db, business) == 1


@pytest.mark.asyncio
async def test_resolve_matches_phone_digits(db: AsyncSession, business: Business):
    existing = await client_svc.create_client(
        db, business.id, name="Bob", phone="(555) 123-4567"
    )

    resolved = await client_svc.resolve_or_create_client(
        db, business.id, name="Robert", phone="555-123-4567"
    )
    assert resolved.id == existing.id


@pytest.mark.asyncio
async def test_resolve_email_wins_over_phone(db: AsyncSession, business: Business):
    by_phone = await client_svc.create_client(db, business.id, name="Phone", phone="5550001111")
    by_email = await client_svc.create_client(db, business.id, name="Email", email="e@test.com")

    resolved = await client_svc.resolve_or_create_client(
        db, business.id, email="e@test.com", phone="555 000 1111"
    )
    assert resolved.id == by_email.id
    assert resolved.id != by_phone.id


@pytest.mark.asyncio
async def test_resolve_matches_name_last(db: AsyncSession, business: Business):
    existing = await client_svc.create_client(db, business.id, name="Carol King")

    resolved = await client_svc.resolve_or_create_client(db, business.id, name="  carol king ")
    assert resolved.id == existing.id


@pytest.mark.asyncio
async def test_blank_fields_do_not_match_blank_clients(db: AsyncSession, business: Business):
    await client_svc.create_client(db, business.id, name="No Contact Info")

    resolved = await client_svc.resolve_or_create_client(
        db, business.id, name="Dana", email="  ", phone=""
    )
    assert resolved.name == "Dana"
    assert await _client_count(db, business) == 2


@pytest.mark.asyncio
async def test_resolve_creates_with_name_then_email_then_fallback(
    db: AsyncSession, business: Business
):
    named = await client_svc.resolve_or_create_client(db, business.id, name="Eve", email="eve@test.com")
    assert named.name == "Eve"
    assert named.email == "eve@test.com"

    emailed = await client_svc.resolve_or_create_client(db, business.id, email="frank@test.com")
    assert emailed.name == "frank@test.com"

    anonymous = await client_svc.resolve_or_create_client(db, business.id, phone="555")
    assert anonymous.name == client_svc.FALLBACK_CLIENT_NAME
    assert anonymous.phone == "555"


@pytest.mark.asyncio
async def test_resolve_is_scoped_to_business(db: AsyncSession, business: Business):
    other = await business_svc.create_business(db, "Other Co")
    foreign = await client_svc.create_client(db, other.id, name="Gus", email="gus@test.com")

    resolved = await client_svc.resolve_or_create_client(db, business.id, email="gus@test.com")
    assert resolved.id != foreign.id
    assert resolved.business_id == business.id


@pytest.mark.asyncio
async def test_update_and_list_clients(db: AsyncSession, business: Business):
    c = await client_svc.create_client(db, business.id, name="Hal")
    updated = await client_svc.update_client(db, c.id, address="1 Main St")
    assert updated.address == "1 Main St"

    clients = await client_svc.list_clients(db, business.id)
    assert [x.name for x in clients] == ["Hal"]
