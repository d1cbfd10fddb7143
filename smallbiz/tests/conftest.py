"""Async test fixtures for SmallBiz tests using SQLite."""

from __future__ import annotations

import asyncio
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from smallbiz.database import get_db
from smallbiz.models.base import Base
from smallbiz.models.business import Business, BusinessProfile
from smallbiz.portal.client import PortalError
from smallbiz.sync.publisher import SitePublisher


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so the publisher's own sessions see the test's commits.
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'smallbiz.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def business(db: AsyncSession):
    biz = Business(id=uuid.uuid4(), name="Acme Events", slug="acme-events")
    db.add(biz)
    await db.commit()
    return biz


@pytest_asyncio.fixture
async def profile(db: AsyncSession, business: Business):
    prof = BusinessProfile(
        business_id=business.id,
        name="Acme Events LLC",
        invoice_prefix="ae",
        catalog_categories_text="Photography\nDJ\n",
    )
    db.add(prof)
    await db.commit()
    return prof


class FakePortal:
    """In-memory portal double recording uploads and upserts."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, str]] = []
        self.upserts: list[tuple[str, str, dict]] = []
        self.upload_error_at: int | None = None
        self.upsert_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()
        self.booking_requests: list = []

    async def __aenter__(self) -> "FakePortal":
        return self

    async def __aexit__(self, *args) -> None:
        return None

    async def upload_site_asset(self, business_id, handle, kind, file_name, data):
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.upload_error_at is not None and len(self.uploads) == self.upload_error_at:
            self.upload_error_at = None
            raise PortalError("Portal backend HTTP 500. upload failed", 500)
        self.uploads.append((kind, file_name, handle))
        return f"https://cdn.test/{handle}/{kind}/{file_name}"

    async def upsert_public_site(self, business_id, handle, payload):
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.upsert_error is not None:
            raise self.upsert_error
        self.upserts.append((business_id, handle, payload))
        return {"url": f"https://sites.test/{handle}"}

    async def fetch_booking_requests(self, business_id, status=None):
        return list(self.booking_requests)


@pytest.fixture
def fake_portal():
    return FakePortal()


@pytest.fixture
def publisher(session_factory, fake_portal, tmp_path):
    return SitePublisher(session_factory, lambda: fake_portal, temp_dir=tmp_path)


@pytest_asyncio.fixture
async def client(session_factory, publisher, fake_portal):
    """HTTPX async test client against the SmallBiz app."""
    from smallbiz.app import app
    from smallbiz.tenant.deps import get_portal_factory, get_publisher

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_portal_factory] = lambda: (lambda: fake_portal)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
