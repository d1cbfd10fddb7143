"""Test booking job reconciliation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smallbiz.models.base import as_utc
from smallbiz.models.business import Business
from smallbiz.models.job import Job, JobStage
from smallbiz.schemas.booking import BookingRequest
from smallbiz.services import client_svc, job_svc


def _booking(**overrides) -> BookingRequest:
    data = {
        "requestId": "req-1",
        "businessId": "biz-1",
        "clientName": "Ann Lee",
        "clientEmail": "ann@test.com",
        "requestedStart": "2030-06-01T15:00:00Z",
        "requestedEnd": "2030-06-01T18:30:00Z",
        "serviceType": "Photography",
        "notes": "Backyard wedding",
        "status": "approved",
    }
    data.update(overrides)
    return BookingRequest.model_validate(data)


class TestParseBookingDate:
    def test_iso_with_fractional_seconds(self):
        parsed = job_svc.parse_booking_date("2030-06-01T15:00:00.250Z")
        assert parsed == datetime(2030, 6, 1, 15, 0, 0, 250000, tzinfo=timezone.utc)

    def test_plain_iso_with_offset(self):
        parsed = job_svc.parse_booking_date("2030-06-01T10:00:00-05:00")
        assert parsed == datetime(2030, 6, 1, 15, 0, tzinfo=timezone.utc)

    def test_epoch_seconds(self):
        assert job_svc.parse_booking_date("1900000000") == datetime.fromtimestamp(
            1_900_000_000, tz=timezone.utc
        )

    def test_epoch_milliseconds_above_threshold(self):
        assert job_svc.parse_booking_date("1900000000000") == datetime.fromtimestamp(
            1_900_000_000, tz=timezone.utc
        )

    def test_blank_and_garbage(self):
        assert job_svc.parse_booking_date(None) is None
        assert job_svc.parse_booking_date("   ") is None
        assert job_svc.parse_booking_date("next tuesday") is None


async def _job_count(db: AsyncSession, business: Business) -> int:
    stmt = select(func.count()).select_from(Job).where(Job.business_id == business.id)
    return (await db.execute(stmt)).scalar() or 0


@pytest.mark.asyncio
async def test_creates_booked_job_from_booking(db: AsyncSession, business: Business):
    client = await client_svc.create_client(db, business.id, name="Ann Lee")
    job = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), client)

    assert job.source_booking_request_id == "req-1"
    assert job.client_id == client.id
    assert job.stage == JobStage.BOOKED.value
    assert job.title == "Photography - Ann Lee"
    assert job.notes == "Backyard wedding"
    assert as_utc(job.start_date) == datetime(2030, 6, 1, 15, 0, tzinfo=timezone.utc)
    assert as_utc(job.end_date) == datetime(2030, 6, 1, 18, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_missing_end_defaults_to_two_hours(db: AsyncSession, business: Business):
    job = await job_svc.create_or_reuse_job_for_booking(
        db, business.id, _booking(requestedEnd=None), None
    )
    assert as_utc(job.end_date) - as_utc(job.start_date) == timedelta(hours=2)
    assert job.client_id is None
    assert job.title == "Photography"


@pytest.mark.asyncio
async def test_reuses_job_for_same_booking(db: AsyncSession, business: Business):
    client = await client_svc.create_client(db, business.id, name="Ann Lee")
    first = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), client)
    second = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), client)

    assert first.id == second.id
    assert await _job_count(db, business) == 1


@pytest.mark.asyncio
async def test_reuse_relinks_client_and_fills_title(db: AsyncSession, business: Business):
    job = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), None)
    job.title = "  "
    await db.commit()

    client = await client_svc.create_client(db, business.id, name="Ann Lee")
    reused = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), client)

    assert reused.id == job.id
    assert reused.client_id == client.id
    assert reused.title == "Photography - Ann Lee"


@pytest.mark.asyncio
async def test_future_completed_job_reverts_to_booked(db: AsyncSession, business: Business):
    job = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), None)
    job.stage = JobStage.COMPLETED.value
    await db.commit()

    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    reused = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), None, now=now)
    assert reused.stage == JobStage.BOOKED.value


@pytest.mark.asyncio
async def test_past_completed_job_stays_completed(db: AsyncSession, business: Business):
    job = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), None)
    job.stage = JobStage.COMPLETED.value
    await db.commit()

    now = datetime(2031, 1, 1, tzinfo=timezone.utc)
    reused = await job_svc.create_or_reuse_job_for_booking(db, business.id, _booking(), None, now=now)
    assert reused.stage == JobStage.COMPLETED.value
