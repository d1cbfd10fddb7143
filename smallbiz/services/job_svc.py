"""Job service - booking-driven job reconciliation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import as_utc, utcnow
from ..models.client import Client
from ..models.job import Job, JobStage
from ..schemas.booking import BookingRequest

logger = logging.getLogger(__name__)

# Epoch values above this are milliseconds.
EPOCH_MILLIS_THRESHOLD = 10_000_000_000
DEFAULT_BOOKING_DURATION = timedelta(hours=2)


def parse_booking_date(raw: str | None) -> datetime | None:
    """Parse ISO-8601 (with or without fractional seconds) or epoch seconds/ms."""
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        parsed = None
    if parsed is not None and "T" in text:
        return as_utc(parsed)

    try:
        seconds = float(text)
    except ValueError:
        return as_utc(parsed) if parsed is not None else None
    if seconds > EPOCH_MILLIS_THRESHOLD:
        seconds = seconds / 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def derive_job_title(booking: BookingRequest, client: Client | None) -> str:
    service = (booking.service_type or "").strip() or "Booking"
    client_name = (client.name if client else "").strip()
    if client_name:
        return f"{service} - {client_name}"
    return service


async def find_job_for_booking(
    db: AsyncSession, business_id: uuid.UUID, request_id: str
) -> Job | None:
    stmt = select(Job).where(
        Job.business_id == business_id,
        Job.source_booking_request_id == request_id,
    )
    return (await db.execute(stmt)).scalars().first()


async def create_or_reuse_job_for_booking(
    db: AsyncSession,
    business_id: uuid.UUID,
    booking: BookingRequest,
    client: Client | None,
    *,
    now: datetime | None = None,
) -> Job:
    """Return the job for this booking, creating it on first reconciliation.

    A reused job is patched in place: relinked to the resolved client, given a
    title when blank, and moved back to "booked" when marked completed while
    its start is still in the future.
    """
    now = now or utcnow()
    request_id = booking.request_id.strip()

    existing = await find_job_for_booking(db, business_id, request_id)
    if existing:
        changed = False
        if client is not None and existing.client_id != client.id:
            existing.client_id = client.id
            changed = True
        if not (existing.title or "").strip():
            existing.title = derive_job_title(booking, client)
            changed = True
        start = as_utc(existing.start_date)
        if existing.stage == JobStage.COMPLETED.value and start is not None and start > now:
            existing.stage = JobStage.BOOKED.value
            changed = True
        if changed:
            await db.commit()
        return existing

    start = parse_booking_date(booking.requested_start) or now
    end = parse_booking_date(booking.requested_end) or start + DEFAULT_BOOKING_DURATION

    job = Job(
        business_id=business_id,
        client_id=client.id if client else None,
        title=derive_job_title(booking, client),
        notes=(booking.notes or "").strip(),
        start_date=start,
        end_date=end,
        status="scheduled",
        stage=JobStage.BOOKED.value,
        source_booking_request_id=request_id,
    )
    db.add(job)
    try:
        await db.commit()
    except IntegrityError:
        # Another writer created the job for this booking first; reuse it.
        await db.rollback()
        if client is not None:
            await db.refresh(client)
        winner = await find_job_for_booking(db, business_id, request_id)
        if winner is None:
            raise
        logger.info("Reusing job %s for booking %s after insert conflict", winner.id, request_id)
        return winner
    return job
