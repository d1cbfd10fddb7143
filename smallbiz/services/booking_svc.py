"""Booking service - turns approved, deposit-backed bookings into clients, jobs and invoices."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.client import Client
from ..models.invoice import Invoice
from ..models.job import Job
from ..schemas.booking import BookingRequest
from ..schemas.sync import ReconcileResult
from . import business_svc, client_svc, invoice_svc, job_svc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingArtifacts:
    client: Client
    job: Job
    invoice: Invoice


def has_paid_deposit_evidence(booking: BookingRequest) -> bool:
    """A deposit counts as paid when stamped, or when an approved booking has a deposit invoice."""
    if booking.deposit_paid_at_ms is not None:
        return True
    has_deposit_invoice = bool((booking.deposit_invoice_id or "").strip())
    amount = booking.deposit_amount_cents or 0
    return booking.normalized_status == "approved" and has_deposit_invoice and amount > 0


def is_reconcilable(booking: BookingRequest) -> bool:
    return booking.normalized_status == "approved" and has_paid_deposit_evidence(booking)


async def ensure_approved_booking_artifacts(
    db: AsyncSession, business_id: uuid.UUID, booking: BookingRequest
) -> BookingArtifacts:
    """Resolve the client, then find-or-create the job and final invoice.

    Errors propagate. A job created before a failed invoice insert stays and
    is reused on the next call.
    """
    client = await client_svc.resolve_or_create_client(
        db,
        business_id,
        name=booking.client_name,
        email=booking.client_email,
        phone=booking.client_phone,
    )
    job = await job_svc.create_or_reuse_job_for_booking(db, business_id, booking, client)
    profile = await business_svc.get_or_create_profile(db, business_id)
    invoice = await invoice_svc.create_or_reuse_final_invoice_for_booking(
        db, business_id, booking, client, job, profile
    )
    return BookingArtifacts(client=client, job=job, invoice=invoice)


async def reconcile_booking_requests(
    db: AsyncSession, business_id: uuid.UUID, bookings: Iterable[BookingRequest]
) -> ReconcileResult:
    """Reconcile every eligible booking; failures are recorded and retried on the next refresh."""
    result = ReconcileResult()
    seen: set[str] = set()

    for booking in bookings:
        request_id = booking.request_id.strip()
        if request_id in seen or not is_reconcilable(booking):
            result.skipped += 1
            continue
        seen.add(request_id)
        try:
            await ensure_approved_booking_artifacts(db, business_id, booking)
        except Exception as exc:
            await db.rollback()
            logger.warning("Booking %s reconciliation failed: %s", request_id, exc)
            result.errors.append(f"{request_id}: {exc}")
            continue
        result.reconciled += 1

    logger.info(
        "Reconciled bookings for business %s: %d reconciled, %d skipped, %d failed",
        business_id, result.reconciled, result.skipped, len(result.errors),
    )
    return result


async def refresh_booking_requests(db: AsyncSession, business_id: uuid.UUID, portal) -> ReconcileResult:
    """Fetch booking requests from the portal and reconcile the eligible ones."""
    bookings = await portal.fetch_booking_requests(str(business_id))
    ordered = sorted(bookings, key=lambda b: b.created_at_ms or 0, reverse=True)
    return await reconcile_booking_requests(db, business_id, ordered)
