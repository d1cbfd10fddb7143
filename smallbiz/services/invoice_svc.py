"""Invoice service - numbering and booking final-balance invoices."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.base import as_utc
from ..models.business import BusinessProfile
from ..models.client import Client
from ..models.invoice import Invoice, LineItem
from ..models.job import Job
from ..schemas.booking import BookingRequest

logger = logging.getLogger(__name__)

DEFAULT_INVOICE_PREFIX = "SI"
REMAINING_BALANCE_LABEL = "Remaining Balance"
FINAL_BALANCE_HEADER = "Final balance after deposit"
AMOUNT_LINE_PREFIXES = ("Total:", "Deposit:", "Remaining:")


def generate_next_invoice_number(profile: BusinessProfile, today: date | None = None) -> str:
    """Return PREFIX-YYYY-NNN and advance the profile's counter.

    The counter restarts at 1 in a new calendar year. The caller commits.
    """
    today = today or date.today()
    if profile.last_invoice_year != today.year:
        profile.last_invoice_year = today.year
        profile.next_invoice_number = 1

    counter = profile.next_invoice_number or 1
    prefix = (profile.invoice_prefix or "").strip().upper() or DEFAULT_INVOICE_PREFIX
    number = f"{prefix}-{today.year}-{counter:03d}"
    profile.next_invoice_number = counter + 1
    return number


def format_cents(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def remaining_balance_cents(total_cents: int | None, deposit_cents: int | None) -> int | None:
    if total_cents is None:
        return None
    return max(total_cents - (deposit_cents or 0), 0)


def booking_header_lines(booking: BookingRequest) -> list[str]:
    service = (booking.service_type or "").strip() or "Booking"
    return [
        f"Booking Request: {booking.request_id.strip()}",
        f"Service: {service}",
        FINAL_BALANCE_HEADER,
    ]


def amount_lines(total_cents: int, deposit_cents: int | None) -> list[str]:
    deposit = deposit_cents or 0
    remaining = remaining_balance_cents(total_cents, deposit) or 0
    return [
        f"Total: {format_cents(total_cents)}",
        f"Deposit: {format_cents(deposit)}",
        f"Remaining: {format_cents(remaining)}",
    ]


def merge_booking_notes(
    existing: str,
    booking: BookingRequest,
    total_cents: int | None,
    deposit_cents: int | None,
) -> str:
    """Merge header lines into notes and re-render the amount lines.

    Lines written by hand are kept; Total/Deposit/Remaining lines are replaced
    whenever the booking total is known.
    """
    lines = [line.rstrip() for line in (existing or "").splitlines()]
    present = {line.strip() for line in lines}

    missing_headers = [h for h in booking_header_lines(booking) if h not in present]
    lines = missing_headers + lines

    if total_cents is not None:
        lines = [line for line in lines if not line.strip().startswith(AMOUNT_LINE_PREFIXES)]
        lines.extend(amount_lines(total_cents, deposit_cents))

    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def _deposit_paid_at(booking: BookingRequest) -> datetime | None:
    if booking.deposit_paid_at_ms is None:
        return None
    return datetime.fromtimestamp(booking.deposit_paid_at_ms / 1000.0, tz=timezone.utc)


def _remaining_balance_item(position: int = 0) -> LineItem:
    return LineItem(
        item_description=REMAINING_BALANCE_LABEL,
        quantity=1.0,
        unit_price=0.0,
        position=position,
    )


async def find_final_invoice_for_booking(
    db: AsyncSession, business_id: uuid.UUID, request_id: str
) -> Invoice | None:
    stmt = select(Invoice).where(
        Invoice.business_id == business_id,
        Invoice.document_type == "invoice",
        Invoice.source_booking_request_id == request_id,
    )
    return (await db.execute(stmt)).scalars().first()


def _patch_final_invoice(invoice: Invoice, booking: BookingRequest) -> bool:
    changed = False

    deposit_paid_at = _deposit_paid_at(booking)
    if booking.deposit_amount_cents != invoice.deposit_amount_cents:
        invoice.deposit_amount_cents = booking.deposit_amount_cents
        changed = True
    if deposit_paid_at != as_utc(invoice.deposit_paid_at):
        invoice.deposit_paid_at = deposit_paid_at
        changed = True
    if booking.deposit_invoice_id != invoice.deposit_invoice_id:
        invoice.deposit_invoice_id = booking.deposit_invoice_id
        changed = True

    total = booking.booking_total_amount_cents
    if total is not None:
        if invoice.booking_total_cents != total:
            invoice.booking_total_cents = total
            changed = True
        remaining = remaining_balance_cents(total, booking.deposit_amount_cents)
        if invoice.remaining_balance_cents != remaining:
            invoice.remaining_balance_cents = remaining
            changed = True

    if not invoice.items:
        invoice.items = [_remaining_balance_item()]
        changed = True

    notes = merge_booking_notes(
        invoice.notes, booking, invoice.booking_total_cents, invoice.deposit_amount_cents
    )
    if notes != invoice.notes:
        invoice.notes = notes
        changed = True

    return changed


async def create_or_reuse_final_invoice_for_booking(
    db: AsyncSession,
    business_id: uuid.UUID,
    booking: BookingRequest,
    client: Client | None,
    job: Job | None,
    profile: BusinessProfile,
    *,
    today: date | None = None,
) -> Invoice:
    """Return the booking's final-balance invoice, creating it on first call.

    Deposit fields are mirrored from the booking on every call and the
    Total/Deposit/Remaining figures recomputed.
    """
    request_id = booking.request_id.strip()
    today = today or date.today()

    existing = await find_final_invoice_for_booking(db, business_id, request_id)
    if existing:
        if _patch_final_invoice(existing, booking):
            await db.commit()
        return existing

    total = booking.booking_total_amount_cents
    deposit = booking.deposit_amount_cents

    invoice = Invoice(
        business_id=business_id,
        client_id=client.id if client else None,
        job_id=job.id if job else None,
        invoice_number=generate_next_invoice_number(profile, today),
        issue_date=today,
        due_date=today + timedelta(days=settings.invoice_due_days),
        payment_terms=settings.invoice_payment_terms,
        notes=merge_booking_notes("", booking, total, deposit),
        thank_you=profile.default_thank_you,
        terms_and_conditions=profile.default_terms,
        document_type="invoice",
        invoice_template_key_override=client.preferred_invoice_template_key if client else None,
        source_booking_request_id=request_id,
        booking_total_cents=total,
        deposit_amount_cents=deposit,
        deposit_paid_at=_deposit_paid_at(booking),
        deposit_invoice_id=booking.deposit_invoice_id,
        remaining_balance_cents=remaining_balance_cents(total, deposit),
        items=[_remaining_balance_item()],
    )
    db.add(invoice)
    try:
        await db.commit()
    except IntegrityError:
        # Lost an insert race for this booking; the counter bump is rolled back too.
        await db.rollback()
        for obj in (client, job, profile):
            if obj is not None and inspect(obj).persistent:
                await db.refresh(obj)
        winner = await find_final_invoice_for_booking(db, business_id, request_id)
        if winner is None:
            raise
        logger.info(
            "Reusing invoice %s for booking %s after insert conflict", winner.id, request_id
        )
        return winner

    logger.info("Created final invoice %s for booking %s", invoice.invoice_number, request_id)
    return invoice
