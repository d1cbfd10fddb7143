"""Booking request schema - the transient value reconciled into jobs and invoices."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, model_validator

# Field name -> accepted payload keys, in priority order.
_STRING_KEYS: dict[str, tuple[str, ...]] = {
    "request_id": ("request_id", "requestId", "id", "bookingRequestId"),
    "business_id": ("business_id", "businessId", "businessID"),
    "slug": ("slug",),
    "client_name": ("client_name", "clientName", "customerName"),
    "client_email": ("client_email", "clientEmail", "customerEmail"),
    "client_phone": ("client_phone", "clientPhone", "customerPhone"),
    "requested_start": ("requested_start", "requestedStart", "requestedStartAt", "startAt"),
    "requested_end": ("requested_end", "requestedEnd", "requestedEndAt", "endAt"),
    "service_type": ("service_type", "serviceType", "serviceName"),
    "notes": ("notes", "message"),
    "status": ("status",),
    "deposit_invoice_id": ("deposit_invoice_id", "depositInvoiceId"),
    "final_invoice_id": ("final_invoice_id", "finalInvoiceId"),
}

_INT_KEYS: dict[str, tuple[str, ...]] = {
    "created_at_ms": ("created_at_ms", "createdAtMs", "createdAt"),
    "booking_total_amount_cents": ("booking_total_amount_cents", "bookingTotalAmountCents"),
    "deposit_amount_cents": ("deposit_amount_cents", "depositAmountCents"),
    "deposit_paid_at_ms": ("deposit_paid_at_ms", "depositPaidAtMs"),
}


def _as_string(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except ValueError:
            return None
    return None


class BookingRequest(BaseModel):
    """An inbound booking request from the portal's intake channel.

    Accepts the portal's alternate key spellings and loose numeric types.
    Never persisted.
    """

    request_id: str
    business_id: str
    slug: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    requested_start: str | None = None
    requested_end: str | None = None
    service_type: str | None = None
    notes: str | None = None
    status: str = "pending"
    created_at_ms: int | None = None
    booking_total_amount_cents: int | None = None
    deposit_amount_cents: int | None = None
    deposit_invoice_id: str | None = None
    deposit_paid_at_ms: int | None = None
    final_invoice_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        normalized: dict[str, Any] = {}
        for field, keys in _STRING_KEYS.items():
            for key in keys:
                value = _as_string(data.get(key))
                if value is not None:
                    normalized[field] = value
                    break
        for field, keys in _INT_KEYS.items():
            for key in keys:
                value = _as_int(data.get(key))
                if value is not None:
                    normalized[field] = value
                    break
        return normalized

    @property
    def normalized_status(self) -> str:
        return self.status.strip().lower()

    @property
    def display_client(self) -> str:
        for value in (self.client_name, self.client_email, self.client_phone):
            if value and value.strip():
                return value.strip()
        return "No customer"
