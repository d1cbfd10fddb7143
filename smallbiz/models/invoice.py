"""Invoice and LineItem models."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Invoice(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "invoice"
    __table_args__ = (
        UniqueConstraint(
            "business_id", "document_type", "source_booking_request_id",
            name="uq_invoice_business_type_booking",
        ),
    )

    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("client.id", ondelete="SET NULL"), default=None, index=True
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("job.id", ondelete="SET NULL"), default=None, index=True
    )

    invoice_number: Mapped[str] = mapped_column(String(50), default="")
    issue_date: Mapped[date] = mapped_column(Date, default=date.today)
    due_date: Mapped[date | None] = mapped_column(Date, default=None)
    payment_terms: Mapped[str] = mapped_column(String(50), default="Net 14")
    notes: Mapped[str] = mapped_column(Text, default="")
    thank_you: Mapped[str] = mapped_column(Text, default="")
    terms_and_conditions: Mapped[str] = mapped_column(Text, default="")
    tax_rate: Mapped[float] = mapped_column(Float, default=0.0)
    discount_amount: Mapped[float] = mapped_column(Float, default=0.0)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    document_type: Mapped[str] = mapped_column(String(20), default="invoice")  # invoice, estimate
    invoice_template_key_override: Mapped[str | None] = mapped_column(String(50), default=None)

    # Booking link (idempotency key) and deposit mirror
    source_booking_request_id: Mapped[str | None] = mapped_column(
        String(100), default=None, index=True
    )
    booking_total_cents: Mapped[int | None] = mapped_column(Integer, default=None)
    deposit_amount_cents: Mapped[int | None] = mapped_column(Integer, default=None)
    deposit_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    deposit_invoice_id: Mapped[str | None] = mapped_column(String(100), default=None)
    remaining_balance_cents: Mapped[int | None] = mapped_column(Integer, default=None)

    # Relationships
    items: Mapped[list["LineItem"]] = relationship(
        back_populates="invoice", cascade="all, delete-orphan",
        order_by="LineItem.position", lazy="selectin",
    )

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def total(self) -> float:
        discounted = max(0.0, self.subtotal - (self.discount_amount or 0.0))
        return discounted + discounted * (self.tax_rate or 0.0)

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number!r}>"


class LineItem(UUIDMixin, Base):
    __tablename__ = "line_item"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("invoice.id", ondelete="CASCADE"), index=True
    )
    item_description: Mapped[str] = mapped_column(String(300), default="")
    quantity: Mapped[float] = mapped_column(Float, default=1.0)
    unit_price: Mapped[float] = mapped_column(Float, default=0.0)
    position: Mapped[int] = mapped_column(Integer, default=0)

    invoice: Mapped["Invoice"] = relationship(back_populates="items")

    @property
    def line_total(self) -> float:
        return (self.quantity or 0.0) * (self.unit_price or 0.0)
