"""Business model - the tenant root - and its profile."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Integer, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin

DEFAULT_THANK_YOU = "Thank you for your business!"
DEFAULT_TERMS = "Payment is due by the due date listed on this invoice."
DEFAULT_CATALOG_CATEGORIES = "\n".join([
    "General",
    "Photography",
    "DJ",
    "Audio/Visual",
    "Installations",
    "Backline",
    "Other",
])


class Business(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "business"

    name: Mapped[str] = mapped_column(String(200), default="")
    slug: Mapped[str | None] = mapped_column(String(100), unique=True, default=None)

    def __repr__(self) -> str:
        return f"<Business {self.name!r}>"


class BusinessProfile(UUIDMixin, TimestampMixin, Base):
    """Branding, invoice defaults and invoice numbering state for one business."""

    __tablename__ = "business_profile"

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("business.id", ondelete="CASCADE"), unique=True, index=True
    )
    name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    phone: Mapped[str] = mapped_column(String(50), default="")
    address: Mapped[str] = mapped_column(String(255), default="")

    default_thank_you: Mapped[str] = mapped_column(Text, default=DEFAULT_THANK_YOU)
    default_terms: Mapped[str] = mapped_column(Text, default=DEFAULT_TERMS)
    default_invoice_template_key: Mapped[str | None] = mapped_column(String(50), default=None)

    logo_data: Mapped[bytes | None] = mapped_column(LargeBinary, default=None)

    # Numbering: PREFIX-YYYY-NNN, reset every calendar year
    invoice_prefix: Mapped[str] = mapped_column(String(20), default="SI")
    next_invoice_number: Mapped[int] = mapped_column(Integer, default=1)
    last_invoice_year: Mapped[int] = mapped_column(
        Integer, default=lambda: datetime.now().year
    )

    catalog_categories_text: Mapped[str] = mapped_column(Text, default=DEFAULT_CATALOG_CATEGORIES)

    def __repr__(self) -> str:
        return f"<BusinessProfile {self.name!r}>"
