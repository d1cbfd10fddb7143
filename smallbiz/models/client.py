"""Client model - a business's customer contact."""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Client(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "client"
    __table_args__ = (
        Index("ix_client_business_email", "business_id", "email"),
    )

    name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    phone: Mapped[str] = mapped_column(String(50), default="")
    address: Mapped[str] = mapped_column(String(255), default="")
    portal_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    preferred_invoice_template_key: Mapped[str | None] = mapped_column(String(50), default=None)

    def __repr__(self) -> str:
        return f"<Client {self.name!r}>"
