"""Job model - a scheduled unit of work for a client."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class JobStage(str, enum.Enum):
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


class Job(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "job"
    __table_args__ = (
        UniqueConstraint(
            "business_id", "source_booking_request_id", name="uq_job_business_booking"
        ),
    )

    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("client.id", ondelete="SET NULL"), default=None, index=True
    )
    title: Mapped[str] = mapped_column(String(300), default="")
    notes: Mapped[str] = mapped_column(Text, default="")
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    location_name: Mapped[str] = mapped_column(String(255), default="")
    status: Mapped[str] = mapped_column(String(50), default="scheduled")
    stage: Mapped[str] = mapped_column(String(50), default=JobStage.BOOKED.value)
    source_booking_request_id: Mapped[str | None] = mapped_column(
        String(100), default=None, index=True
    )

    def __repr__(self) -> str:
        return f"<Job {self.title!r}>"
