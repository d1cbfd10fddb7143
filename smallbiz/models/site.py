"""PublishedSite model - the per-business public website draft."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class PublishStatus(str, enum.Enum):
    DRAFT = "draft"
    QUEUED = "queued"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    ERROR = "error"


class PublishedSite(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "published_site"

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("business.id", ondelete="CASCADE"), unique=True, index=True
    )
    handle: Mapped[str] = mapped_column(String(100), default="")
    app_name: Mapped[str] = mapped_column(String(200), default="")

    hero_image_local_path: Mapped[str | None] = mapped_column(String(500), default=None)
    hero_image_remote_url: Mapped[str | None] = mapped_column(String(1000), default=None)
    about_image_local_path: Mapped[str | None] = mapped_column(String(500), default=None)
    about_image_remote_url: Mapped[str | None] = mapped_column(String(1000), default=None)

    # List columns are always reassigned, never mutated in place.
    services: Mapped[list] = mapped_column(JSON, default=list)
    about_us: Mapped[str] = mapped_column(Text, default="")
    team_members: Mapped[list] = mapped_column(JSON, default=list)
    gallery_local_paths: Mapped[list] = mapped_column(JSON, default=list)
    gallery_remote_urls: Mapped[list] = mapped_column(JSON, default=list)

    publish_status: Mapped[str] = mapped_column(String(20), default=PublishStatus.DRAFT.value)
    last_publish_error: Mapped[str | None] = mapped_column(Text, default=None)
    needs_sync: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    # Bumped on every local content change; a publish only clears needs_sync
    # when the revision it uploaded is still current.
    revision: Mapped[int] = mapped_column(Integer, default=0)
    last_published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    @property
    def status(self) -> PublishStatus:
        try:
            return PublishStatus(self.publish_status)
        except ValueError:
            return PublishStatus.DRAFT

    def __repr__(self) -> str:
        return f"<PublishedSite {self.handle!r} {self.publish_status}>"
