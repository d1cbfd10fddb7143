"""Public site schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class SiteUpsertPayload(BaseModel):
    """Content sent to the portal when a site is published."""

    app_name: str = Field(serialization_alias="appName")
    hero_url: str | None = Field(default=None, serialization_alias="heroUrl")
    services: list[str] = []
    about_us: str = Field(default="", serialization_alias="aboutUs")
    team: list[str] = []
    gallery_urls: list[str] = Field(default_factory=list, serialization_alias="galleryUrls")
    updated_at_ms: int = Field(serialization_alias="updatedAtMs")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class SiteDraftUpdate(BaseModel):
    handle: str | None = None
    app_name: str | None = None
    hero_image_local_path: str | None = None
    about_image_local_path: str | None = None
    services: list[str] | None = None
    about_us: str | None = None
    team_members: list[str] | None = None
    gallery_local_paths: list[str] | None = None


class SiteDraftResponse(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    handle: str
    app_name: str
    hero_image_local_path: str | None = None
    hero_image_remote_url: str | None = None
    about_image_local_path: str | None = None
    about_image_remote_url: str | None = None
    services: list[str] = []
    about_us: str = ""
    team_members: list[str] = []
    gallery_local_paths: list[str] = []
    gallery_remote_urls: list[str] = []
    publish_status: str
    needs_sync: bool
    last_publish_error: str | None = None
    last_published_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
