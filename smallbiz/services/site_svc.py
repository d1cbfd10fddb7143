"""Public site draft service - one draft per business, edited locally, published later."""

from __future__ import annotations

import logging
import os
import re
import tempfile
import uuid
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.base import utcnow
from ..models.business import Business, BusinessProfile
from ..models.site import PublishedSite, PublishStatus

logger = logging.getLogger(__name__)


class InvalidHandleError(ValueError):
    """Raised when a site is published without a usable handle."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Add a website handle before publishing. Use letters, numbers, and dashes only."
        )


_HANDLE_SEPARATORS = re.compile(r"[ _.]")
_HANDLE_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HANDLE_DASH_RUNS = re.compile(r"-{2,}")

_LIST_FIELDS = ("services", "team_members", "gallery_local_paths")
_TEXT_FIELDS = ("handle", "app_name", "about_us")
_EDITABLE_FIELDS = (
    "handle",
    "app_name",
    "hero_image_local_path",
    "about_image_local_path",
    "services",
    "about_us",
    "team_members",
    "gallery_local_paths",
)


def normalize_handle(raw: str | None) -> str:
    """Lower-case slug of [a-z0-9-]; spaces, underscores and dots become dashes."""
    text = (raw or "").strip().lower()
    if not text:
        return ""
    text = _HANDLE_SEPARATORS.sub("-", text)
    text = _HANDLE_DISALLOWED.sub("", text)
    text = _HANDLE_DASH_RUNS.sub("-", text)
    return text.strip("-")


def split_lines(raw: str | None) -> list[str]:
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]


async def get_draft(db: AsyncSession, site_id: uuid.UUID) -> PublishedSite | None:
    return await db.get(PublishedSite, site_id)


async def get_draft_for_business(db: AsyncSession, business_id: uuid.UUID) -> PublishedSite | None:
    stmt = select(PublishedSite).where(PublishedSite.business_id == business_id)
    return (await db.execute(stmt)).scalars().first()


async def get_or_create_draft(db: AsyncSession, business_id: uuid.UUID) -> PublishedSite:
    """Return the business's single site draft, creating an empty one on first access."""
    existing = await get_draft_for_business(db, business_id)
    if existing:
        return existing
    draft = PublishedSite(business_id=business_id)
    db.add(draft)
    await db.commit()
    return draft


async def list_pending_drafts(db: AsyncSession) -> list[PublishedSite]:
    """Drafts across all businesses whose local state has not been uploaded."""
    stmt = select(PublishedSite).where(PublishedSite.needs_sync.is_(True))
    return list((await db.execute(stmt)).scalars().all())


async def save_draft_edits(db: AsyncSession, draft: PublishedSite, **changes) -> PublishedSite:
    """Apply edits to a draft.

    Any edit demotes a published or failed draft back to "draft". Drafts that
    were ever queued keep needs_sync raised so the next sweep uploads them.
    Explicit ``None`` clears a text or list field; only image paths store it.
    """
    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown site fields: {', '.join(sorted(unknown))}")

    cleaned: dict = {}
    for key, value in changes.items():
        if key in _LIST_FIELDS:
            value = [str(v).strip() for v in (value or []) if str(v).strip()]
        elif key in _TEXT_FIELDS:
            value = value or ""
        cleaned[key] = value

    invalidate_stale_asset_urls(
        draft,
        hero_path=cleaned.get("hero_image_local_path", draft.hero_image_local_path),
        about_path=cleaned.get("about_image_local_path", draft.about_image_local_path),
        gallery_paths=cleaned.get("gallery_local_paths", draft.gallery_local_paths),
    )
    for key, value in cleaned.items():
        setattr(draft, key, value)

    draft.handle = normalize_handle(draft.handle)
    draft.updated_at = utcnow()
    if cleaned:
        draft.revision = (draft.revision or 0) + 1

    status = draft.status
    if status in (PublishStatus.PUBLISHED, PublishStatus.ERROR):
        draft.publish_status = PublishStatus.DRAFT.value
    if cleaned and (status != PublishStatus.DRAFT or draft.last_published_at is not None):
        draft.needs_sync = True

    await db.commit()
    return draft


def invalidate_stale_asset_urls(
    draft: PublishedSite,
    *,
    hero_path: str | None,
    about_path: str | None,
    gallery_paths: list[str] | None,
) -> None:
    """Drop remote URLs whose local image is being replaced by the given paths.

    Gallery URLs survive for the leading paths that are unchanged.
    """
    if hero_path != draft.hero_image_local_path:
        draft.hero_image_remote_url = None
    if about_path != draft.about_image_local_path:
        about_url = draft.about_image_remote_url
        if about_url:
            draft.gallery_remote_urls = [
                url for url in (draft.gallery_remote_urls or []) if url != about_url
            ]
        draft.about_image_remote_url = None
    if list(gallery_paths or []) != list(draft.gallery_local_paths or []):
        kept = _common_prefix_len(draft.gallery_local_paths, gallery_paths)
        draft.gallery_remote_urls = _rebuild_gallery_urls(draft, kept)


def _common_prefix_len(old: list[str], new: list[str]) -> int:
    count = 0
    for a, b in zip(old or [], new or []):
        if a != b:
            break
        count += 1
    return count


def _rebuild_gallery_urls(draft: PublishedSite, kept_local: int) -> list[str]:
    """Keep remote URLs for the unchanged leading gallery paths (plus the about image)."""
    urls = list(draft.gallery_remote_urls or [])
    about = draft.about_image_remote_url
    lead = [about] if about and urls and urls[0] == about else []
    gallery = urls[len(lead):]
    return lead + gallery[:kept_local]


def resolve_app_name(
    draft: PublishedSite, profile: BusinessProfile | None, business: Business | None
) -> str:
    for candidate in (
        draft.app_name,
        business.name if business else None,
        profile.name if profile else None,
    ):
        text = (candidate or "").strip()
        if text:
            return text
    return settings.default_app_name


def persist_temporary_asset(
    data: bytes,
    business_id: uuid.UUID,
    prefix: str,
    extension: str,
    temp_dir: Path | None = None,
) -> str:
    """Atomically write bytes to <temp>/<prefix>-<business id>.<ext> and return the path."""
    directory = Path(temp_dir or settings.temp_dir)
    directory.mkdir(parents=True, exist_ok=True)
    dest = directory / f"{prefix}-{business_id}.{extension}"

    fd, tmp_path = tempfile.mkstemp(prefix=f"{dest.name}.tmp.", dir=str(directory))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data or b"")
        os.replace(tmp_path, dest)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return str(dest)


async def prepare_for_publish(
    db: AsyncSession,
    draft: PublishedSite,
    profile: BusinessProfile | None,
    business: Business | None,
    *,
    temp_dir: Path | None = None,
) -> PublishedSite:
    """Validate and backfill a draft, then mark it queued for upload.

    Raises InvalidHandleError (leaving the draft untouched) when the handle is
    empty after normalization.
    """
    handle = normalize_handle(draft.handle)
    if not handle:
        raise InvalidHandleError()

    draft.handle = handle
    draft.app_name = resolve_app_name(draft, profile, business)
    if not draft.services and profile is not None:
        draft.services = split_lines(profile.catalog_categories_text)
    if not (draft.about_us or "").strip() and profile is not None:
        draft.about_us = (profile.default_thank_you or "").strip()

    if draft.hero_image_local_path is None and profile is not None and profile.logo_data:
        try:
            draft.hero_image_local_path = persist_temporary_asset(
                profile.logo_data,
                draft.business_id,
                prefix="public-site-hero",
                extension="png",
                temp_dir=temp_dir,
            )
        except OSError as exc:
            logger.warning("Could not stage logo as hero image for %s: %s", draft.business_id, exc)

    draft.updated_at = utcnow()
    draft.revision = (draft.revision or 0) + 1
    draft.publish_status = PublishStatus.QUEUED.value
    draft.needs_sync = True
    draft.last_publish_error = None
    await db.commit()
    return draft
