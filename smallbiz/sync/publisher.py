"""Site publish synchronizer - uploads queued site drafts to the portal.

State flow per draft:
  draft -> queued -> publishing -> published | error

A draft is uploaded only while ``needs_sync`` is set. Failed attempts leave it
set, so the next manual publish or connectivity restore retries the whole
attempt. Assets whose remote URL is already recorded are not uploaded again.
Each local edit bumps ``revision``; a draft edited while its upload ran is
published again instead of being marked published with stale content.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.base import as_utc, utcnow
from ..models.business import Business, BusinessProfile
from ..models.site import PublishedSite, PublishStatus
from ..schemas.site import SiteUpsertPayload
from ..services import site_svc

logger = logging.getLogger(__name__)

HERO_KIND = "hero"
GALLERY_KIND = "gallery"
MAX_PUBLISH_PASSES = 3


def build_payload(site: PublishedSite) -> SiteUpsertPayload:
    updated = as_utc(site.updated_at) or utcnow()
    return SiteUpsertPayload(
        app_name=site.app_name,
        hero_url=site.hero_image_remote_url,
        services=list(site.services or []),
        about_us=site.about_us or "",
        team=list(site.team_members or []),
        gallery_urls=list(site.gallery_remote_urls or []),
        updated_at_ms=int(updated.timestamp() * 1000),
    )


def _read_local(path: str | None) -> bytes | None:
    if not path or not path.strip():
        return None
    try:
        return Path(path).read_bytes()
    except OSError:
        logger.debug("Skipping unreadable site asset %s", path)
        return None


class SitePublisher:
    """Owns the reachability flag and the set of site ids being published.

    ``portal_factory`` returns an async context manager exposing
    ``upload_site_asset`` and ``upsert_public_site`` (normally a PortalClient).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        portal_factory: Callable[[], Any],
        *,
        reachable: bool = True,
        temp_dir: Path | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._portal_factory = portal_factory
        self._reachable = reachable
        self._temp_dir = temp_dir
        self._in_flight: set[uuid.UUID] = set()

    @property
    def is_reachable(self) -> bool:
        return self._reachable

    def is_in_flight(self, site_id: uuid.UUID) -> bool:
        return site_id in self._in_flight

    async def set_reachable(self, reachable: bool) -> None:
        """Record connectivity; going from offline to online sweeps queued drafts."""
        became_reachable = reachable and not self._reachable
        self._reachable = reachable
        if became_reachable:
            logger.info("Portal reachable again; syncing queued sites")
            await self.sync_queued_sites()

    async def queue_publish(
        self,
        db: AsyncSession,
        draft: PublishedSite,
        profile: BusinessProfile | None,
        business: Business | None,
    ) -> PublishStatus | None:
        """Validate and queue a draft, then try to publish it right away.

        Raises site_svc.InvalidHandleError before anything is queued.
        """
        await site_svc.prepare_for_publish(db, draft, profile, business, temp_dir=self._temp_dir)
        status = await self.attempt_publish(draft.id)
        await db.refresh(draft)
        return status

    async def sync_queued_sites(self) -> dict[uuid.UUID, PublishStatus | None]:
        """Attempt every draft, across businesses, that still needs syncing."""
        async with self._session_factory() as db:
            pending = [site.id for site in await site_svc.list_pending_drafts(db)]

        results: dict[uuid.UUID, PublishStatus | None] = {}
        for site_id in pending:
            results[site_id] = await self.attempt_publish(site_id)
        return results

    async def attempt_publish(self, site_id: uuid.UUID) -> PublishStatus | None:
        """Publish one draft if possible.

        Returns None when skipped (offline, already in flight, missing, or
        nothing to sync), otherwise the resulting status. A draft edited while
        its upload was running is published again, up to MAX_PUBLISH_PASSES
        times; after that it stays queued for the next sweep.
        """
        if not self._reachable:
            return None
        if site_id in self._in_flight:
            return None

        self._in_flight.add(site_id)
        try:
            status = None
            for _ in range(MAX_PUBLISH_PASSES):
                async with self._session_factory() as db:
                    site = await site_svc.get_draft(db, site_id)
                    if site is None or not site.needs_sync:
                        return status
                    status = await self._publish(db, site)
                if status != PublishStatus.QUEUED or not self._reachable:
                    break
            return status
        finally:
            self._in_flight.discard(site_id)

    async def _publish(self, db: AsyncSession, site: PublishedSite) -> PublishStatus:
        revision = site.revision
        site.publish_status = PublishStatus.PUBLISHING.value
        site.last_publish_error = None
        await db.commit()

        try:
            async with self._portal_factory() as portal:
                await self._upload_assets(portal, site)
                payload = build_payload(site)
                await portal.upsert_public_site(str(site.business_id), site.handle, payload.to_wire())
        except Exception as exc:
            await self._absorb_concurrent_edits(db, site, revision)
            site.publish_status = PublishStatus.ERROR.value
            site.last_publish_error = str(exc) or exc.__class__.__name__
            site.needs_sync = True
            await db.commit()
            logger.warning("Publishing site %s (%s) failed: %s", site.id, site.handle, exc)
            return PublishStatus.ERROR

        edited = await self._absorb_concurrent_edits(db, site, revision)
        site.last_published_at = utcnow()
        site.last_publish_error = None
        if edited:
            site.publish_status = PublishStatus.QUEUED.value
            site.needs_sync = True
            await db.commit()
            logger.info("Site %s changed while publishing; queued again", site.id)
            return PublishStatus.QUEUED

        site.publish_status = PublishStatus.PUBLISHED.value
        site.needs_sync = False
        await db.commit()
        logger.info("Published site %s as %r", site.id, site.handle)
        return PublishStatus.PUBLISHED

    async def _absorb_concurrent_edits(
        self, db: AsyncSession, site: PublishedSite, revision: int
    ) -> bool:
        """Return True if the draft was edited since ``revision`` was read.

        The uploaded URLs held on ``site`` are kept only for images whose
        local path the edit left unchanged.
        """
        stmt = select(
            PublishedSite.revision,
            PublishedSite.hero_image_local_path,
            PublishedSite.about_image_local_path,
            PublishedSite.gallery_local_paths,
        ).where(PublishedSite.id == site.id)
        with db.no_autoflush:
            current = (await db.execute(stmt)).one()
        if current.revision == revision:
            return False

        site_svc.invalidate_stale_asset_urls(
            site,
            hero_path=current.hero_image_local_path,
            about_path=current.about_image_local_path,
            gallery_paths=current.gallery_local_paths,
        )
        return True

    async def _upload_assets(self, portal, site: PublishedSite) -> None:
        """Upload hero, about and gallery images that have no remote URL yet.

        Each URL is recorded on the site as soon as it is returned, so a later
        failure does not cause it to be uploaded twice.
        """
        business_id = str(site.business_id)

        if site.hero_image_remote_url is None:
            data = _read_local(site.hero_image_local_path)
            if data is not None:
                site.hero_image_remote_url = await portal.upload_site_asset(
                    business_id, site.handle, HERO_KIND,
                    Path(site.hero_image_local_path).name, data,
                )

        if site.about_image_remote_url is None:
            data = _read_local(site.about_image_local_path)
            if data is not None:
                url = await portal.upload_site_asset(
                    business_id, site.handle, GALLERY_KIND,
                    Path(site.about_image_local_path).name, data,
                )
                site.about_image_remote_url = url
                if url not in (site.gallery_remote_urls or []):
                    site.gallery_remote_urls = [url] + list(site.gallery_remote_urls or [])

        local_paths = list(site.gallery_local_paths or [])
        if not local_paths:
            return

        remote_urls = list(site.gallery_remote_urls or [])
        about = site.about_image_remote_url
        offset = 1 if about and remote_urls and remote_urls[0] == about else 0
        start = min(len(remote_urls) - offset, len(local_paths))

        # URLs stay index-aligned with local paths, so stop at the first gap.
        for local_path in local_paths[start:]:
            data = _read_local(local_path)
            if data is None:
                logger.warning(
                    "Gallery image %s for site %s is unreadable; later images wait for it",
                    local_path, site.id,
                )
                break
            url = await portal.upload_site_asset(
                business_id, site.handle, GALLERY_KIND, Path(local_path).name, data,
            )
            remote_urls = remote_urls + [url]
            site.gallery_remote_urls = remote_urls
