"""FastAPI application factory for SmallBiz Workspace."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .database import async_session_factory
from .portal.client import PortalClient
from .sync.network import NetworkMonitor, http_reachability_check
from .sync.publisher import SitePublisher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Auto-create tables for SQLite (local dev)
    if "sqlite" in settings.database_url:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    app.state.portal_factory = PortalClient
    app.state.publisher = SitePublisher(
        async_session_factory, PortalClient, temp_dir=settings.temp_dir
    )

    monitor = None
    if not settings.portal_configured:
        logger.warning(
            "SMALLBIZ_PORTAL_ADMIN_KEY not set; portal calls will fail and no sync sweep runs"
        )
    elif settings.network_monitor_enabled:
        monitor = NetworkMonitor(
            http_reachability_check(settings.portal_base_url, timeout=settings.portal_timeout_seconds),
            app.state.publisher.set_reachable,
            interval_seconds=settings.network_check_interval_seconds,
        )
        monitor.start()
    app.state.network_monitor = monitor

    yield

    if monitor is not None:
        await monitor.stop()


app = FastAPI(title=settings.app_title, lifespan=lifespan)

# Import and register routers
from .routers import bookings, clients, health, sites  # noqa: E402

app.include_router(sites.router)
app.include_router(bookings.router)
app.include_router(clients.router)
app.include_router(health.router)
