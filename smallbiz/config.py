"""SmallBiz configuration via pydantic-settings."""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings


class SmallBizSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///smallbiz.db"
    echo_sql: bool = False
    app_title: str = "SmallBiz Workspace"
    log_level: str = "INFO"

    # Portal backend (booking intake, public sites, asset uploads)
    portal_base_url: str = "https://smallbizworkspace-portal-backend.vercel.app"
    portal_admin_key: str | None = None
    portal_timeout_seconds: float = 30.0

    # Connectivity monitor driving the queued-site sweep
    network_monitor_enabled: bool = True
    network_check_interval_seconds: float = 15.0

    # Public site publishing
    site_temp_dir: str = ""
    default_app_name: str = "SmallBiz Workspace"

    # Invoicing
    invoice_due_days: int = 14
    invoice_payment_terms: str = "Net 14"

    model_config = {"env_prefix": "SMALLBIZ_", "env_file": ".env", "extra": "ignore"}

    @property
    def temp_dir(self) -> Path:
        if self.site_temp_dir.strip():
            return Path(self.site_temp_dir)
        return Path(tempfile.gettempdir())

    @property
    def portal_configured(self) -> bool:
        return bool(self.portal_admin_key and self.portal_admin_key.strip())


settings = SmallBizSettings()
