"""Portal API client - booking intake, public site upsert and asset upload."""

from __future__ import annotations

import base64
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import settings
from ..schemas.booking import BookingRequest


class PortalError(Exception):
    """Base exception for portal backend errors."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(self.message)


class PortalAuthError(PortalError):
    """Missing or rejected admin key."""


class PortalDecodeError(PortalError):
    """Response body did not have the expected shape."""


class PortalClient:
    """Async client for the portal backend.

    Usage:
        async with PortalClient() as portal:
            url = await portal.upload_site_asset(biz_id, "acme", "hero", "logo.png", data)
    """

    def __init__(
        self,
        admin_key: str | None = None,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.admin_key = (admin_key or settings.portal_admin_key or "").strip()
        self.base_url = (base_url or settings.portal_base_url).rstrip("/")

        if not self.admin_key:
            raise PortalAuthError("SMALLBIZ_PORTAL_ADMIN_KEY not set.")

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "x-admin-key": self.admin_key,
                "Content-Type": "application/json",
            },
            timeout=timeout if timeout is not None else settings.portal_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        """Make an API request with error handling."""
        response = await self._client.request(method=method, url=path, params=params, json=json)

        if response.status_code in (401, 403):
            raise PortalAuthError("Portal rejected the admin key", response.status_code, response.text)

        if response.is_error:
            raise PortalError(
                f"Portal backend HTTP {response.status_code}. {response.text}".strip(),
                response.status_code,
                response.text,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise PortalDecodeError(
                "Portal backend decode failed.", response.status_code, response.text
            ) from None

    async def upsert_public_site(
        self, business_id: str, handle: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Create or update the public site page for a handle."""
        data = await self._request(
            "POST",
            "/api/site/upsert",
            json={"businessId": business_id, "handle": handle, "site": payload},
        )
        if isinstance(data, dict) and data.get("error"):
            raise PortalError(str(data["error"]))
        return data if isinstance(data, dict) else {"result": data}

    async def upload_site_asset(
        self,
        business_id: str,
        handle: str,
        kind: str,
        file_name: str,
        data: bytes,
    ) -> str:
        """Upload one site image and return its hosted URL."""
        resp = await self._request(
            "POST",
            "/api/site/asset-upload",
            json={
                "businessId": business_id,
                "handle": handle,
                "kind": kind,
                "fileName": file_name,
                "dataBase64": base64.b64encode(data).decode("ascii"),
            },
        )
        if not isinstance(resp, dict):
            raise PortalDecodeError("Asset upload returned a non-object body.", body=str(resp))
        if resp.get("error"):
            raise PortalError(str(resp["error"]))
        url = resp.get("url")
        if not isinstance(url, str) or not url.strip():
            raise PortalDecodeError("Asset upload response missing url.", body=str(resp))
        return url.strip()

    async def fetch_booking_requests(
        self, business_id: str, status: str | None = None
    ) -> list[BookingRequest]:
        """List booking requests; accepts a bare list or a {"requests": [...]} wrapper."""
        params = {"businessId": business_id}
        if status:
            params["status"] = status
        data = await self._request("GET", "/api/booking/admin/requests", params=params)

        if isinstance(data, dict):
            data = data.get("requests")
        if not isinstance(data, list):
            raise PortalDecodeError("Booking requests response was not a list.", body=str(data))

        try:
            return [BookingRequest.model_validate(item) for item in data]
        except ValidationError as exc:
            raise PortalDecodeError(f"Booking request decode failed: {exc}") from exc
