"""Connectivity monitor - a single background task reporting portal reachability."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

ReachabilityCheck = Callable[[], Awaitable[bool]]
Listener = Callable[[bool], Awaitable[None]]


def http_reachability_check(
    url: str,
    timeout: float = 5.0,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ReachabilityCheck:
    """Build a check that treats any HTTP response from ``url`` as reachable."""

    async def _check() -> bool:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                await client.head(url)
        except httpx.HTTPError:
            return False
        return True

    return _check


class NetworkMonitor:
    """Polls a check and reports every observation to a listener."""

    def __init__(self, check: ReachabilityCheck, listener: Listener, interval_seconds: float = 15.0) -> None:
        self._check = check
        self._listener = listener
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self.last_reachable: bool | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="network-monitor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def check_once(self) -> bool:
        reachable = await self._check()
        if reachable != self.last_reachable:
            logger.info("Portal %s", "reachable" if reachable else "unreachable")
        self.last_reachable = reachable
        await self._listener(reachable)
        return reachable

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Network monitor check failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
