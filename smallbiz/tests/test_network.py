"""Test the connectivity monitor and HTTP check."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from smallbiz.sync.network import NetworkMonitor, http_reachability_check
from smallbiz.sync.publisher import SitePublisher


class _Checks:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


@pytest.mark.asyncio
async def test_check_once_reports_to_listener():
    seen: list[bool] = []

    async def listener(reachable: bool) -> None:
        seen.append(reachable)

    monitor = NetworkMonitor(_Checks([False, True]), listener, interval_seconds=60)

    assert await monitor.check_once() is False
    assert await monitor.check_once() is True
    assert seen == [False, True]
    assert monitor.last_reachable is True


@pytest.mark.asyncio
async def test_start_runs_loop_until_stopped():
    seen: list[bool] = []
    first_check = asyncio.Event()

    async def listener(reachable: bool) -> None:
        seen.append(reachable)
        first_check.set()

    monitor = NetworkMonitor(_Checks([True]), listener, interval_seconds=60)
    monitor.start()
    monitor.start()
    assert monitor.running

    await asyncio.wait_for(first_check.wait(), timeout=5)
    await monitor.stop()

    assert not monitor.running
    assert seen == [True]
    await monitor.stop()


@pytest.mark.asyncio
async def test_loop_survives_check_errors():
    calls = 0
    recovered = asyncio.Event()

    async def check() -> bool:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("check blew up")
        return True

    async def listener(reachable: bool) -> None:
        recovered.set()

    monitor = NetworkMonitor(check, listener, interval_seconds=0.01)
    monitor.start()
    await asyncio.wait_for(recovered.wait(), timeout=5)
    await monitor.stop()
    assert calls >= 2


@pytest.mark.asyncio
async def test_http_reachability_check_treats_any_response_as_reachable():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    check = http_reachability_check("https://portal.test", transport=transport)
    assert await check() is True


@pytest.mark.asyncio
async def test_http_reachability_check_connection_error_is_unreachable():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    check = http_reachability_check("https://portal.test", transport=httpx.MockTransport(handler))
    assert await check() is False


@pytest.mark.asyncio
async def test_monitor_drives_publisher_reachability(session_factory, fake_portal):
    publisher = SitePublisher(session_factory, lambda: fake_portal, reachable=False)
    monitor = NetworkMonitor(_Checks([True]), publisher.set_reachable)

    await monitor.check_once()
    assert publisher.is_reachable
