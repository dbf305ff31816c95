"""Tests for the connectivity monitor and wait_for_online."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from project_spark_mcp.connectivity import ConnectivityMonitor


class TestListeners:
    def test_fires_only_on_transition(self):
        monitor = ConnectivityMonitor(online=True)
        seen: list[bool] = []
        monitor.add_listener(seen.append)

        monitor.set_online(True)
        monitor.set_online(False)
        monitor.set_online(False)
        monitor.set_online(True)

        assert seen == [False, True]

    def test_remove_listener(self):
        monitor = ConnectivityMonitor()
        seen: list[bool] = []
        monitor.add_listener(seen.append)
        monitor.remove_listener(seen.append)
        monitor.remove_listener(seen.append)

        monitor.set_online(False)

        assert seen == []
        assert monitor.listener_count == 0


class TestWaitForOnline:
    async def test_already_online_returns_immediately(self):
        monitor = ConnectivityMonitor(online=True)
        assert await monitor.wait_for_online(timeout=0.01) is True
        assert monitor.listener_count == 0

    async def test_resolves_on_transition(self):
        monitor = ConnectivityMonitor(online=False)
        waiter = asyncio.create_task(monitor.wait_for_online(timeout=5))
        await asyncio.sleep(0)
        assert monitor.listener_count == 1

        monitor.set_online(True)

        assert await waiter is True
        assert monitor.listener_count == 0

    async def test_times_out_and_cleans_up(self):
        monitor = ConnectivityMonitor(online=False)

        assert await monitor.wait_for_online(timeout=0.01) is False
        assert monitor.listener_count == 0

    async def test_cancellation_removes_listener(self):
        monitor = ConnectivityMonitor(online=False)
        waiter = asyncio.create_task(monitor.wait_for_online(timeout=5))
        await asyncio.sleep(0)

        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)

        assert waiter.cancelled()
        assert monitor.listener_count == 0

    async def test_default_timeout_from_config(self, monkeypatch):
        monkeypatch.setenv("SPARK_ONLINE_TIMEOUT", "0.01")
        monitor = ConnectivityMonitor(online=False)
        assert await monitor.wait_for_online() is False


class TestReachabilityCheck:
    def _mock_client(self, head):
        client = MagicMock()
        client.head = head
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=client)
        cm.__aexit__ = AsyncMock(return_value=False)
        return cm

    async def test_reachable_sets_online(self):
        monitor = ConnectivityMonitor(online=False, check_url="https://reachability.test/")
        cm = self._mock_client(AsyncMock(return_value=MagicMock(status_code=204)))
        with patch("project_spark_mcp.connectivity.httpx.AsyncClient", return_value=cm):
            assert await monitor.check_reachability() is True
        assert monitor.is_online is True

    async def test_unreachable_sets_offline(self):
        monitor = ConnectivityMonitor(online=True, check_url="https://reachability.test/")
        cm = self._mock_client(AsyncMock(side_effect=httpx.ConnectError("refused")))
        with patch("project_spark_mcp.connectivity.httpx.AsyncClient", return_value=cm):
            assert await monitor.check_reachability() is False
        assert monitor.is_online is False
