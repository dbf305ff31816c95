"""Online/offline tracking with a cooperative wait for reconnection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from .config import get_config

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """Holds the current online state and notifies listeners on transitions."""

    def __init__(self, *, online: bool = True, check_url: str | None = None) -> None:
        self._online = online
        self._check_url = check_url
        self._listeners: list[Listener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_online(self, online: bool) -> None:
        """Record the new state; listeners fire only on an actual transition."""
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            listener(online)

    async def check_reachability(self, *, timeout: float = 5.0) -> bool:
        """HEAD the reachability URL and update the state."""
        url = self._check_url or get_config().online_check_url
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                await client.head(url)
            online = True
        except httpx.HTTPError as exc:
            logger.debug("Reachability check failed: %s", exc)
            online = False
        self.set_online(online)
        return online

    async def wait_for_online(self, timeout: float | None = None) -> bool:
        """Wait until the monitor reports online.

        Returns True immediately when already online, True on an online
        transition, and False when *timeout* seconds (config default: 30)
        elapse first. The transition listener is removed in every outcome.
        """
        if self._online:
            return True

        limit = get_config().online_timeout if timeout is None else timeout
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

        def _on_change(online: bool) -> None:
            if online and not future.done():
                future.set_result(True)

        self.add_listener(_on_change)
        try:
            return await asyncio.wait_for(future, limit)
        except asyncio.TimeoutError:
            logger.warning("Still offline after %.1fs", limit)
            return False
        finally:
            self.remove_listener(_on_change)
