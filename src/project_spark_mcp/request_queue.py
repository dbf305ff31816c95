"""Client-side pacing for Gemini calls — FIFO spacing plus a sliding request window.

One ``RequestQueue`` is constructed per process (see ``services.py``) and
shared by reference; tests build isolated instances. Pacing is advisory rate
limiting only: there is no priority and no cancellation of queued requests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import ServerConfig
from .errors import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestQueue:
    """Serializes requests in arrival order with a minimum gap between starts.

    ``asyncio.Lock`` wakes waiters in FIFO order, so holding it for the whole
    request keeps the queue strictly first-come, first-served.
    """

    def __init__(
        self,
        *,
        min_interval: float = 1.0,
        max_requests: int = 10,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval = min_interval
        self._max_requests = max_requests
        self._window = window
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_request: float | None = None
        self._timestamps: deque[float] = deque()
        self._pending = 0

    @classmethod
    def from_config(cls, cfg: ServerConfig) -> RequestQueue:
        return cls(
            min_interval=cfg.ai_min_interval,
            max_requests=cfg.ai_max_requests,
            window=cfg.ai_rate_window,
        )

    @property
    def pending(self) -> int:
        """Requests submitted but not yet finished (including the running one)."""
        return self._pending

    def check_rate_limit(self) -> None:
        """Record one request in the window, or raise when it is full."""
        now = self._clock()
        while self._timestamps and now - self._timestamps[0] >= self._window:
            self._timestamps.popleft()
        if len(self._timestamps) >= self._max_requests:
            retry_after = self._window - (now - self._timestamps[0])
            raise RateLimitError(
                "Rate limit exceeded. Please wait before making more requests.",
                retry_after=retry_after,
            )
        self._timestamps.append(now)

    async def submit(self, request_fn: Callable[[], Awaitable[T]], *, count: bool = True) -> T:
        """Run *request_fn* once every earlier submission has finished.

        Pass ``count=False`` when the caller already counted this request
        with :meth:`check_rate_limit`, as before a retry loop; it is still
        paced.

        Raises:
            RateLimitError: If the sliding window is already full.
        """
        if count:
            self.check_rate_limit()
        self._pending += 1
        try:
            async with self._lock:
                if self._last_request is not None:
                    wait = self._min_interval - (self._clock() - self._last_request)
                    if wait > 0:
                        logger.debug("Pacing AI request for %.2fs", wait)
                        await asyncio.sleep(wait)
                self._last_request = self._clock()
                return await request_fn()
        finally:
            self._pending -= 1

    def diagnostics(self) -> dict:
        now = self._clock()
        in_window = sum(1 for t in self._timestamps if now - t < self._window)
        return {
            "pending": self._pending,
            "requests_in_window": in_window,
            "max_requests": self._max_requests,
            "window_seconds": self._window,
            "min_interval_seconds": self._min_interval,
        }
