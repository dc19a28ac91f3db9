"""Minimum-spacing throttle shared by outbound price API calls."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Space calls at least ``60 / requests_per_minute`` seconds apart.

    Callers serialise on an ``asyncio.Lock`` so concurrent coroutines queue up
    instead of bursting once the interval has elapsed.
    """

    def __init__(
        self,
        requests_per_minute: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._interval = self._interval_for(requests_per_minute)
        self._requests_per_minute = requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request_time: float | None = None

    @staticmethod
    def _interval_for(requests_per_minute: int) -> float:
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be greater than zero")
        return 60.0 / requests_per_minute

    @property
    def requests_per_minute(self) -> int:
        return self._requests_per_minute

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def update_requests_per_minute(self, requests_per_minute: int) -> None:
        self._interval = self._interval_for(requests_per_minute)
        self._requests_per_minute = requests_per_minute
        logger.info("Rate limit updated to %s requests per minute", requests_per_minute)

    async def ensure_rate_limit(self) -> None:
        async with self._lock:
            if self._last_request_time is not None:
                wait = self._last_request_time + self._interval - self._clock()
                if wait > 0:
                    logger.debug("Throttling outbound request for %.2fs", wait)
                    await self._sleep(wait)
            self._last_request_time = self._clock()


__all__ = ["RateLimiter"]
