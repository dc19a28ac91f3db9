"""In-process caches used by the price-history service."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class TtlCache(Generic[K, V]):
    """Small expiring map keyed by arbitrary hashable keys."""

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[K, tuple[float, V]] = {}

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: K, value: V) -> None:
        self._entries[key] = (self._clock() + self._ttl, value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SingleFlight(Generic[K, V]):
    """Run at most one in-flight factory per key and share its result.

    Concurrent callers for the same key await the same task. A successful
    value stays cached; a failed or cancelled task is evicted so the next
    caller retries.
    """

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Future[V]] = {}

    async def get_or_create(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda done, key=key: self._evict_on_failure(key, done))
        return await asyncio.shield(task)

    def _evict_on_failure(self, key: K, task: asyncio.Future[V]) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._tasks.get(key) is task:
                del self._tasks[key]

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def invalidate(self, key: K) -> None:
        self._tasks.pop(key, None)

    def clear(self) -> None:
        self._tasks.clear()


__all__ = ["SingleFlight", "TtlCache"]
