"""Coalescing work queue with per-key serialisation and backoff.

Guarantees:
- a key waiting in the queue is held only once, however often it is added
- a key is handed to at most one worker at a time; adding it while it is
  being processed schedules exactly one more round after ``done``
- ``add_rate_limited`` re-adds a key after an exponential delay that grows
  with consecutive failures until ``forget`` resets it
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from typing import Final


class _Shutdown:
    pass


_SHUTDOWN: Final = _Shutdown()


class WorkQueue[K: Hashable]:
    def __init__(self, *, base_delay: float = 0.5, max_delay: float = 300.0) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._ready: asyncio.Queue[K | _Shutdown] = asyncio.Queue()
        self._dirty: set[K] = set()
        self._processing: set[K] = set()
        self._failures: dict[K, int] = {}
        self._timers: set[asyncio.TimerHandle] = set()
        self._shutting_down = False

    def __len__(self) -> int:
        return len(self._dirty)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def add(self, key: K) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._ready.put_nowait(key)

    async def get(self) -> K | None:
        """Wait for the next key, or return ``None`` once the queue shuts down."""

        item = await self._ready.get()
        if isinstance(item, _Shutdown):
            # leave the marker for the next waiting worker
            self._ready.put_nowait(item)
            return None
        self._dirty.discard(item)
        self._processing.add(item)
        return item

    def done(self, key: K) -> None:
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._ready.put_nowait(key)

    def delay_for(self, key: K) -> float:
        failures = self._failures.get(key, 0)
        if failures <= 0:
            return 0.0
        return min(self.base_delay * 2 ** (failures - 1), self.max_delay)

    def add_rate_limited(self, key: K) -> float:
        """Schedule ``key`` after its backoff delay and return that delay."""

        if self._shutting_down:
            return 0.0
        self._failures[key] = self._failures.get(key, 0) + 1
        delay = self.delay_for(key)
        loop = asyncio.get_running_loop()

        def fire() -> None:
            self._timers.discard(handle)
            self.add(key)

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)
        return delay

    def failures(self, key: K) -> int:
        return self._failures.get(key, 0)

    def forget(self, key: K) -> None:
        self._failures.pop(key, None)

    def shutdown(self) -> None:
        if self._shutting_down:
            return
        self._shutting_down = True
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        self._ready.put_nowait(_SHUTDOWN)


__all__ = ["WorkQueue"]
