"""Minimum spacing between outgoing propagation requests."""

from __future__ import annotations

import asyncio
import time

from .const import DEFAULT_THROTTLE_SECONDS


class RequestThrottle:
    """Serializes callers so consecutive requests are at least ``min_interval`` apart.

    Propagation calls arrive in bursts when a series move fans out; spacing
    them keeps the external calendar from answering with 429s.
    """

    def __init__(self, min_interval: float = DEFAULT_THROTTLE_SECONDS) -> None:
        self._min_interval = max(0.0, min_interval)
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def acquire(self) -> None:
        """Block until the next request may be sent."""
        async with self._lock:
            if self._last_request is not None:
                wait = self._min_interval - (time.monotonic() - self._last_request)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request = time.monotonic()
