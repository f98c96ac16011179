"""
Expiring key -> count store used by the throttling filters.

The filter chain only needs ``increment(key, window_ms) -> count``. Any
backend honouring that contract can be plugged in; MemoryRateCounter keeps the
counters in process.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Protocol, Tuple, runtime_checkable

from group_inspector.util.logger import get_logger

logger = get_logger("rate_counter")


def counter_key(applicant_id: str, purpose: str) -> str:
    """Build the store key for one applicant and purpose tag (``unique``, ``level``)."""
    return f"{applicant_id}:{purpose}"


@runtime_checkable
class RateCounter(Protocol):
    """Generic time-expiring counter store."""

    async def increment(self, key: str, window_ms: int) -> int:
        """Increment ``key`` and return the post-increment count.

        The entry expires ``window_ms`` milliseconds after this call; an expired
        entry counts from zero again.
        """
        ...


class MemoryRateCounter:
    """
    In-process RateCounter.

    Each increment rewrites the entry with a fresh expiry, like a cache
    ``set(key, count + 1, ttl)``. Expired entries are dropped lazily and by
    ``purge_expired``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def increment(self, key: str, window_ms: int) -> int:
        async with self._lock:
            now = self._clock()
            count, expires_at = self._entries.get(key, (0, 0.0))
            if expires_at <= now:
                count = 0
            count += 1
            self._entries[key] = (count, now + window_ms / 1000.0)
            logger.debug("[COUNTER] %s -> %d", key, count)
            return count

    def peek(self, key: str) -> int:
        """Return the live count for ``key`` without touching it."""
        count, expires_at = self._entries.get(key, (0, 0.0))
        return count if expires_at > self._clock() else 0

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
