"""Short-lived optimistic counter adjustments.

A delta bridges the gap between a click and the server's answer. Every delta
expires on its own, so an abandoned mutation can never skew a counter for
longer than the configured lifetime.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from mediagate.core.settings import settings

Clock = Callable[[], float]


@dataclass(frozen=True)
class OptimisticDelta:
    """Signed adjustment to one item's displayed total."""

    content_id: str
    delta: int
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class OptimisticCache:
    """Per-content deltas with a hard expiry, keyed by content id."""

    def __init__(self, ttl_seconds: float | None = None, clock: Clock = time.monotonic) -> None:
        self.ttl_seconds = (
            settings.optimistic_ttl_ms / 1000 if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._deltas: dict[str, OptimisticDelta] = {}

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._deltas)

    def apply(self, content_id: str, delta: int) -> OptimisticDelta:
        """Add ``delta`` to the item's pending adjustment and restart its expiry."""
        now = self._clock()
        current = self._deltas.get(content_id)
        base = 0 if current is None or current.expired(now) else current.delta
        entry = OptimisticDelta(content_id, base + delta, now + self.ttl_seconds)
        self._deltas[content_id] = entry
        return entry

    def get(self, content_id: str) -> int:
        """Return the live delta for an item, 0 once it has expired."""
        entry = self._deltas.get(content_id)
        if entry is None:
            return 0
        if entry.expired(self._clock()):
            del self._deltas[content_id]
            return 0
        return entry.delta

    def displayed_total(self, content_id: str, server_total: int) -> int:
        return max(0, server_total + self.get(content_id))

    def discard(self, content_id: str) -> None:
        self._deltas.pop(content_id, None)

    def purge_expired(self) -> int:
        """Drop every expired delta and return how many were removed."""
        now = self._clock()
        stale = [key for key, entry in self._deltas.items() if entry.expired(now)]
        for key in stale:
            del self._deltas[key]
        return len(stale)
