from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

"""Shared read-through cache adapter.

String values with a TTL in seconds, like the hosted script cache. No locking
is expected of callers: a stale read is bounded by the TTL.
"""

__all__ = [
    "Cache",
    "TtlCache",
    "MAX_ITEM_BYTES",
    "put_json",
]

logger = logging.getLogger(__name__)

MAX_ITEM_BYTES = 100_000
SWEEP_INTERVAL_SECONDS = 60


class Cache(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def remove(self, key: str) -> None: ...


class TtlCache:
    """In-process TTL cache.

    Expired entries are dropped on read, and swept from every key at most once
    per ``sweep_interval`` seconds on write. Keys orphaned by a version bump
    are never read again, so the sweep is what reclaims them.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock
        self._mutex = threading.Lock()
        self.sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def get(self, key: str) -> str | None:
        now = self._clock()
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if not isinstance(value, str):
            raise TypeError(f"cache values must be str, got {type(value).__name__}")
        now = self._clock()
        with self._mutex:
            if now >= self._next_sweep:
                self._sweep(now)
            self._entries[key] = (value, now + ttl_seconds)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        self._next_sweep = now + self.sweep_interval
        if expired:
            logger.debug("cache sweep removed %d expired entries", len(expired))

    def remove(self, key: str) -> None:
        with self._mutex:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        """Physical presence, ignoring expiry. Used to observe orphaned entries."""
        with self._mutex:
            return key in self._entries

    def __len__(self) -> int:
        with self._mutex:
            return len(self._entries)


def put_json(
    cache: Cache, key: str, data: Any, ttl_seconds: int, max_bytes: int = MAX_ITEM_BYTES
) -> bool:
    """Store ``data`` as JSON unless it exceeds ``max_bytes``. Returns True when stored."""
    try:
        text = json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.warning("cache put skipped for %s: not serialisable (%s)", key, e)
        return False
    if len(text.encode("utf-8")) > max_bytes:
        logger.warning("cache put skipped for %s: %d bytes exceeds %d", key, len(text), max_bytes)
        return False
    cache.put(key, text, ttl_seconds)
    return True
