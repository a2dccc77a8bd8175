from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from answerboard.store.properties import PropertyStore

from .ttl_cache import Cache, put_json

"""Versioned cache keys for cheap invalidation.

Keys have the form ``<kind>_v<version>_<params>``. `invalidate` bumps the
per-kind counter held in the property store, so every entry built with the
old version becomes unreachable at once. Old entries are left in place and
expire with their TTL.

The version is read from the property store on every call (no in-process
memo), so a bump made by one process is seen by the next read in any other.
"""

__all__ = [
    "VersionedCache",
    "version_property",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def version_property(kind: str) -> str:
    return f"{kind.upper()}_CACHE_VERSION"


class VersionedCache:
    def __init__(self, cache: Cache, properties: PropertyStore, default_ttl: int = 900) -> None:
        self.cache = cache
        self.properties = properties
        self.default_ttl = default_ttl

    def version(self, kind: str) -> int:
        raw = self.properties.get(version_property(kind))
        try:
            return int(raw or 0)
        except ValueError:
            logger.warning("non-numeric cache version for %s: %r, using 0", kind, raw)
            return 0

    def key(self, kind: str, *params: Any) -> str:
        suffix = "_".join(str(p) for p in params) if params else "all"
        return f"{kind}_v{self.version(kind)}_{suffix}"

    def get(
        self,
        kind: str,
        params: Sequence[Any],
        loader: Callable[[], T],
        ttl: int | None = None,
    ) -> T:
        """Return the cached value for (kind, params) or compute and store it."""
        key = self.key(kind, *params)
        try:
            cached = self.cache.get(key)
        except Exception as e:
            logger.error("cache read failed for %s: %s", key, e)
            cached = None
        if cached is not None:
            try:
                return json.loads(cached)
            except ValueError:
                logger.warning("cache entry %s is not valid JSON, recomputing", key)
        value = loader()
        try:
            put_json(self.cache, key, value, ttl or self.default_ttl)
        except Exception as e:
            logger.error("cache write failed for %s: %s", key, e)
        return value

    def invalidate(self, kind: str) -> int:
        new_version = self.properties.increment(version_property(kind))
        logger.debug("cache kind=%s bumped to v%d", kind, new_version)
        return new_version
