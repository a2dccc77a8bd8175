"""Cache adapters: TTL cache, versioned invalidation, header index cache."""

from .header_index import HeaderIndexCache
from .ttl_cache import Cache, TtlCache, put_json
from .versioned import VersionedCache

__all__ = ["Cache", "HeaderIndexCache", "TtlCache", "VersionedCache", "put_json"]
