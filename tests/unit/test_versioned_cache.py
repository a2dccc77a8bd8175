from __future__ import annotations

import logging

from answerboard.cache import VersionedCache
from answerboard.cache.versioned import version_property


def test_key_format(versioned):
    assert versioned.key("users") == "users_v0_all"
    assert versioned.key("users", "active", "published") == "users_v0_active_published"


def test_loader_called_once_until_invalidated(versioned):
    calls = []

    def load():
        calls.append(1)
        return [{"id": len(calls)}]

    assert versioned.get("users", [], load) == [{"id": 1}]
    assert versioned.get("users", [], load) == [{"id": 1}]
    assert len(calls) == 1

    assert versioned.invalidate("users") == 1
    assert versioned.get("users", [], load) == [{"id": 2}]
    assert len(calls) == 2


def test_invalidate_orphans_old_entries(versioned, cache, clock):
    versioned.get("users", [], lambda: ["old"], ttl=60)
    versioned.invalidate("users")
    assert versioned.get("users", [], lambda: ["new"], ttl=60) == ["new"]
    # 旧バージョンのエントリは TTL まで残るが参照されない
    assert "users_v0_all" in cache
    assert "users_v1_all" in cache
    clock.advance(61)
    assert cache.get("users_v0_all") is None


def test_version_shared_through_property_store(cache, properties):
    writer = VersionedCache(cache, properties)
    reader = VersionedCache(cache, properties)
    reader.get("users", [], lambda: "before")
    writer.invalidate("users")
    assert properties.get(version_property("users")) == "1"
    assert reader.get("users", [], lambda: "after") == "after"


def test_cached_none_is_returned(versioned):
    calls = []

    def load():
        calls.append(1)
        return None

    assert versioned.get("users", ["id", "x"], load) is None
    assert versioned.get("users", ["id", "x"], load) is None
    assert len(calls) == 1


def test_non_numeric_version_falls_back_to_zero(versioned, properties, caplog):
    properties.set(version_property("users"), "garbage")
    with caplog.at_level(logging.WARNING):
        assert versioned.version("users") == 0


def test_cache_failure_falls_through_to_loader(properties, caplog):
    class BrokenCache:
        def get(self, key):
            raise RuntimeError("cache down")

        def put(self, key, value, ttl_seconds):
            raise RuntimeError("cache down")

        def remove(self, key):
            pass

    vc = VersionedCache(BrokenCache(), properties)
    assert vc.get("users", [], lambda: [1, 2]) == [1, 2]
    assert "cache read failed" in caplog.text
    assert "cache write failed" in caplog.text


def test_repeated_invalidation_does_not_accumulate_entries(versioned, cache, clock):
    for i in range(1000):
        versioned.get("users", [], lambda i=i: [i], ttl=900)
        versioned.invalidate("users")
    assert len(cache) == 1000
    clock.advance(10_000)
    assert versioned.get("users", [], lambda: ["latest"], ttl=900) == ["latest"]
    assert len(cache) == 1
