"""Unit tests for the hotel detail cache."""
import time

from hotel_common.cache import ReadThroughCache


class TestReadThroughCache:
    def test_loader_runs_once_while_cached(self):
        cache = ReadThroughCache[str](ttl=60)
        calls = []

        def load():
            calls.append(1)
            return "Grand Plaza"

        assert cache.get_or_load(1, load) == "Grand Plaza"
        assert cache.get_or_load(1, load) == "Grand Plaza"
        assert len(calls) == 1

    def test_missing_values_are_not_cached(self):
        cache = ReadThroughCache[str](ttl=60)
        assert cache.get_or_load(1, lambda: None) is None
        assert len(cache) == 0
        assert cache.get_or_load(1, lambda: "late arrival") == "late arrival"

    def test_invalidate(self):
        cache = ReadThroughCache[str](ttl=60)
        cache.get_or_load(1, lambda: "old")
        cache.invalidate(1)
        assert cache.get(1) is None
        assert cache.get_or_load(1, lambda: "new") == "new"

    def test_invalidate_missing_key(self):
        cache = ReadThroughCache[str](ttl=60)
        cache.invalidate("nonexistent")

    def test_ttl_expiration(self):
        cache = ReadThroughCache[str](ttl=1)
        cache.get_or_load(1, lambda: "value")
        time.sleep(1.1)
        assert cache.get(1) is None

    def test_clear(self):
        cache = ReadThroughCache[int](ttl=60)
        for key in range(3):
            cache.get_or_load(key, lambda: 42)
        cache.clear()
        assert len(cache) == 0

    def test_maxsize(self):
        cache = ReadThroughCache[str](ttl=60, maxsize=2)
        for key in ("a", "b", "c"):
            cache.get_or_load(key, lambda key=key: key.upper())
        assert len(cache) == 2
        assert cache.get("c") == "C"
