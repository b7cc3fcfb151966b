"""
Tests for the screensense.vision.cache module.
"""

import pytest

from screensense.vision.cache import ResultCache, make_cache_key


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMakeCacheKey:
    """Tests for cache key derivation."""

    def test_short_screenshot(self):
        assert make_cache_key("abc", "click login") == "abc_click login"

    def test_only_prefix_of_screenshot_used(self):
        prefix = "A" * 100

        assert make_cache_key(prefix + "X" * 50, "go") == make_cache_key(prefix + "Y" * 10, "go")

    def test_instruction_distinguishes_keys(self):
        screenshot = "A" * 200

        assert make_cache_key(screenshot, "one") != make_cache_key(screenshot, "two")


class TestResultCache:
    """Tests for the LRU + TTL cache."""

    def test_set_and_get(self):
        cache = ResultCache()
        cache.set("k", [1, 2])

        assert "k" in cache
        assert cache.get("k") == [1, 2]
        assert len(cache) == 1

    def test_missing_returns_default(self):
        cache = ResultCache()

        assert cache.get("missing") is None
        assert cache.get("missing", []) == []
        assert "missing" not in cache

    def test_none_value_is_a_hit(self):
        cache = ResultCache()
        cache.set("k", None)

        assert "k" in cache
        assert cache.get("k", "default") is None

    def test_evicts_least_recently_used(self):
        cache = ResultCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")

        cache.set("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_entries_expire(self):
        clock = FakeClock()
        cache = ResultCache(ttl=10, clock=clock)
        cache.set("k", "v")

        clock.now = 9.9
        assert cache.get("k") == "v"

        clock.now = 10.0
        assert "k" not in cache
        assert len(cache) == 0

    def test_overwrite_refreshes_timestamp(self):
        clock = FakeClock()
        cache = ResultCache(ttl=10, clock=clock)
        cache.set("k", "old")
        clock.now = 8
        cache.set("k", "new")

        clock.now = 15
        assert cache.get("k") == "new"

    def test_clear(self):
        cache = ResultCache()
        cache.set("a", 1)

        cache.clear()

        assert len(cache) == 0

    @pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"ttl": 0}, {"ttl": -1}])
    def test_invalid_limits(self, kwargs):
        with pytest.raises(ValueError):
            ResultCache(**kwargs)
