"""Tests for the TTL cache."""

from __future__ import annotations

import pytest

from rest_dynamic_operator.utils.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Test cases for TTLCache."""

    def setup_method(self):
        """Create a cache driven by a fake clock."""
        self.clock = FakeClock()
        self.cache = TTLCache(ttl=30.0, clock=self.clock)

    def test_get_missing(self):
        assert self.cache.get("missing") is None

    def test_set_and_get(self):
        self.cache.set("k", {"openapi": "3.0.0"})
        assert self.cache.get("k") == {"openapi": "3.0.0"}

    def test_entry_expires(self):
        """Test that entries older than the ttl are dropped."""
        self.cache.set("k", "v")
        self.clock.now = 30.5
        assert self.cache.get("k") is None
        assert len(self.cache) == 0

    def test_entry_within_ttl(self):
        self.cache.set("k", "v")
        self.clock.now = 29.0
        assert self.cache.get("k") == "v"

    def test_get_or_load_caches(self):
        calls = []

        def loader():
            calls.append(1)
            return "loaded"

        assert self.cache.get_or_load("k", loader) == "loaded"
        assert self.cache.get_or_load("k", loader) == "loaded"
        assert len(calls) == 1

    def test_get_or_load_reloads_after_expiry(self):
        values = iter(["first", "second"])
        self.cache.get_or_load("k", lambda: next(values))
        self.clock.now = 31.0
        assert self.cache.get_or_load("k", lambda: next(values)) == "second"

    def test_get_or_load_error_not_stored(self):
        """Test that loader failures leave the cache empty."""

        def loader():
            raise RuntimeError("unreachable")

        with pytest.raises(RuntimeError):
            self.cache.get_or_load("k", loader)
        assert len(self.cache) == 0

    def test_invalidate_pattern(self):
        self.cache.set("https://a/openapi.yaml", 1)
        self.cache.set("https://b/openapi.yaml", 2)
        self.cache.invalidate("https://a")
        assert self.cache.get("https://a/openapi.yaml") is None
        assert self.cache.get("https://b/openapi.yaml") == 2

    def test_invalidate_all(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.invalidate()
        assert len(self.cache) == 0
