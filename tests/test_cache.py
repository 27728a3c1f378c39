"""Tests for ResponseCache."""

from __future__ import annotations

from securesheets.cache import ResponseCache
from tests.fakes import FakeClock


class TestResponseCache:
    """Tests for cache storage and lazy expiry."""

    def test_set_then_get(self, clock: FakeClock) -> None:
        cache = ResponseCache(clock=clock)
        cache.set("k", {"status": "success"}, ttl=60)
        assert cache.get("k") == {"status": "success"}

    def test_missing_key(self, clock: FakeClock) -> None:
        assert ResponseCache(clock=clock).get("nope") is None

    def test_expired_entry_removed(self, clock: FakeClock) -> None:
        """A read after ttl misses and deletes the entry for good."""
        cache = ResponseCache(clock=clock)
        cache.set("k", "v", ttl=60)
        clock.advance(61)

        assert "k" in cache
        assert cache.get("k") is None
        assert "k" not in cache
        assert cache.get("k") is None

    def test_entry_valid_at_expiry_instant(self, clock: FakeClock) -> None:
        cache = ResponseCache(clock=clock)
        cache.set("k", "v", ttl=60)
        clock.advance(60)
        assert cache.get("k") == "v"

    def test_set_overwrites(self, clock: FakeClock) -> None:
        cache = ResponseCache(clock=clock)
        cache.set("k", "old", ttl=10)
        cache.set("k", "new", ttl=100)
        clock.advance(50)
        assert cache.get("k") == "new"
        assert len(cache) == 1

    def test_clear_single_key(self, clock: FakeClock) -> None:
        cache = ResponseCache(clock=clock)
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.clear("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_clear_all(self, clock: FakeClock) -> None:
        cache = ResponseCache(clock=clock)
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.clear()
        assert len(cache) == 0

    def test_returned_values_are_copies(self, clock: FakeClock) -> None:
        """Mutating a stored or returned value leaves the cached entry intact."""
        cache = ResponseCache(clock=clock)
        stored = {"data": ["a"]}
        cache.set("k", stored, ttl=60)
        stored["data"].append("b")

        first = cache.get("k")
        first["data"].append("tampered")

        assert cache.get("k") == {"data": ["a"]}
