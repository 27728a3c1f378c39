"""Tests for NonceGenerator."""

from __future__ import annotations

import re

import pytest

from securesheets.exceptions import NonceExhaustionError
from securesheets.nonce import MAX_ATTEMPTS, MAX_TRACKED_NONCES, NonceGenerator
from securesheets.utils import to_base36
from tests.fakes import FakeClock, SequenceRandom


class TestNonceGenerator:
    """Tests for nonce generation and tracking."""

    def test_disabled_returns_none(self, clock: FakeClock) -> None:
        generator = NonceGenerator(enabled=False, clock=clock)
        assert generator.generate() is None
        assert len(generator) == 0

    def test_format(self, clock: FakeClock) -> None:
        """Nonce is base36 millis followed by 9 base36 chars."""
        generator = NonceGenerator(clock=clock)
        nonce = generator.generate()
        assert nonce is not None
        prefix = to_base36(int(clock() * 1000))
        assert nonce.startswith(prefix)
        assert re.fullmatch(r"[0-9a-z]{9}", nonce[len(prefix) :])

    def test_generated_nonce_is_tracked(self, clock: FakeClock) -> None:
        generator = NonceGenerator(clock=clock)
        nonce = generator.generate()
        assert nonce in generator

    def test_bounded_at_capacity(self, clock: FakeClock) -> None:
        """1001 generations leave exactly 1000 tracked, the first evicted."""
        generator = NonceGenerator(clock=clock, random_source=SequenceRandom())
        first = generator.generate()
        for _ in range(MAX_TRACKED_NONCES):
            generator.generate()

        assert len(generator) == MAX_TRACKED_NONCES
        assert first not in generator

    def test_retries_on_collision(self, clock: FakeClock) -> None:
        """A colliding candidate is retried with fresh randomness."""
        outputs = iter(["aaaaaaaaa", "aaaaaaaaa", "bbbbbbbbb"])
        generator = NonceGenerator(clock=clock, random_source=lambda _n: next(outputs))
        first = generator.generate()
        second = generator.generate()
        assert first != second
        assert second is not None
        assert second.endswith("bbbbbbbbb")

    def test_exhaustion_raises(self, clock: FakeClock) -> None:
        """Persistent collisions raise after the attempt limit."""
        generator = NonceGenerator(clock=clock, random_source=lambda _n: "aaaaaaaaa")
        generator.generate()
        with pytest.raises(NonceExhaustionError) as exc_info:
            generator.generate()
        assert exc_info.value.attempts == MAX_ATTEMPTS
        assert len(generator) == 1

    def test_status_and_clear(self, clock: FakeClock) -> None:
        generator = NonceGenerator(clock=clock, random_source=SequenceRandom())
        generator.generate()
        generator.generate()

        status = generator.status()
        assert status.enabled is True
        assert status.used_count == 2
        assert status.max_tracked == MAX_TRACKED_NONCES

        generator.clear()
        assert generator.status().used_count == 0
