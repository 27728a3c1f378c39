"""Tests for RateLimiter."""

from __future__ import annotations

import pytest

from securesheets.exceptions import RateLimitExceeded
from securesheets.rate_limit import RATE_WINDOW, RateLimiter
from tests.fakes import FakeClock


class TestRateLimiter:
    """Tests for the hourly request window."""

    def test_rejects_after_quota(self, clock: FakeClock) -> None:
        """After max_requests calls the next one fails with the reset time."""
        limiter = RateLimiter(3, clock=clock)
        for _ in range(3):
            limiter.check_and_consume()

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check_and_consume()
        assert exc_info.value.resets_at == clock() + RATE_WINDOW
        assert limiter.count == 3

    def test_window_rolls_over(self, clock: FakeClock) -> None:
        """Past one hour from window start, calls succeed and count restarts at 1."""
        limiter = RateLimiter(2, clock=clock)
        limiter.check_and_consume()
        limiter.check_and_consume()

        clock.advance(RATE_WINDOW + 1)
        limiter.check_and_consume()
        assert limiter.count == 1
        assert limiter.resets_at == clock() + RATE_WINDOW

    def test_exactly_one_hour_is_same_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter(1, clock=clock)
        limiter.check_and_consume()
        clock.advance(RATE_WINDOW)
        with pytest.raises(RateLimitExceeded):
            limiter.check_and_consume()

    def test_disabled_never_counts(self, clock: FakeClock) -> None:
        limiter = RateLimiter(1, enabled=False, clock=clock)
        for _ in range(5):
            limiter.check_and_consume()
        assert limiter.count == 0

    def test_reset(self, clock: FakeClock) -> None:
        limiter = RateLimiter(1, clock=clock)
        limiter.check_and_consume()
        clock.advance(60)
        limiter.reset()
        assert limiter.count == 0
        assert limiter.resets_at == clock() + RATE_WINDOW
        limiter.check_and_consume()

    def test_status_does_not_mutate(self, clock: FakeClock) -> None:
        limiter = RateLimiter(5, clock=clock)
        limiter.check_and_consume()
        clock.advance(600)

        status = limiter.status()
        assert status.enabled is True
        assert status.current_requests == 1
        assert status.max_requests == 5
        assert status.remaining == 4
        assert status.resets_in == RATE_WINDOW - 600
        assert limiter.count == 1

    def test_remaining_never_negative(self, clock: FakeClock) -> None:
        limiter = RateLimiter(3, clock=clock)
        for _ in range(3):
            limiter.check_and_consume()
        limiter.max_requests = 1
        assert limiter.status().remaining == 0
