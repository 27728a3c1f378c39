"""Tests for CsrfTokenManager."""

from __future__ import annotations

import re

from securesheets.csrf import CSRF_TOKEN_LIFETIME, CsrfTokenManager
from tests.fakes import FakeClock, SequenceRandom


class TestCsrfTokenManager:
    """Tests for CSRF token caching and expiry."""

    def test_disabled_returns_none(self, clock: FakeClock) -> None:
        manager = CsrfTokenManager(enabled=False, clock=clock)
        assert manager.get_token() is None

    def test_format(self, clock: FakeClock) -> None:
        manager = CsrfTokenManager(clock=clock)
        token = manager.get_token()
        assert token is not None
        assert re.fullmatch(rf"csrf_{int(clock() * 1000)}_[0-9a-z]{{16}}", token)

    def test_reused_within_lifetime(self, clock: FakeClock) -> None:
        """Two calls within 30 minutes return the identical token."""
        manager = CsrfTokenManager(clock=clock, random_source=SequenceRandom())
        first = manager.get_token()
        clock.advance(CSRF_TOKEN_LIFETIME - 1)
        assert manager.get_token() == first

    def test_regenerated_after_expiry(self, clock: FakeClock) -> None:
        manager = CsrfTokenManager(clock=clock, random_source=SequenceRandom())
        first = manager.get_token()
        clock.advance(CSRF_TOKEN_LIFETIME)
        second = manager.get_token()
        assert second != first
        assert manager.expires_at == clock() + CSRF_TOKEN_LIFETIME

    def test_clear_forces_regeneration(self, clock: FakeClock) -> None:
        manager = CsrfTokenManager(clock=clock, random_source=SequenceRandom())
        first = manager.get_token()
        manager.clear()
        assert manager.expires_at is None
        assert manager.get_token() != first
