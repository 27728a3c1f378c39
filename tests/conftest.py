"""Shared test fixtures for securesheets."""

from __future__ import annotations

import os

import pytest

from securesheets.client import SecureSheetsClient
from securesheets.config import ClientSettings
from tests.fakes import SCRIPT_URL, FakeClock, RecordingTransport, SequenceRandom


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep SECURESHEETS_* variables from the host out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("SECURESHEETS_"):
            monkeypatch.delenv(name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(
        script_url=SCRIPT_URL,
        api_token="test-token",
        hmac_secret="test-secret",
        origin="https://example.com",
    )


@pytest.fixture
def client(
    settings: ClientSettings, transport: RecordingTransport, clock: FakeClock
) -> SecureSheetsClient:
    return SecureSheetsClient(
        settings, transport=transport, clock=clock, random_source=SequenceRandom()
    )
