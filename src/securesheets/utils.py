"""Shared helpers for token generation and timestamps."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import UTC, datetime

BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Source of random base36 strings; takes the desired length
RandomSource = Callable[[int], str]

# Clock returning epoch seconds
Clock = Callable[[], float]


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base36.

    >>> to_base36(0)
    '0'
    >>> to_base36(35)
    'z'
    >>> to_base36(36)
    '10'
    """
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    """Return ``length`` cryptographically random base36 characters."""
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def epoch_millis(now: float) -> int:
    """Convert epoch seconds to integer milliseconds."""
    return int(now * 1000)


def iso_timestamp(now: float) -> str:
    """Render epoch seconds as ISO 8601 UTC with millisecond precision.

    Matches the ``2024-01-01T00:00:00.000Z`` shape the API expects.
    """
    dt = datetime.fromtimestamp(now, UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_request_id(now: float, random_source: RandomSource = random_base36) -> str:
    """Generate an id for correlating log lines of one request."""
    return f"req_{epoch_millis(now)}_{random_source(9)}"
