"""HMAC-SHA256 request signing.

The signature covers a canonical string built from the request parameters:
keys sorted by ordinal order, rendered as ``key=value`` pairs joined by ``&``.
Identical parameter sets produce identical signatures regardless of insertion
order, which lets the server recompute and compare.

Values are limited to strings, numbers, booleans and None, rendered the way
the server's JavaScript ``String()`` renders them.
"""

from __future__ import annotations

import hmac
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from securesheets.exceptions import ConfigurationError, ValidationError

DIGEST_NAME = "sha256"

SCALAR_TYPES = (str, int, float, bool)


def _render_float(value: float) -> str:
    """Render a float like JavaScript's Number-to-String conversion.

    >>> _render_float(2.0), _render_float(1e21), _render_float(1.5e-7)
    ('2', '1e+21', '1.5e-7')
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    # repr gives the shortest round-tripping digits, as JavaScript does
    _, digit_tuple, exp = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = exp + k  # decimal point position relative to the first digit

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits[0] + (f".{digits[1:]}" if k > 1 else "")
        text = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return f"-{text}" if value < 0 else text


def render_value(value: Any) -> str:
    # Mirror how the server stringifies query values
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _render_float(value)
    return str(value)


def validate_params(params: Any) -> Mapping[str, Any]:
    if not isinstance(params, Mapping):
        raise ValidationError(
            f"Request parameters must be a mapping, got {type(params).__name__}"
        )
    for key, value in params.items():
        if not isinstance(key, str):
            raise ValidationError(f"Parameter keys must be strings, got {key!r}")
        # Nested values have no rendering the server can recompute
        if value is not None and not isinstance(value, SCALAR_TYPES):
            raise ValidationError(
                f"Parameter {key!r} must be a string, number or boolean, "
                f"got {type(value).__name__}"
            )
    return params


def canonical_string(params: Mapping[str, Any]) -> str:
    """Build the canonical ``k1=v1&k2=v2`` string that gets signed.

    Raises:
        ValidationError: If params is not a mapping of string keys to scalar values
    """
    checked = validate_params(params)
    return "&".join(f"{key}={render_value(checked[key])}" for key in sorted(checked))


def compute_hmac(message: str, secret: str) -> str:
    """Compute the hex-encoded HMAC-SHA256 of ``message`` keyed by ``secret``.

    Raises:
        ConfigurationError: If SHA-256 is not available to hmac
    """
    try:
        mac = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), DIGEST_NAME)
    except ValueError as e:
        raise ConfigurationError(f"HMAC-{DIGEST_NAME.upper()} is unavailable: {e}") from e
    return mac.hexdigest()


def sign(params: Mapping[str, Any], secret: str) -> str:
    """Sign a parameter mapping.

    Args:
        params: Request parameters (values are strings or numbers; None
            renders as an empty string)
        secret: Shared HMAC secret

    Returns:
        Hex-encoded HMAC-SHA256 digest of the canonical string
    """
    return compute_hmac(canonical_string(params), secret)


def verify_signature(message: str, signature: str, secret: str) -> bool:
    """Check ``signature`` against the HMAC of ``message`` in constant time.

    Returns False when any argument is empty.
    """
    if not message or not signature or not secret:
        return False
    expected = compute_hmac(message, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode())


# Inbound webhooks carry the HMAC of the raw payload in X-Webhook-Signature
verify_webhook_signature = verify_signature
