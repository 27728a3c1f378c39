"""securesheets - Async client for SecureSheets spreadsheet APIs.

Signs requests with HMAC-SHA256, adds nonce and CSRF anti-replay tokens,
enforces a client-side hourly rate limit and caches responses.

Example:
    from securesheets import ClientSettings, SecureSheetsClient

    settings = ClientSettings(
        script_url="https://script.google.com/macros/s/SCRIPT_ID/exec",
        api_token="your-token",
        hmac_secret="your-secret",
    )
    async with SecureSheetsClient(settings) as client:
        data = await client.get_data(["Sheet2", "Sheet4"])
"""

__version__ = "1.3.0"

from securesheets.cache import CacheEntry, ResponseCache
from securesheets.client import (
    CheckResult,
    ConnectionTestResult,
    RateLimitReport,
    RequestOptions,
    SecureSheetsClient,
)
from securesheets.config import ClientSettings, load_settings
from securesheets.csrf import CsrfTokenManager
from securesheets.exceptions import (
    ConfigurationError,
    NetworkError,
    NonceExhaustionError,
    RateLimitExceeded,
    RequestTimeoutError,
    SecureSheetsError,
    ServerError,
    ValidationError,
    format_error,
)
from securesheets.nonce import NonceGenerator, NonceStatus
from securesheets.rate_limit import RateLimiter, RateLimitStatus
from securesheets.signing import (
    canonical_string,
    compute_hmac,
    sign,
    verify_signature,
    verify_webhook_signature,
)
from securesheets.transport import HttpResponse, HttpxTransport, Transport

__all__ = [
    "CacheEntry",
    "CheckResult",
    "ClientSettings",
    "ConfigurationError",
    "ConnectionTestResult",
    "CsrfTokenManager",
    "HttpResponse",
    "HttpxTransport",
    "NetworkError",
    "NonceExhaustionError",
    "NonceGenerator",
    "NonceStatus",
    "RateLimitExceeded",
    "RateLimitReport",
    "RateLimitStatus",
    "RateLimiter",
    "RequestOptions",
    "RequestTimeoutError",
    "ResponseCache",
    "SecureSheetsClient",
    "SecureSheetsError",
    "ServerError",
    "Transport",
    "ValidationError",
    "__version__",
    "canonical_string",
    "compute_hmac",
    "format_error",
    "load_settings",
    "sign",
    "verify_signature",
    "verify_webhook_signature",
]
