"""SecureSheetsClient - Main API for securesheets.

Composes the signer, nonce generator, CSRF manager, rate limiter and
response cache to send authenticated calls to a SecureSheets web app.
All protection state lives on the client instance, so independent clients
in one process never share quotas, caches or tokens.
"""

from __future__ import annotations

import copy
import json
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import TracebackType
from typing import Any

from loguru import logger

from securesheets.cache import ResponseCache
from securesheets.config import ClientSettings, load_settings
from securesheets.csrf import CsrfTokenManager
from securesheets.exceptions import (
    ConfigurationError,
    NetworkError,
    SecureSheetsError,
    ServerError,
    ValidationError,
)
from securesheets.logging import clear_request_context, set_request_context
from securesheets.nonce import NonceGenerator, NonceStatus
from securesheets.rate_limit import RateLimiter, RateLimitStatus
from securesheets.signing import render_value, sign, validate_params
from securesheets.transport import HttpResponse, HttpxTransport, Transport
from securesheets.utils import (
    Clock,
    RandomSource,
    generate_request_id,
    iso_timestamp,
    random_base36,
)

# Fields added to every protected request; caller values are overwritten
TOKEN_FIELD = "token"
TIMESTAMP_FIELD = "timestamp"
ORIGIN_FIELD = "origin"
NONCE_FIELD = "nonce"
CSRF_FIELD = "csrf-token"
SIGNATURE_FIELD = "signature"

CSRF_HEADER = "X-CSRF-Token"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"

READ_METHOD = "GET"
WRITE_METHOD = "POST"


@dataclass(frozen=True)
class RequestOptions:
    """Per-call options.

    Attributes:
        use_cache: Serve from and store into the response cache (reads only)
        timeout: Deadline in seconds; defaults to the client's setting
    """

    use_cache: bool = True
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValidationError("timeout must be positive")


@dataclass(frozen=True)
class RateLimitReport:
    """Client-side limiter status plus limits reported by the server."""

    client: RateLimitStatus
    server_remaining: int | None = None
    server_resets_at: str | None = None


@dataclass
class CheckResult:
    """Outcome of one connection check."""

    passed: bool = False
    message: str = ""
    data: dict[str, Any] | None = None


@dataclass
class ConnectionTestResult:
    """Result of ``test_connection``."""

    success: bool
    health: CheckResult
    config: CheckResult
    auth: CheckResult
    server: dict[str, Any] | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


def _cache_key(method: str, params: Mapping[str, Any]) -> str:
    # Keyed on the logical request, before token/timestamp/nonce/signature
    return f"{method}:" + json.dumps(
        params, sort_keys=True, default=str, separators=(",", ":")
    )


def _redact(params: Mapping[str, Any]) -> dict[str, Any]:
    hidden = {TOKEN_FIELD, SIGNATURE_FIELD}
    return {k: ("***" if k in hidden else v) for k, v in params.items()}


def _sheet_params(sheet: str | Sequence[str] | None) -> dict[str, str]:
    if not sheet:
        return {}
    if isinstance(sheet, str):
        return {"sheet": sheet}
    return {"sheets": ",".join(sheet)}


class SecureSheetsClient:
    """Client for a SecureSheets spreadsheet API.

    Example:
        >>> settings = ClientSettings(
        ...     script_url="https://script.google.com/macros/s/ID/exec",
        ...     api_token="token",
        ...     hmac_secret="secret",
        ... )
        >>> async with SecureSheetsClient(settings) as client:
        ...     data = await client.get_data("Sheet2")
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        transport: Transport | None = None,
        clock: Clock = time.time,
        random_source: RandomSource = random_base36,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Client settings; read from SECURESHEETS_* env vars if omitted
            transport: Transport implementation; defaults to HttpxTransport
            clock: Source of epoch seconds for windows, expiries and timestamps
            random_source: Source of random base36 strings for nonces and tokens
        """
        self._settings = settings if settings is not None else load_settings()
        self._clock = clock
        self._random_source = random_source
        self._transport = transport or HttpxTransport(timeout=self._settings.timeout)
        self._rate_limiter = RateLimiter(
            self._settings.max_requests,
            self._settings.rate_limit_enabled,
            clock=clock,
        )
        self._cache = ResponseCache(clock=clock)
        self._nonces = NonceGenerator(
            self._settings.enable_nonce, clock=clock, random_source=random_source
        )
        self._csrf = CsrfTokenManager(
            self._settings.enable_csrf, clock=clock, random_source=random_source
        )
        self.server_info: dict[str, Any] | None = None

    # --- Configuration ---

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def nonces(self) -> NonceGenerator:
        return self._nonces

    @property
    def csrf(self) -> CsrfTokenManager:
        return self._csrf

    def configure(self, **changes: Any) -> ClientSettings:
        """Replace settings between requests.

        Unspecified fields keep their current values.

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid
        """
        self._settings = load_settings(**{**self._settings.model_dump(), **changes})
        self._rate_limiter.max_requests = self._settings.max_requests
        self._rate_limiter.enabled = self._settings.rate_limit_enabled
        self._nonces.enabled = self._settings.enable_nonce
        self._csrf.enabled = self._settings.enable_csrf

        if self._settings.debug:
            logger.debug(
                "Client configured: script_url={}, origin={}, csrf={}, nonce={}, rate_limit={}",
                self._settings.script_url,
                self._settings.origin,
                self._settings.enable_csrf,
                self._settings.enable_nonce,
                self._settings.rate_limit_enabled,
            )
        return self._settings

    async def configure_with_discovery(self, **changes: Any) -> dict[str, Any] | None:
        """Configure, then fetch the server config into ``server_info``.

        Discovery failures degrade to manual configuration: they are logged
        and None is returned.
        """
        self.configure(**changes)
        try:
            server_config = await self.get_server_config()
        except SecureSheetsError as e:
            logger.warning("Auto-discovery failed, using manual config: {}", e)
            return None

        self.server_info = copy.deepcopy(server_config)
        if self._settings.debug:
            logger.debug("Auto-discovery complete: {}", server_config)
        return server_config

    def set_debug(self, enable: bool = True) -> None:
        self.configure(debug=enable)
        logger.info("Debug mode {}", "enabled" if enable else "disabled")

    def has_feature(self, name: str) -> bool:
        """Check whether the discovered server config advertises a feature.

        Returns False when no server info is available.
        """
        if not self.server_info:
            return False
        features = self.server_info.get("features")
        if isinstance(features, Mapping):
            return features.get(name) is True
        if isinstance(features, list):
            return name in features
        return False

    # --- Orchestration ---

    async def request(
        self,
        params: Mapping[str, Any],
        options: RequestOptions | None = None,
        *,
        method: str = READ_METHOD,
    ) -> dict[str, Any]:
        """Send one authenticated request.

        Args:
            params: Logical request parameters; never mutated
            options: Per-call options
            method: "GET" for reads (query string), "POST" for writes (JSON body)

        Returns:
            The decoded JSON response

        Raises:
            ConfigurationError: If endpoint, token or secret is missing
            ValidationError: If params is not a mapping with string keys
            RateLimitExceeded: If the hourly quota is used up
            RequestTimeoutError: If the deadline passes
            NetworkError: On transport failure or an unparseable body
            ServerError: If the server returns a structured error
        """
        settings = self._settings
        if not settings.is_configured:
            raise ConfigurationError(
                "Client is not configured; missing: " + ", ".join(settings.missing_fields())
            )
        logical = validate_params(params)
        method = method.upper()
        if method not in (READ_METHOD, WRITE_METHOD):
            raise ValidationError(f"Unsupported method: {method}")
        options = options or RequestOptions()

        self._rate_limiter.check_and_consume()

        is_write = method == WRITE_METHOD
        cache_key = _cache_key(method, logical) if options.use_cache and not is_write else None
        if cache_key is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                if settings.debug:
                    logger.debug("Cache hit: {}", cache_key)
                return cached

        enriched = self._enrich(logical, is_write)
        timeout = options.timeout or settings.timeout

        set_request_context(generate_request_id(self._clock(), self._random_source))
        try:
            if settings.debug:
                logger.debug("Making {} request: {}", method, _redact(enriched))
            if is_write:
                headers: dict[str, str] = {}
                if CSRF_FIELD in enriched:
                    headers[CSRF_HEADER] = enriched[CSRF_FIELD]
                response = await self._transport.post(
                    settings.script_url, enriched, headers, timeout
                )
            else:
                query = {k: render_value(v) for k, v in enriched.items()}
                response = await self._transport.get(settings.script_url, query, timeout)
            data = self._handle_response(response)
        finally:
            clear_request_context()

        if cache_key is not None:
            self._cache.set(cache_key, data, settings.cache_ttl)
            if settings.debug:
                logger.debug("Cached: {}", cache_key)
        return data

    async def post(
        self, params: Mapping[str, Any], options: RequestOptions | None = None
    ) -> dict[str, Any]:
        """Send an authenticated write (POST with CSRF token)."""
        return await self.request(params, options, method=WRITE_METHOD)

    def _enrich(self, logical: Mapping[str, Any], is_write: bool) -> dict[str, Any]:
        """Copy the logical params and add auth material and signature."""
        settings = self._settings
        enriched = {k: v for k, v in logical.items() if v is not None}
        enriched.pop(SIGNATURE_FIELD, None)

        enriched[TOKEN_FIELD] = settings.api_token
        enriched[TIMESTAMP_FIELD] = iso_timestamp(self._clock())
        if settings.origin:
            enriched[ORIGIN_FIELD] = settings.origin

        nonce = self._nonces.generate()
        if nonce:
            enriched[NONCE_FIELD] = nonce
        if is_write:
            csrf_token = self._csrf.get_token()
            if csrf_token:
                enriched[CSRF_FIELD] = csrf_token

        enriched[SIGNATURE_FIELD] = sign(enriched, settings.hmac_secret)
        return enriched

    def _handle_response(self, response: HttpResponse) -> dict[str, Any]:
        """Decode a response or raise the matching error."""
        self._track_server_limits(response)

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                raise ServerError.from_response(body, status_code=response.status_code)
            raise NetworkError(
                f"HTTP {response.status_code} with unparseable error body",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(
                f"Response is not valid JSON (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise NetworkError(
                "Response is not a JSON object", status_code=response.status_code
            )
        # Apps Script web apps report failures with HTTP 200
        if data.get("status") == "error":
            raise ServerError.from_response(data, status_code=response.status_code)
        return data

    def _track_server_limits(self, response: HttpResponse) -> None:
        remaining = response.header(RATE_LIMIT_REMAINING_HEADER)
        if remaining is None:
            return
        try:
            value = int(remaining)
        except ValueError:
            logger.debug(
                "Ignoring malformed {} header: {!r}", RATE_LIMIT_REMAINING_HEADER, remaining
            )
            return
        if self.server_info is None:
            self.server_info = {}
        self.server_info["limits"] = {**self._server_limits(), "remaining": value}

    def _server_limits(self) -> dict[str, Any]:
        # Discovered config is server-controlled; ignore a malformed "limits"
        limits = (self.server_info or {}).get("limits")
        return limits if isinstance(limits, dict) else {}

    # --- Public endpoints (no signature) ---

    async def _public_request(
        self,
        params: dict[str, str],
        options: RequestOptions | None = None,
        *,
        cache_key: str | None = None,
        consume_quota: bool = True,
    ) -> dict[str, Any]:
        settings = self._settings
        if not settings.script_url:
            raise ConfigurationError("Client is not configured; missing: script_url")
        options = options or RequestOptions()

        if consume_quota:
            self._rate_limiter.check_and_consume()

        use_cache = cache_key is not None and options.use_cache
        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        query = dict(params)
        if settings.origin:
            query[ORIGIN_FIELD] = settings.origin
        response = await self._transport.get(
            settings.script_url, query, options.timeout or settings.timeout
        )
        data = self._handle_response(response)

        if use_cache:
            self._cache.set(cache_key, data, settings.cache_ttl)
        return data

    async def health_check(self) -> dict[str, Any]:
        """Fetch server health. Does not count against the rate limit."""
        return await self._public_request({"type": "health"}, consume_quota=False)

    async def get_server_config(self) -> dict[str, Any]:
        """Fetch the public server config. Does not count against the rate limit."""
        return await self._public_request({"type": "config"}, consume_quota=False)

    async def get_scrolling_messages(
        self, options: RequestOptions | None = None
    ) -> dict[str, Any]:
        return await self._public_request(
            {"type": "scrolling"}, options, cache_key="scrolling"
        )

    async def get_doodle_events(
        self, options: RequestOptions | None = None
    ) -> dict[str, Any]:
        return await self._public_request({"type": "doodle"}, options, cache_key="doodle")

    async def get_modal_content(
        self, sheet: str, range_: str, options: RequestOptions | None = None
    ) -> dict[str, Any]:
        """Fetch modal content for a sheet range, e.g. ("Sheet5", "B37")."""
        return await self._public_request(
            {"type": "modal", "sheet": sheet, "range": range_},
            options,
            cache_key=f"modal:{sheet}:{range_}",
        )

    async def get_batch(
        self, requests: Sequence[str], options: RequestOptions | None = None
    ) -> dict[str, Any]:
        """Fetch several public endpoints in one call, e.g. ["scrolling", "doodle"]."""
        joined = ",".join(requests)
        return await self._public_request(
            {"type": "batch", "requests": joined}, options, cache_key=f"batch:{joined}"
        )

    # --- Protected endpoints (signed) ---

    async def get_data(
        self,
        sheet: str | Sequence[str] | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Read one sheet, several sheets, or the default sheet."""
        return await self.request({"action": "getData", **_sheet_params(sheet)}, options)

    async def get_cell_data(
        self, cell: str, options: RequestOptions | None = None
    ) -> dict[str, Any]:
        return await self.request({"action": "cellData", "cell": cell.upper()}, options)

    async def get_data_post(
        self,
        sheet: str | Sequence[str] | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Read sheet data through a CSRF-protected POST."""
        return await self.post({"action": "getData", **_sheet_params(sheet)}, options)

    async def post_data(
        self, data: Mapping[str, Any], options: RequestOptions | None = None
    ) -> dict[str, Any]:
        """Send an arbitrary write; ``action`` defaults to getData."""
        body = dict(validate_params(data))
        body.setdefault("action", "getData")
        return await self.post(body, options)

    # --- Diagnostics ---

    def rate_limit_status(self) -> RateLimitReport:
        limits = self._server_limits()
        remaining = limits.get("remaining")
        resets_at = limits.get("resetsAt")
        return RateLimitReport(
            client=self._rate_limiter.status(),
            server_remaining=remaining if isinstance(remaining, int) else None,
            server_resets_at=str(resets_at) if resets_at is not None else None,
        )

    async def test_connection(self) -> ConnectionTestResult:
        """Check health, config and (when configured) authentication.

        Failures are recorded in the result rather than raised.
        """
        result = ConnectionTestResult(
            success=False, health=CheckResult(), config=CheckResult(), auth=CheckResult()
        )

        try:
            health = await self.health_check()
            result.health.passed = health.get("status") in ("online", "healthy")
            result.health.message = (
                "Server is online" if result.health.passed else "Unexpected status"
            )
            result.health.data = health
        except SecureSheetsError as e:
            result.health.message = f"Health check failed: {e}"

        try:
            config = await self.get_server_config()
            result.config.passed = config.get("success") is True
            result.config.message = (
                "Config accessible" if result.config.passed else "Config error"
            )
            result.config.data = config
            result.server = config
        except SecureSheetsError as e:
            result.config.message = f"Config fetch failed: {e}"

        if self.is_configured:
            try:
                data = await self.get_data(options=RequestOptions(use_cache=False))
                result.auth.passed = (
                    data.get("status") == "success" or data.get("success") is True
                )
                result.auth.message = (
                    "Authentication successful"
                    if result.auth.passed
                    else "Authentication failed"
                )
                result.auth.data = data
            except SecureSheetsError as e:
                result.auth.message = f"Auth failed: {e}"
        else:
            result.auth.message = "Skipped (not configured)"

        result.success = result.health.passed and result.config.passed
        return result

    # --- State management ---

    def nonce_status(self) -> NonceStatus:
        return self._nonces.status()

    def clear_nonces(self) -> None:
        self._nonces.clear()

    def get_csrf_token(self) -> str | None:
        return self._csrf.get_token()

    def clear_csrf_token(self) -> None:
        self._csrf.clear()

    def clear_cache(self, key: str | None = None) -> None:
        self._cache.clear(key)

    def reset_rate_limit(self) -> None:
        self._rate_limiter.reset()

    def reset_state(self) -> None:
        """Release cached responses, nonces, CSRF token and the rate window."""
        self._cache.clear()
        self._nonces.clear()
        self._csrf.clear()
        self._rate_limiter.reset()

    async def aclose(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> SecureSheetsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
