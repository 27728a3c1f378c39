"""Client configuration using pydantic-settings.

Settings can be passed explicitly or read from SECURESHEETS_* environment
variables. Unknown fields are rejected rather than silently merged, and a
settings object is immutable: reconfigure by building a new one.
"""

from __future__ import annotations

from typing import Any

import pydantic
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from securesheets.exceptions import ConfigurationError


class ClientSettings(BaseSettings):
    """Settings for a SecureSheetsClient.

    Environment variables (all optional):
    - SECURESHEETS_SCRIPT_URL: Web app endpoint
    - SECURESHEETS_API_TOKEN: API token sent with every protected request
    - SECURESHEETS_HMAC_SECRET: Shared secret for request signatures
    - SECURESHEETS_ORIGIN: Origin reported to the server for domain checks
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURESHEETS_",
        case_sensitive=False,
        extra="forbid",
        frozen=True,
    )

    # Endpoint and credentials
    script_url: str = ""
    api_token: str = Field(default="", repr=False)
    hmac_secret: str = Field(default="", repr=False)
    origin: str = ""

    # Feature toggles
    enable_csrf: bool = True
    enable_nonce: bool = True
    rate_limit_enabled: bool = True

    # Limits
    max_requests: int = 100  # per hour
    cache_ttl: float = 300.0  # seconds
    timeout: float = 30.0  # seconds

    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """Check that endpoint, token and secret are all set."""
        return bool(self.script_url and self.api_token and self.hmac_secret)

    def missing_fields(self) -> list[str]:
        """Names of the required fields that are still empty."""
        return [
            name
            for name in ("script_url", "api_token", "hmac_secret")
            if not getattr(self, name)
        ]

    @field_validator("script_url")
    @classmethod
    def validate_script_url(cls, v: str) -> str:
        """Validate the endpoint is an http(s) URL when set."""
        v = v.strip()
        if v and not v.startswith(("https://", "http://")):
            raise ValueError("script_url must start with https:// or http://")
        return v

    @field_validator("max_requests")
    @classmethod
    def validate_max_requests(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_requests must be at least 1")
        return v

    @field_validator("cache_ttl")
    @classmethod
    def validate_cache_ttl(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cache_ttl must not be negative")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


def load_settings(**overrides: Any) -> ClientSettings:
    """Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If a field is unknown or has an invalid value
    """
    try:
        return ClientSettings(**overrides)
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e
