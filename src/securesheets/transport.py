"""Transport layer for talking to the SecureSheets web app.

Defines the Transport protocol and implementations:
- HttpxTransport: Production transport over HTTPS using httpx

Transports return the raw response and leave status handling to the client,
which needs the body of error responses to build a ServerError. They only
raise for failures that never produced a response.
"""

from __future__ import annotations

import json
import ssl
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import certifi
import httpx

from securesheets.exceptions import NetworkError, RequestTimeoutError

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class HttpResponse:
    """A completed HTTP exchange."""

    status_code: int
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        """Look up a header case-insensitively."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON
        """
        return json.loads(self.text)


class Transport(ABC):
    """Abstract base class for the HTTP boundary.

    Implementations must raise RequestTimeoutError when the deadline passes
    and NetworkError when no response could be obtained.
    """

    @abstractmethod
    async def get(
        self, url: str, params: Mapping[str, str], timeout: float
    ) -> HttpResponse:
        """Send a GET request with ``params`` in the query string.

        Args:
            url: Endpoint URL
            params: Query parameters, already stringified
            timeout: Deadline in seconds

        Returns:
            HttpResponse with status, body and headers
        """
        ...

    @abstractmethod
    async def post(
        self,
        url: str,
        body: Mapping[str, Any],
        headers: Mapping[str, str],
        timeout: float,
    ) -> HttpResponse:
        """Send a POST request with a JSON body.

        Args:
            url: Endpoint URL
            body: JSON-serializable request body
            headers: Extra request headers
            timeout: Deadline in seconds

        Returns:
            HttpResponse with status, body and headers
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        ...


class HttpxTransport(Transport):
    """Production transport backed by an httpx.AsyncClient.

    Handles SSL and HTTP communication. Apps Script web apps answer with a
    redirect to the content host, so redirects are followed.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Default request timeout in seconds
            client: Pre-built client to use instead of creating one
        """
        if client is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            client = httpx.AsyncClient(
                timeout=timeout,
                verify=ssl_context,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        self._client = client

    async def get(
        self, url: str, params: Mapping[str, str], timeout: float
    ) -> HttpResponse:
        return await self._send("GET", url, timeout, params=dict(params))

    async def post(
        self,
        url: str,
        body: Mapping[str, Any],
        headers: Mapping[str, str],
        timeout: float,
    ) -> HttpResponse:
        return await self._send(
            "POST", url, timeout, json=dict(body), headers=dict(headers)
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _send(
        self, method: str, url: str, timeout: float, **kwargs: Any
    ) -> HttpResponse:
        try:
            resp = await self._client.request(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(timeout) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}") from e
        return HttpResponse(
            status_code=resp.status_code,
            text=resp.text,
            headers=dict(resp.headers),
        )
