"""
HTTP client utilities for monoship.

This module provides an asynchronous HTTP client with bearer
authentication and retry logic. Reads (``GET``) are retried with
exponential backoff on transport failures; writes (``PUT``) are sent
exactly once so that a registry mutation is never repeated behind the
caller's back.
"""

from __future__ import annotations

import httpx
import random
import asyncio
from typing import Any, Dict, Optional, cast

from monoship.utils.logger import get_logger
from monoship.__version__ import __version__
from monoship.exceptions import NetworkError
from monoship.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous HTTP client with retries and bearer authentication.

    Non-2xx responses are returned to the caller unchanged (except that
    5xx responses to reads are retried first); interpreting status codes
    is the caller's job.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Maximum number of retry attempts for reads.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        token: Bearer token sent as ``Authorization`` when set.
        transport: Optional httpx transport (tests inject
            ``httpx.MockTransport``).

    Example:
        >>> async with HTTPClient(token="...") as client:
        ...     response = await client.get("https://registry.npmjs.org/react")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.token = token

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Initialize the underlying httpx client if needed."""
        if self._client is None:
            headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"

            kwargs: Dict[str, Any] = {
                "timeout": httpx.Timeout(self.timeout),
                "verify": self.verify_ssl,
                "follow_redirects": True,
                "headers": headers,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["http2"] = True

            self._client = httpx.AsyncClient(**kwargs)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        retries: int,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transport errors and 5xx up to ``retries``."""
        await self._ensure_client()
        assert self._client is not None

        last_exc: Optional[Exception] = None

        for attempt in range(retries + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code < 500 or attempt == retries:
                    return response
                logger.warning(
                    "HTTP %d from %s (%d/%d)",
                    response.status_code,
                    url,
                    attempt + 1,
                    retries + 1,
                )

            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "Request timeout (%d/%d): %s %s",
                    attempt + 1,
                    retries + 1,
                    method,
                    url,
                )

            except httpx.TransportError as exc:
                last_exc = exc
                logger.warning(
                    "Network error (%d/%d): %s",
                    attempt + 1,
                    retries + 1,
                    exc,
                )

            if attempt < retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)

        raise NetworkError(
            f"{method} request failed after {retries + 1} attempt(s): {url}",
            url=url,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a GET request with retry logic."""
        return await self._request("GET", url, retries=self.max_retries, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a single PUT request (never retried)."""
        return await self._request("PUT", url, retries=0, **kwargs)

    async def get_json(self, url: str, **kwargs: Any) -> Optional[Dict[str, Any]]:
        """Fetch a JSON object; return ``None`` on 404.

        Raises:
            NetworkError: Any other non-2xx status, or a body that is not a
                JSON object.
        """
        response = await self.get(url, **kwargs)

        if response.status_code == 404:
            return None

        if response.status_code >= 400:
            raise NetworkError(
                f"HTTP {response.status_code} error for {url}",
                url=url,
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc

        if not isinstance(data, dict):
            raise NetworkError(
                f"Expected JSON object from {url}",
                url=url,
                response_body=response.text,
            )

        return cast(Dict[str, Any], data)
