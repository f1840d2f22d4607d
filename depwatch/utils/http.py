"""
HTTP client utilities for depwatch.

This module provides an asynchronous HTTP client that issues exactly one
best-effort request per call and translates upstream responses into the
depwatch error taxonomy: missing resources, exhausted rate limits, and
everything else.
"""

from __future__ import annotations

import httpx
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple, Type, Union

from depwatch.utils.logger import get_logger
from depwatch.__version__ import __version__
from depwatch.exceptions import (
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamUnreachableError,
)
from depwatch.constants import (
    DEFAULT_TIMEOUT,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
    RESET_TIME_FORMAT,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")

JSONType = Union[Type[dict], Type[list], Tuple[type, ...]]


def format_reset_time(value: Optional[str]) -> str:
    """Render a rate-limit reset header for humans.

    Epoch seconds become ``YYYY-MM-DDTHH:MM:SSZ``; any other value is
    returned verbatim.

    Examples:
        >>> format_reset_time("1704067200")
        '2024-01-01T00:00:00Z'
        >>> format_reset_time(None)
        'unknown'
    """
    if not value:
        return "unknown"

    text = value.strip()
    if not text.isdigit():
        return text

    moment = datetime.fromtimestamp(int(text), tz=timezone.utc)
    return moment.strftime(RESET_TIME_FORMAT)


def is_rate_limited(response: httpx.Response) -> bool:
    """Return True for a 403/429 response whose remaining quota is zero."""
    if response.status_code not in (403, 429):
        return False
    remaining = response.headers.get(RATE_LIMIT_REMAINING_HEADER)
    return remaining is not None and remaining.strip() == "0"


class HTTPClient:
    """Asynchronous HTTP client used by every upstream resolver.

    One instance is created per audit and passed explicitly to the
    resolvers. Requests are never retried; a failure is reported once and
    recorded on the affected dependency.

    Args:
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        transport: Optional httpx transport (used by tests).

    Example:
        >>> async with HTTPClient() as client:
        ...     data = await client.get_json("https://registry.npmjs.org/react/latest")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.transport = transport

        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Initialize the underlying httpx client if needed."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=self.transport is None,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self.transport,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        """Perform a single GET request and classify failures.

        Raises:
            UpstreamNotFoundError: The server answered 404.
            UpstreamRateLimitedError: The request quota is exhausted.
            UpstreamUnreachableError: Transport failure or any other
                error status.
        """
        await self._ensure_client()
        assert self._client is not None

        clean_url = url.strip().strip("\"'")

        try:
            response = await self._client.get(clean_url, headers=headers, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("Request timeout: %s", clean_url)
            raise UpstreamUnreachableError(
                f"Request timed out: {clean_url}",
                url=clean_url,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Network error for %s: %s", clean_url, exc)
            raise UpstreamUnreachableError(
                f"Request failed: {exc}",
                url=clean_url,
            ) from exc

        self._raise_for_status(response, clean_url)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, url: str) -> None:
        """Translate an error response into the matching exception."""
        status = response.status_code

        if status < 400:
            return

        if status == 404:
            raise UpstreamNotFoundError(
                f"Resource not found: {url}",
                url=url,
                status_code=404,
            )

        if is_rate_limited(response):
            reset_time = format_reset_time(
                response.headers.get(RATE_LIMIT_RESET_HEADER)
            )
            logger.warning("Rate limit exhausted for %s (resets %s)", url, reset_time)
            raise UpstreamRateLimitedError(
                f"Rate limit exceeded. Try again after {reset_time}.",
                reset_time=reset_time,
                url=url,
                status_code=status,
            )

        raise UpstreamUnreachableError(
            f"HTTP {status} error for {url}",
            url=url,
            status_code=status,
            response_body=response.text,
        )

    async def get_json(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        expected_type: JSONType = dict,
    ) -> Any:
        """Fetch a URL and parse the response as JSON.

        Args:
            url: URL to fetch.
            headers: Extra request headers.
            params: Query parameters.
            expected_type: Required type of the decoded document.

        Raises:
            UpstreamUnreachableError: The body is not JSON of the
                expected type, or the request failed.
        """
        response = await self.get(url, headers=headers, params=params)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnreachableError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc

        if not isinstance(data, expected_type):
            raise UpstreamUnreachableError(
                f"Unexpected JSON document from {url}",
                url=url,
                response_body=response.text,
            )

        return data
