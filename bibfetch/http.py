# bibfetch/http.py
"""HTTP transport used by providers to execute search requests."""

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

import httpx

from bibfetch import __version__
from bibfetch.errors import TransportError

logger = logging.getLogger(__name__)

USER_AGENT = f"bibfetch/{__version__}"

_shared_cookies: httpx.Cookies | None = None
_cookies_lock = threading.Lock()


def shared_cookies() -> httpx.Cookies:
    """Return the process-wide cookie store, creating it on first use."""
    global _shared_cookies
    with _cookies_lock:
        if _shared_cookies is None:
            _shared_cookies = httpx.Cookies()
        return _shared_cookies


@runtime_checkable
class Transport(Protocol):
    """What providers need from an HTTP client."""

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Return the response body, or raise TransportError."""
        ...

    def enable_cookies(self) -> None:
        """Keep cookies across requests. Must be idempotent."""
        ...


class HttpxTransport:
    """Transport backed by a single ``httpx.AsyncClient``.

    Use as an async context manager; one instance can serve every provider
    and any number of concurrent requests. Responses with status 429 are
    retried with exponential backoff, every other failure is raised at once.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        cookies: httpx.Cookies | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._cookies = cookies
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def cookies(self) -> httpx.Cookies | None:
        return self._cookies

    def enable_cookies(self) -> None:
        """Persist response cookies in the process-wide store."""
        if self._cookies is not None:
            return
        self._cookies = shared_cookies()
        if self._client is not None:
            self._client.cookies.update(self._cookies)

    async def __aenter__(self) -> "HttpxTransport":
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": USER_AGENT},
            cookies=self._cookies,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *_: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> str:
        if self._client is None:
            raise RuntimeError("Transport not initialized. Use 'async with transport:'")

        retry_delay = self._retry_delay
        for attempt in range(self._max_retries):
            try:
                response = await self._client.get(url, params=params, headers=headers)
            except httpx.RequestError as e:
                raise TransportError(f"Request to {url} failed: {e}") from e

            logger.debug("Response status: %s", response.status_code)
            if self._cookies is not None:
                self._cookies.extract_cookies(response)

            if response.status_code == 429 and attempt < self._max_retries - 1:
                logger.warning(
                    "Rate limited (429), retrying in %.1f seconds (attempt %d/%d)",
                    retry_delay,
                    attempt + 1,
                    self._max_retries,
                )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
                continue

            if response.status_code >= 400:
                raise TransportError(
                    f"HTTP {response.status_code} from {response.url}",
                    status_code=response.status_code,
                )
            return response.text

        raise AssertionError("unreachable")  # the last attempt always returns or raises
