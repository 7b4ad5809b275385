from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping

import pytest

from bibfetch.errors import TransportError


class RecordingTransport:
    """Transport stub that records every request and replays canned bodies.

    ``respond`` maps the request parameters to a body, or raises.
    """

    def __init__(self, respond: Callable[[dict[str, str]], str] | str = "") -> None:
        self._respond = respond
        self.calls: list[tuple[str, dict[str, str], dict[str, str]]] = []
        self.cookies_enabled = 0

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> str:
        params = dict(params)
        self.calls.append((url, params, dict(headers or {})))
        await asyncio.sleep(0)
        if callable(self._respond):
            return self._respond(params)
        return self._respond

    def enable_cookies(self) -> None:
        self.cookies_enabled += 1


class BlockingTransport(RecordingTransport):
    """Transport whose requests never complete until cancelled."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.cancelled = 0

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> str:
        self.calls.append((url, dict(params), dict(headers or {})))
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return ""


class FailingTransport(RecordingTransport):
    def __init__(self, status_code: int = 503) -> None:
        super().__init__()
        self.status_code = status_code

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> str:
        self.calls.append((url, dict(params), dict(headers or {})))
        raise TransportError(f"HTTP {self.status_code} from {url}", status_code=self.status_code)


@pytest.fixture
def recording_transport():
    return RecordingTransport


@pytest.fixture
def blocking_transport() -> BlockingTransport:
    return BlockingTransport()


@pytest.fixture
def failing_transport() -> FailingTransport:
    return FailingTransport()


@pytest.fixture
def no_provider_env(monkeypatch):
    """Keep real credentials out of offline tests."""
    for var in ("SCOPUS_API_KEY", "SEMANTIC_SCHOLAR_API_KEY", "OPENALEX_MAILTO"):
        monkeypatch.delenv(var, raising=False)
