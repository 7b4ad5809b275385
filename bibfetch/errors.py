# bibfetch/errors.py
"""Errors raised while building, executing and parsing a provider search."""


class FetcherError(Exception):
    """Base class for fetcher failures.

    ``provider`` is the display name of the provider that failed, when known.
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"{self.provider}: {self.message}"
        return self.message


class QueryBuildError(FetcherError):
    """The query could not be rendered into a provider request."""


class TransportError(FetcherError):
    """Network or HTTP failure while talking to a provider."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, provider)
        self.status_code = status_code


class ParseError(FetcherError):
    """The provider response did not have the expected structure."""

    def __init__(self, message: str, provider: str | None = None, snippet: str = "") -> None:
        super().__init__(message, provider)
        self.snippet = snippet

    def __str__(self) -> str:
        base = super().__str__()
        if self.snippet:
            return f"{base} (response starts with: {self.snippet!r})"
        return base


class InvalidArgument(FetcherError, ValueError):
    """The caller broke the fetch contract (negative page, missing credentials)."""


class Cancelled(FetcherError):
    """The caller aborted the fetch through a cancel event or timeout."""
