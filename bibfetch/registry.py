# bibfetch/registry.py
"""Lookup table of fetchers keyed by display name."""

from collections.abc import Iterable, Iterator

from bibfetch.http import Transport
from bibfetch.providers import AcmPortal, Fetcher, OpenAlex, Scopus, SemanticScholar


class FetcherRegistry:
    """Fetchers by display name; lookups ignore case."""

    def __init__(self, fetchers: Iterable[Fetcher] = ()) -> None:
        self._fetchers: dict[str, Fetcher] = {}
        for fetcher in fetchers:
            self.register(fetcher)

    def register(self, fetcher: Fetcher) -> None:
        """Add a fetcher.

        Raises:
            ValueError: A fetcher with the same display name is registered.
        """
        key = fetcher.name.casefold()
        if key in self._fetchers:
            raise ValueError(f"Fetcher already registered: {fetcher.name}")
        self._fetchers[key] = fetcher

    def get(self, name: str) -> Fetcher:
        """Return the fetcher registered as ``name``.

        Raises:
            KeyError: No fetcher has that name.
        """
        try:
            return self._fetchers[name.casefold()]
        except KeyError:
            raise KeyError(f"Unknown provider: {name!r}. Available: {self.names()}") from None

    def names(self) -> list[str]:
        """Display names in registration order."""
        return [f.name for f in self._fetchers.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._fetchers

    def __iter__(self) -> Iterator[Fetcher]:
        return iter(self._fetchers.values())

    def __len__(self) -> int:
        return len(self._fetchers)


def default_registry(
    transport: Transport,
    *,
    scopus_api_key: str | None = None,
    semantic_scholar_api_key: str | None = None,
    openalex_mailto: str | None = None,
) -> FetcherRegistry:
    """Registry with every built-in provider sharing one transport."""
    return FetcherRegistry(
        [
            AcmPortal(transport),
            OpenAlex(transport, mailto=openalex_mailto),
            Scopus(transport, api_key=scopus_api_key),
            SemanticScholar(transport, api_key=semantic_scholar_api_key),
        ]
    )
