# bibfetch/models.py
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from bibfetch.errors import InvalidArgument

# extras keys that hold provider-side record identifiers
IDENTIFIER_KEYS = ("openalex_id", "scopus_id", "semantic_scholar_id", "arxiv_id")


@dataclass(frozen=True)
class Author:
    """Entry author with optional affiliation and ORCID."""

    name: str
    affiliation: str | None = None
    orcid: str | None = None


@dataclass(frozen=True)
class Entry:
    """Normalized bibliographic entry across providers.

    Fields the provider response does not carry stay ``None`` or empty.
    """

    # Required fields
    title: str
    authors: tuple[Author, ...]
    source: str  # Provider display name: "ACM Portal", "OpenAlex", ...

    # Normalized optional fields
    year: int | None = None
    abstract: str | None = None
    doi: str | None = None
    url: str | None = None
    venue: str | None = None
    entry_type: str | None = None
    keywords: tuple[str, ...] = ()
    citations_count: int | None = None
    publication_date: date | None = None

    # Provider-specific fields
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def identifiers(self) -> dict[str, str]:
        """DOI plus whatever provider identifiers the record carries."""
        ids: dict[str, str] = {}
        if self.doi:
            ids["doi"] = self.doi
        for key in IDENTIFIER_KEYS:
            value = self.extras.get(key)
            if value:
                ids[key] = str(value)
        return ids

    def __hash__(self) -> int:
        """Hash by DOI if available, else by lowercase title + year."""
        if self.doi:
            return hash(self.doi.lower())
        return hash((self.title.lower(), self.year))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entry):
            return False
        if self.doi and other.doi:
            return self.doi.lower() == other.doi.lower()
        return self.title.lower() == other.title.lower() and self.year == other.year


@dataclass(frozen=True)
class Page:
    """One page of results for a query.

    ``page_index`` is zero-based whatever paging convention the provider uses.
    """

    query: str
    page_index: int
    entries: tuple[Entry, ...] = ()

    def __post_init__(self) -> None:
        if self.page_index < 0:
            raise InvalidArgument(f"Page index must be >= 0, got {self.page_index}")

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass
class SearchResult:
    """Container for pages fetched from multiple providers."""

    pages: dict[str, Page] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)

    @property
    def entries(self) -> list[Entry]:
        return [entry for page in self.pages.values() for entry in page.entries]

    @property
    def total_by_provider(self) -> dict[str, int]:
        return {name: len(page) for name, page in self.pages.items()}

    def dedupe(self) -> "SearchResult":
        """Remove duplicate entries across providers, keeping first occurrence."""
        seen: set[str] = set()
        pages: dict[str, Page] = {}

        for name, page in self.pages.items():
            unique: list[Entry] = []
            for entry in page.entries:
                key = entry.doi.lower() if entry.doi else f"{entry.title.lower()}:{entry.year}"
                if key not in seen:
                    seen.add(key)
                    unique.append(entry)
            pages[name] = Page(query=page.query, page_index=page.page_index, entries=tuple(unique))

        return SearchResult(pages=pages, errors=self.errors)
