# bibfetch/__init__.py
"""bibfetch - Paged bibliographic metadata search across providers."""

__version__ = "0.1.0"

from bibfetch.errors import (  # noqa: E402
    Cancelled,
    FetcherError,
    InvalidArgument,
    ParseError,
    QueryBuildError,
    TransportError,
)
from bibfetch.http import HttpxTransport, Transport  # noqa: E402
from bibfetch.models import Author, Entry, Page, SearchResult  # noqa: E402
from bibfetch.providers import (  # noqa: E402
    AcmPortal,
    Fetcher,
    OpenAlex,
    PageConvention,
    Provider,
    ResultParser,
    Scopus,
    SemanticScholar,
)
from bibfetch.query import (  # noqa: E402
    And,
    Field,
    Not,
    Or,
    Query,
    YearRange,
    abstract,
    all_of,
    any_field,
    any_of,
    author,
    doi,
    fulltext,
    keyword,
    parse,
    title,
    venue,
    year,
)
from bibfetch.registry import FetcherRegistry, default_registry  # noqa: E402
from bibfetch.search import OnError, iter_entries, search, take  # noqa: E402

__all__ = [
    # Query combinators
    "Query",
    "Field",
    "And",
    "Or",
    "Not",
    "YearRange",
    "title",
    "abstract",
    "author",
    "keyword",
    "doi",
    "fulltext",
    "venue",
    "any_field",
    "year",
    "all_of",
    "any_of",
    "parse",
    # Models
    "Entry",
    "Author",
    "Page",
    "SearchResult",
    # Providers
    "Fetcher",
    "Provider",
    "ResultParser",
    "PageConvention",
    "AcmPortal",
    "OpenAlex",
    "Scopus",
    "SemanticScholar",
    "FetcherRegistry",
    "default_registry",
    # Transport
    "Transport",
    "HttpxTransport",
    # Errors
    "FetcherError",
    "QueryBuildError",
    "TransportError",
    "ParseError",
    "InvalidArgument",
    "Cancelled",
    # Search
    "search",
    "iter_entries",
    "take",
    "OnError",
]
