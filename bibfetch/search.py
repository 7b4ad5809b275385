# bibfetch/search.py
import asyncio
import logging
import warnings
from collections.abc import AsyncIterator, Iterable
from typing import Literal

import streamish as st

from bibfetch.models import Entry, Page, SearchResult
from bibfetch.providers.base import Fetcher
from bibfetch.query.combinators import Query
from bibfetch.query.parser import parse

logger = logging.getLogger(__name__)

OnError = Literal["fail", "ignore", "warn"]


async def take[T](n: int, aiter: AsyncIterator[T]) -> AsyncIterator[T]:
    """Take at most n items from an async iterator."""
    if n <= 0:
        return
    count = 0
    async for item in aiter:
        yield item
        count += 1
        if count >= n:
            break


def _as_query(query: Query | str | None) -> Query | None:
    if isinstance(query, str):
        logger.debug("Parsing query string: %s", query)
        return parse(query)
    return query


async def search(
    query: Query | str | None,
    fetchers: Iterable[Fetcher],
    page_index: int = 0,
    on_error: OnError = "warn",
    dedupe: bool = True,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> SearchResult:
    """
    Fetch the same page from several providers concurrently.

    Args:
        query: Query AST or Lucene-style query string
        fetchers: Providers to search
        page_index: Zero-based page to fetch from every provider
        on_error: Error handling mode - "fail", "ignore", or "warn"
        dedupe: Whether to drop entries already returned by an earlier provider
        timeout: Per-provider timeout in seconds
        cancel: Event that aborts every in-flight request when set

    Returns:
        SearchResult with one Page per provider that succeeded and the
        errors of those that failed.

    Examples:
        async with HttpxTransport() as transport:
            registry = default_registry(transport)
            result = await search("title:transformer", list(registry))
    """
    query = _as_query(query)
    fetchers = list(fetchers)
    logger.info("Starting search with %s providers", len(fetchers))

    async def fetch_one(fetcher: Fetcher) -> tuple[str, Page | None, Exception | None]:
        try:
            page = await fetcher.fetch_page(query, page_index, cancel=cancel, timeout=timeout)
            return (fetcher.name, page, None)
        except Exception as e:
            return (fetcher.name, None, e)

    results = await asyncio.gather(*[fetch_one(f) for f in fetchers])

    pages: dict[str, Page] = {}
    errors: dict[str, Exception] = {}

    for name, page, error in results:
        if error:
            if on_error == "fail":
                raise error
            elif on_error == "warn":
                warnings.warn(f"Provider {name} failed: {error}", stacklevel=2)
            errors[name] = error
        elif page is not None:
            pages[name] = page

    result = SearchResult(pages=pages, errors=errors)
    logger.info("Search complete: %s entries from %s providers", len(result.entries), len(pages))
    return result.dedupe() if dedupe else result


async def iter_entries(
    query: Query | str | None,
    fetcher: Fetcher,
    start_page: int = 0,
    max_pages: int | None = None,
    limit: int | None = None,
    timeout: float | None = None,
) -> AsyncIterator[Entry]:
    """Stream entries from consecutive pages of one provider.

    Stops after the first empty page, after ``max_pages`` pages, after the
    provider's last page or after ``limit`` entries, whichever comes first.
    Errors propagate.
    """
    query = _as_query(query)

    async def fetch_pages() -> AsyncIterator[Page]:
        page_index = start_page
        last = fetcher.max_page_index
        while max_pages is None or page_index < start_page + max_pages:
            if last is not None and page_index > last:
                logger.debug("%s: reached last page %s", fetcher.name, last)
                return
            page = await fetcher.fetch_page(query, page_index, timeout=timeout)
            logger.debug("%s page %s: %s entries", fetcher.name, page_index, len(page))
            yield page
            if page.is_empty:
                return
            page_index += 1

    stream: AsyncIterator[Entry] = st.stream(fetch_pages()).flat_map(
        lambda page: list(page.entries)
    )
    if limit is not None:
        stream = take(limit, stream)

    async for entry in stream:
        yield entry
