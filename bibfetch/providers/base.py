# bibfetch/providers/base.py
"""Provider contract, result parser base and the generic paged fetch."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar, Protocol, runtime_checkable

from bibfetch.errors import Cancelled, InvalidArgument, ParseError, QueryBuildError, TransportError
from bibfetch.http import Transport
from bibfetch.models import Entry, Page
from bibfetch.providers.pagination import PageConvention
from bibfetch.query.combinators import Query
from bibfetch.query.transformers import DefaultQueryTransformer, QueryTransformer

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200


@runtime_checkable
class Fetcher(Protocol):
    """What callers can rely on for every provider."""

    name: str
    help_url: str | None
    max_page_index: int | None

    async def fetch_page(
        self,
        query: Query | None,
        page_index: int = 0,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> Page: ...

    @property
    def parser(self) -> "ResultParser": ...


class ResultParser(ABC):
    """Turns a raw provider response into entries.

    Subclasses split the response into records (raising ParseError when the
    container itself is wrong) and map one record at a time. A record that
    cannot be mapped is skipped.
    """

    def __init__(self, provider: str) -> None:
        self.provider = provider

    @abstractmethod
    def records(self, raw: str) -> Iterable[Any]:
        """Split the response into records, or raise ParseError."""
        ...

    @abstractmethod
    def parse_record(self, record: Any) -> Entry | None:
        """Map one record, returning None when it carries no usable entry."""
        ...

    def parse(self, raw: str | bytes) -> list[Entry]:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")

        entries: list[Entry] = []
        for record in self.records(raw):
            try:
                entry = self.parse_record(record)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.debug("%s: skipping malformed record: %s", self.provider, e)
                continue
            if entry is not None:
                entries.append(entry)
        logger.debug("%s: parsed %s entries", self.provider, len(entries))
        return entries

    def error(self, message: str, raw: str) -> ParseError:
        return ParseError(message, provider=self.provider, snippet=raw[:SNIPPET_LENGTH])


class JsonResultParser(ResultParser):
    """Parser for JSON APIs whose response is a top-level object."""

    def load(self, raw: str) -> dict[str, Any]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise self.error(f"Response is not JSON: {e}", raw) from e
        if not isinstance(data, dict):
            raise self.error(f"Expected a JSON object, got {type(data).__name__}", raw)
        return data


class Provider(ABC):
    """Base class for paged search providers.

    A provider is configuration plus three hooks: a query transformer, a
    result parser and ``build_params``. ``fetch_page`` runs the same pipeline
    for all of them: transform -> build request -> transport -> parse.
    """

    name: ClassVar[str]
    BASE_URL: ClassVar[str]
    QUERY_PARAM: ClassVar[str] = "query"
    help_url: ClassVar[str | None] = None
    pagination: ClassVar[PageConvention]
    # Whether a request without search terms is refused before it is sent
    requires_terms: ClassVar[bool] = True
    # Last page index the provider serves; None means unbounded
    max_page_index: ClassVar[int | None] = None

    def __init__(self, transport: Transport, api_key: str | None = None) -> None:
        self._transport = transport
        self._api_key = api_key or self._load_from_env()
        self._transformer = self.make_transformer()
        self._parser = self.make_parser()

    def _load_from_env(self) -> str | None:
        """Load API key from environment variable."""
        return None

    def make_transformer(self) -> QueryTransformer:
        return DefaultQueryTransformer()

    @abstractmethod
    def make_parser(self) -> ResultParser: ...

    @property
    def parser(self) -> ResultParser:
        return self._parser

    @property
    def transformer(self) -> QueryTransformer:
        return self._transformer

    def build_params(self, query: Query | None, query_str: str) -> dict[str, str]:
        """Provider parameters besides the page parameter."""
        return {self.QUERY_PARAM: query_str} if query_str else {}

    def build_headers(self) -> dict[str, str]:
        return {}

    def transform(self, query: Query | None) -> str:
        try:
            query_str = self._transformer.transform(query)
        except Exception as e:
            raise QueryBuildError(f"Cannot build query from {query!r}: {e}", self.name) from e
        if not query_str and self.requires_terms:
            raise QueryBuildError("Query has no search terms this provider can use", self.name)
        return query_str

    def request_params(self, query: Query | None, page_index: int) -> tuple[str, dict[str, str]]:
        """Return the transformed query string and the full request parameters."""
        query_str = self.transform(query)
        logger.debug("Translated query: %s", query_str)
        params = self.build_params(query, query_str)
        params.update(self.pagination.params(page_index))
        return query_str, params

    async def fetch_page(
        self,
        query: Query | None,
        page_index: int = 0,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> Page:
        """Fetch one page of results.

        Args:
            query: Query tree; None is the empty query.
            page_index: Zero-based page number.
            cancel: Event that aborts the request when set.
            timeout: Seconds to wait for the response before aborting.

        Returns:
            Page echoing ``page_index``, entries in provider order.

        Raises:
            InvalidArgument: Page index out of range or missing credentials.
            QueryBuildError: The query cannot be rendered for this provider.
            TransportError: Network or HTTP failure.
            Cancelled: ``cancel`` fired or ``timeout`` elapsed first.
            ParseError: The response is not the expected format.
        """
        if page_index < 0:
            raise InvalidArgument(f"Page index must be >= 0, got {page_index}", self.name)
        if self.max_page_index is not None and page_index > self.max_page_index:
            raise InvalidArgument(
                f"Page index {page_index} is past the last page ({self.max_page_index})", self.name
            )

        query_str, params = self.request_params(query, page_index)
        headers = self.build_headers()
        logger.debug("Requesting: %s %s", self.BASE_URL, params)

        raw = await self._execute(params, headers, cancel, timeout)
        entries = self._parser.parse(raw)
        logger.debug("Results count: %s", len(entries))
        return Page(query=query_str, page_index=page_index, entries=tuple(entries))

    async def _execute(
        self,
        params: dict[str, str],
        headers: dict[str, str],
        cancel: asyncio.Event | None,
        timeout: float | None,
    ) -> str:
        request = asyncio.ensure_future(
            self._transport.get(self.BASE_URL, params=params, headers=headers)
        )
        waiters: set[asyncio.Future[Any]] = {request}
        if cancel is not None:
            waiters.add(asyncio.ensure_future(cancel.wait()))

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pending = [w for w in waiters if not w.done()]
            for waiter in pending:
                waiter.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if request not in done:
            reason = "cancelled by caller" if cancel is not None and cancel.is_set() else "timed out"
            raise Cancelled(f"Request {reason}", self.name)

        try:
            return request.result()
        except TransportError as e:
            if e.provider is None:
                e.provider = self.name
            raise
