# bibfetch/providers/openalex.py
import logging
import os
from collections.abc import Iterable
from datetime import date
from typing import Any

from bibfetch.errors import QueryBuildError
from bibfetch.http import Transport
from bibfetch.models import Author, Entry
from bibfetch.providers.base import JsonResultParser, Provider, ResultParser
from bibfetch.providers.pagination import PageConvention
from bibfetch.query.combinators import And, Field, Not, Or, Query, extract_year_range
from bibfetch.query.transformers import QueryTransformer

logger = logging.getLogger(__name__)

# Fields sent as filters rather than search text
FILTER_FIELDS = {"author", "doi"}


class OpenAlexQueryTransformer(QueryTransformer):
    """Full-text ``search`` string; author and DOI terms go to ``filter``."""

    def render_field(self, field: str, term: str) -> str:
        if field in FILTER_FIELDS:
            return ""
        return term


def collect_filters(query: Query | None, filters: list[str], negate: bool = False) -> None:
    """Recursively collect OpenAlex filters from the query AST."""
    prefix = "!" if negate else ""
    match query:
        case Field(field="author", value=v):
            filters.append(f"raw_author_name.search:{prefix}{v}")
        case Field(field="doi", value=v):
            filters.append(f"doi:{prefix}{v}")
        case And(children=cs) | Or(children=cs):
            for child in cs:
                collect_filters(child, filters, negate)
        case Not(operand=o):
            collect_filters(o, filters, not negate)


class OpenAlexParser(JsonResultParser):
    """Parses the ``/works`` list response."""

    def records(self, raw: str) -> Iterable[Any]:
        data = self.load(raw)
        results = data.get("results")
        if not isinstance(results, list):
            raise self.error("OpenAlex response has no 'results' list", raw)
        return results

    def parse_record(self, work: dict) -> Entry | None:
        """Parse an OpenAlex work into an Entry."""
        title = work.get("title") or work.get("display_name")
        if not title:
            return None

        # Authors
        authors = []
        for authorship in work.get("authorships") or []:
            author_data = authorship.get("author") or {}
            name = author_data.get("display_name")
            if name:
                institutions = authorship.get("institutions") or []
                affiliation = institutions[0].get("display_name") if institutions else None
                orcid = author_data.get("orcid")
                if orcid:
                    orcid = orcid.replace("https://orcid.org/", "")
                authors.append(Author(name=name, affiliation=affiliation, orcid=orcid))

        # Abstract (OpenAlex returns inverted index, need to reconstruct)
        abstract = None
        abstract_index = work.get("abstract_inverted_index")
        if abstract_index:
            abstract = reconstruct_abstract(abstract_index)

        # DOI
        doi = work.get("doi")
        if doi:
            doi = doi.replace("https://doi.org/", "")

        primary_location = work.get("primary_location") or {}

        # Concepts
        keywords = []
        for concept in (work.get("concepts") or [])[:5]:
            name = concept.get("display_name")
            if name:
                keywords.append(name)

        # Publication date
        pub_date = None
        pub_date_str = work.get("publication_date")
        if pub_date_str:
            try:
                pub_date = date.fromisoformat(pub_date_str)
            except ValueError:
                pass

        # Venue
        venue = None
        source = primary_location.get("source")
        if source:
            venue = source.get("display_name")

        return Entry(
            title=title,
            authors=tuple(authors),
            source=self.provider,
            year=work.get("publication_year"),
            abstract=abstract,
            doi=doi,
            url=primary_location.get("landing_page_url") or work.get("id"),
            venue=venue,
            entry_type=work.get("type"),
            keywords=tuple(keywords),
            citations_count=work.get("cited_by_count"),
            publication_date=pub_date,
            extras={"openalex_id": work.get("id")} if work.get("id") else {},
        )


def reconstruct_abstract(inverted_index: dict) -> str:
    """Reconstruct abstract from OpenAlex inverted index format."""
    words: list[tuple[int, str]] = []
    for word, positions in inverted_index.items():
        for pos in positions:
            words.append((pos, word))
    words.sort(key=lambda x: x[0])
    return " ".join(word for _, word in words)


class OpenAlex(Provider):
    """OpenAlex works search provider.

    Paging: ``page`` is 1-based, so page index 0 is sent as ``page=1``.
    """

    name = "OpenAlex"
    BASE_URL = "https://api.openalex.org/works"
    QUERY_PARAM = "search"
    PAGE_SIZE = 25
    help_url = "https://docs.openalex.org/api-entities/works/search-works"
    pagination = PageConvention("page", base=1)
    requires_terms = False

    def __init__(self, transport: Transport, mailto: str | None = None) -> None:
        super().__init__(transport)
        self._mailto = mailto or os.getenv("OPENALEX_MAILTO")

    def make_transformer(self) -> QueryTransformer:
        return OpenAlexQueryTransformer()

    def make_parser(self) -> ResultParser:
        return OpenAlexParser(self.name)

    def build_filter(self, query: Query | None) -> str:
        filters: list[str] = []
        collect_filters(query, filters)

        years = extract_year_range(query)
        if years:
            s, e = years
            if s and e:
                if s == e:
                    filters.append(f"publication_year:{s}")
                else:
                    filters.append(f"publication_year:{s}-{e}")
            elif s:
                filters.append(f"publication_year:>{s - 1}")
            elif e:
                filters.append(f"publication_year:<{e + 1}")
        return ",".join(filters)

    def build_params(self, query: Query | None, query_str: str) -> dict[str, str]:
        params = super().build_params(query, query_str)
        filter_str = self.build_filter(query)
        logger.debug("Filters: %s", filter_str)
        if not query_str and not filter_str:
            raise QueryBuildError("Query has neither search terms nor filters", self.name)
        if filter_str:
            params["filter"] = filter_str
        params["per_page"] = str(self.PAGE_SIZE)
        if self._mailto:
            params["mailto"] = self._mailto
        return params
