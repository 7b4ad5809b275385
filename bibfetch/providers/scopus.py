# bibfetch/providers/scopus.py
import os
from collections.abc import Iterable
from datetime import date
from typing import Any

from bibfetch.errors import InvalidArgument
from bibfetch.models import Author, Entry
from bibfetch.providers.base import JsonResultParser, Provider, ResultParser
from bibfetch.providers.pagination import PageConvention
from bibfetch.query.combinators import And, Not, Query
from bibfetch.query.transformers import QueryTransformer


class ScopusQueryTransformer(QueryTransformer):
    """Scopus advanced search syntax.

    Every field maps to a Scopus field code; unknown fields search ``ALL``.
    Year ranges become ``PUBYEAR`` clauses. Scopus has no fuzzy operator so
    fuzzy terms are sent exact.

    Scopus only negates with the binary ``AND NOT``, so negated children of
    an AND group are appended as ``AND NOT`` clauses. A negation with no
    positive conjunct (at the root or under OR) is dropped.
    """

    FIELDS = {
        "title": "TITLE",
        "author": "AUTH",
        "abstract": "ABS",
        "keyword": "KEY",
        "fulltext": "ALL",
        "doi": "DOI",
        "venue": "SRCTITLE",
        "any": "ALL",
    }

    def render_field(self, field: str, term: str) -> str:
        return f"{self.FIELDS.get(field, 'ALL')}({term})"

    def _render(self, query: Query) -> str:
        match query:
            case And(children=cs):
                positive = [self._render(c) for c in cs if not isinstance(c, Not)]
                negative = [self._render(c.operand) for c in cs if isinstance(c, Not)]
                positive = [p for p in positive if p]
                negative = [n for n in negative if n]
                if not positive:
                    return ""
                if not negative:
                    return self.render_group(self.and_operator, positive)
                clauses = " AND ".join(positive) + "".join(f" AND NOT {n}" for n in negative)
                return f"({clauses})"
            case Not():
                return ""
            case _:
                return super()._render(query)

    def render_year_range(self, start: int | None, end: int | None) -> str:
        if start and end:
            if start == end:
                return f"PUBYEAR = {start}"
            return f"(PUBYEAR > {start - 1} AND PUBYEAR < {end + 1})"
        elif start:
            return f"PUBYEAR > {start - 1}"
        elif end:
            return f"PUBYEAR < {end + 1}"
        return ""


class ScopusParser(JsonResultParser):
    """Parses the Scopus Search API JSON response."""

    def records(self, raw: str) -> Iterable[Any]:
        data = self.load(raw)
        results = data.get("search-results")
        if not isinstance(results, dict):
            raise self.error("Scopus response has no 'search-results' object", raw)
        entries = results.get("entry") or []
        if not isinstance(entries, list):
            raise self.error("Scopus 'entry' is not a list", raw)
        return entries

    def parse_record(self, entry: dict) -> Entry | None:
        """Parse a Scopus entry into an Entry."""
        # Empty result sets come back as one entry carrying only "error"
        title = entry.get("dc:title")
        if not title:
            return None

        # Authors (Scopus returns "dc:creator" for first author only in search)
        authors = []
        creator = entry.get("dc:creator")
        if creator:
            authors.append(Author(name=creator))

        # Year and publication date
        year = None
        pub_date = None
        cover_date = entry.get("prism:coverDate", "")
        if cover_date:
            try:
                year = int(cover_date.split("-")[0])
            except (ValueError, IndexError):
                pass
            try:
                pub_date = date.fromisoformat(cover_date)
            except ValueError:
                pass

        # URL
        url = None
        for link in entry.get("link") or []:
            if link.get("@ref") == "scopus":
                url = link.get("@href")
                break

        # Citations
        citations = None
        cited_by = entry.get("citedby-count")
        if cited_by:
            try:
                citations = int(cited_by)
            except ValueError:
                pass

        # Author keywords come as one " | " separated string
        keywords: tuple[str, ...] = ()
        authkeywords = entry.get("authkeywords")
        if authkeywords:
            keywords = tuple(k.strip() for k in authkeywords.split("|") if k.strip())

        return Entry(
            title=title,
            authors=tuple(authors),
            source=self.provider,
            year=year,
            abstract=entry.get("dc:description"),
            doi=entry.get("prism:doi"),
            url=url,
            venue=entry.get("prism:publicationName"),
            entry_type=entry.get("subtypeDescription"),
            keywords=keywords,
            citations_count=citations,
            publication_date=pub_date,
            extras={"scopus_id": entry.get("dc:identifier")} if entry.get("dc:identifier") else {},
        )


class Scopus(Provider):
    """Scopus search provider.

    Paging: ``start`` is a 0-based result offset in steps of ``PAGE_SIZE``,
    so page index 2 is sent as ``start=50``.
    """

    name = "Scopus"
    BASE_URL = "https://api.elsevier.com/content/search/scopus"
    PAGE_SIZE = 25  # Scopus max per request with COMPLETE view
    help_url = "https://dev.elsevier.com/sc_search_tips.html"
    pagination = PageConvention("start", base=0, stride=PAGE_SIZE)

    def _load_from_env(self) -> str | None:
        return os.getenv("SCOPUS_API_KEY")

    def make_transformer(self) -> QueryTransformer:
        return ScopusQueryTransformer()

    def make_parser(self) -> ResultParser:
        return ScopusParser(self.name)

    def build_headers(self) -> dict[str, str]:
        if not self._api_key:
            raise InvalidArgument(
                "Scopus requires an API key. Set SCOPUS_API_KEY or pass api_key=", self.name
            )
        return {
            "X-ELS-APIKey": self._api_key,
            "Accept": "application/json",
        }

    def build_params(self, query: Query | None, query_str: str) -> dict[str, str]:
        params = super().build_params(query, query_str)
        params["count"] = str(self.PAGE_SIZE)
        params["view"] = "COMPLETE"  # Required to get abstract (dc:description)
        return params
