import os
from collections.abc import Iterable
from datetime import date
from typing import Any

from bibfetch.models import Author, Entry
from bibfetch.providers.base import JsonResultParser, Provider, ResultParser
from bibfetch.providers.pagination import PageConvention
from bibfetch.query.combinators import Query, extract_year_range
from bibfetch.query.transformers import QueryTransformer

API_FIELDS = (
    "paperId,title,abstract,authors,year,citationCount,referenceCount,"
    "venue,publicationDate,publicationTypes,fieldsOfStudy,externalIds"
)


class SemanticScholarQueryTransformer(QueryTransformer):
    """Semantic Scholar keyword syntax.

    Titles become quoted phrases, every other field a plain term. AND is
    implicit (space), OR is ``|``, NOT is a ``-`` prefix. Fuzzy terms are sent
    exact and year ranges go to the ``year`` parameter.
    """

    def render_field(self, field: str, term: str) -> str:
        if field == "title" and not term.startswith('"'):
            return f'"{term}"'
        return term

    def render_group(self, operator: str, parts: list[str]) -> str:
        parts = [p for p in parts if p]
        if not parts:
            return ""
        if len(parts) == 1:
            return parts[0]
        if operator == self.or_operator:
            return f"({' | '.join(parts)})"
        return " ".join(parts)

    def render_not(self, operand: str) -> str:
        return f"-{operand}"


class SemanticScholarParser(JsonResultParser):
    """Parses the ``/paper/search`` response."""

    def records(self, raw: str) -> Iterable[Any]:
        data = self.load(raw)
        if "data" not in data:
            # Empty result sets carry only "total" and "offset"
            if "total" in data:
                return []
            raise self.error("Semantic Scholar response has no 'data' list", raw)
        papers = data["data"]
        if not isinstance(papers, list):
            raise self.error("Semantic Scholar 'data' is not a list", raw)
        return papers

    def parse_record(self, paper_data: dict) -> Entry | None:
        """Parse a Semantic Scholar paper response into an Entry."""
        title = paper_data.get("title")
        if not title:
            return None

        authors = []
        for author_data in paper_data.get("authors") or []:
            name = author_data.get("name")
            if name:
                authors.append(Author(name=name))

        external_ids = paper_data.get("externalIds") or {}
        doi = external_ids.get("DOI")

        paper_id = paper_data.get("paperId")
        url = f"https://www.semanticscholar.org/paper/{paper_id}" if paper_id else None

        keywords = tuple(f for f in (paper_data.get("fieldsOfStudy") or [])[:5] if f)

        pub_date = None
        pub_date_str = paper_data.get("publicationDate")
        if pub_date_str:
            try:
                pub_date = date.fromisoformat(pub_date_str)
            except ValueError:
                pass

        publication_types = paper_data.get("publicationTypes") or []

        extras: dict[str, Any] = {}
        if paper_id:
            extras["semantic_scholar_id"] = paper_id
        if external_ids.get("ArXiv"):
            extras["arxiv_id"] = external_ids["ArXiv"]
        if paper_data.get("referenceCount") is not None:
            extras["references_count"] = paper_data["referenceCount"]

        return Entry(
            title=title,
            authors=tuple(authors),
            source=self.provider,
            year=paper_data.get("year"),
            abstract=paper_data.get("abstract"),
            doi=doi,
            url=url,
            venue=paper_data.get("venue") or None,
            entry_type=publication_types[0] if publication_types else None,
            keywords=keywords,
            citations_count=paper_data.get("citationCount"),
            publication_date=pub_date,
            extras=extras,
        )


class SemanticScholar(Provider):
    """Semantic Scholar paper search provider.

    Paging: ``offset`` is a 0-based result offset in steps of ``PAGE_SIZE``,
    so page index 1 is sent as ``offset=100``. The API serves at most
    ``MAX_TOTAL_RESULTS`` results per query, so later page indices are refused.
    """

    name = "Semantic Scholar"
    BASE_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
    PAGE_SIZE = 100
    MAX_TOTAL_RESULTS = 1000
    help_url = "https://api.semanticscholar.org/api-docs/graph"
    pagination = PageConvention("offset", base=0, stride=PAGE_SIZE)
    max_page_index = MAX_TOTAL_RESULTS // PAGE_SIZE - 1

    def _load_from_env(self) -> str | None:
        return os.getenv("SEMANTIC_SCHOLAR_API_KEY")

    def make_transformer(self) -> QueryTransformer:
        return SemanticScholarQueryTransformer()

    def make_parser(self) -> ResultParser:
        return SemanticScholarParser(self.name)

    def build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    def build_params(self, query: Query | None, query_str: str) -> dict[str, str]:
        params = super().build_params(query, query_str)
        params["limit"] = str(self.PAGE_SIZE)
        params["fields"] = API_FIELDS

        years = extract_year_range(query)
        if years:
            year_start, year_end = years
            if year_start:
                params["year"] = f"{year_start}-" if not year_end else f"{year_start}-{year_end}"
            elif year_end:
                params["year"] = f"-{year_end}"
        return params
