# bibfetch/providers/acm.py
import re
from collections.abc import Iterable
from datetime import date, datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from bibfetch.http import Transport
from bibfetch.models import Author, Entry
from bibfetch.providers.base import Provider, ResultParser
from bibfetch.providers.pagination import PageConvention
from bibfetch.query.combinators import Query, extract_year_range
from bibfetch.query.transformers import QueryTransformer

ACM_BASE = "https://dl.acm.org"
_DOI_HREF_RE = re.compile(r"/doi/(?:abs/|full/|pdf/)?(10\.\d{4,9}/\S+)$")
_YEAR_RE = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")
_WHITESPACE_RE = re.compile(r"\s+")
_CONTAINER_SELECTOR = ".search-result, .search-result__body, .search-result__no-result"


class AcmQueryTransformer(QueryTransformer):
    """ACM Digital Library quick-search syntax.

    Known fields become ``Field:(term)``; anything else is searched in all
    fields. Fuzzy terms keep their ``~``. Year ranges are sent as
    ``AfterYear``/``BeforeYear`` parameters.
    """

    supports_fuzzy = True
    FIELDS = {
        "title": "Title",
        "author": "ContribAuthor",
        "abstract": "Abstract",
        "keyword": "Keyword",
        "doi": "DOI",
    }

    def render_field(self, field: str, term: str) -> str:
        acm_field = self.FIELDS.get(field)
        if acm_field is None:
            return term
        return f"{acm_field}:({term})"


class AcmPortalParser(ResultParser):
    """Parses the HTML of an ACM Digital Library search result page."""

    def records(self, raw: str) -> Iterable[Tag]:
        soup = BeautifulSoup(raw, "html.parser")
        if soup.select_one(_CONTAINER_SELECTOR) is None:
            raise self.error("No search result container in ACM page", raw)
        return soup.select("li.search__item")

    def parse_record(self, record: Tag) -> Entry | None:
        title_tag = record.select_one(".issue-item__title")
        if title_tag is None:
            return None
        title = _text(title_tag)
        if not title:
            return None

        # DOI and landing page
        doi = None
        url = None
        link = title_tag.find("a", href=True)
        if link is not None:
            href = str(link["href"])
            url = urljoin(ACM_BASE, href)
            doi_match = _DOI_HREF_RE.search(href)
            if doi_match:
                doi = doi_match.group(1)

        # Authors
        authors = []
        for anchor in record.select('ul[aria-label="authors"] a[href*="/profile/"]'):
            name = anchor.get("title") or _text(anchor)
            if name:
                authors.append(Author(name=str(name).strip()))

        # Venue
        venue_tag = record.select_one(".epub-section__title")
        venue = _text(venue_tag) or None

        # Year and date
        year = None
        pub_date = None
        date_tag = record.select_one(".dot-separator span") or record.select_one(".bookPubDate")
        if date_tag is not None:
            date_text = _text(date_tag)
            year_match = _YEAR_RE.search(date_text)
            if year_match:
                year = int(year_match.group(1))
            pub_date = _parse_day(date_text)

        # Abstract
        abstract_tag = record.select_one(".issue-item__abstract")
        abstract = _text(abstract_tag) or None

        # Article type
        heading = record.select_one(".issue-heading")
        entry_type = _text(heading).lower() or None

        return Entry(
            title=title,
            authors=tuple(authors),
            source=self.provider,
            year=year,
            abstract=abstract,
            doi=doi,
            url=url,
            venue=venue,
            entry_type=entry_type,
            publication_date=pub_date,
        )


def _text(tag: Tag | None) -> str:
    if tag is None:
        return ""
    return _WHITESPACE_RE.sub(" ", tag.get_text(" ", strip=True)).strip()


def _parse_day(text: str) -> date | None:
    """Parse a full date like '12 March 2021'; month-only dates give None."""
    try:
        return datetime.strptime(text, "%d %B %Y").date()
    except ValueError:
        return None


class AcmPortal(Provider):
    """ACM Digital Library search provider.

    Paging: ``startPage`` is 1-based, so page index 0 is sent as
    ``startPage=1``. The site needs cookies to serve result pages.
    """

    name = "ACM Portal"
    BASE_URL = f"{ACM_BASE}/action/doSearch"
    QUERY_PARAM = "AllField"
    PAGE_SIZE = 20
    help_url = f"{ACM_BASE}/search/advanced"
    pagination = PageConvention("startPage", base=1)

    def __init__(self, transport: Transport) -> None:
        super().__init__(transport)
        transport.enable_cookies()

    def make_transformer(self) -> QueryTransformer:
        return AcmQueryTransformer()

    def make_parser(self) -> ResultParser:
        return AcmPortalParser(self.name)

    def build_params(self, query: Query | None, query_str: str) -> dict[str, str]:
        params = super().build_params(query, query_str)
        params["pageSize"] = str(self.PAGE_SIZE)

        years = extract_year_range(query)
        if years:
            start, end = years
            if start is not None:
                params["AfterYear"] = str(start)
            if end is not None:
                params["BeforeYear"] = str(end)
        return params
