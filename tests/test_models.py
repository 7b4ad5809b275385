# tests/test_models.py
import pytest

from bibfetch.errors import InvalidArgument
from bibfetch.models import Author, Entry, Page, SearchResult


def entry(title="Paper", year=2020, doi=None, source="OpenAlex", **kwargs):
    return Entry(title=title, authors=(Author("A. Author"),), source=source, year=year, doi=doi, **kwargs)


def test_entries_equal_by_doi_ignoring_case():
    assert entry(title="One", doi="10.1/ABC") == entry(title="Two", doi="10.1/abc")
    assert hash(entry(doi="10.1/ABC")) == hash(entry(doi="10.1/abc"))


def test_entries_equal_by_title_and_year():
    assert entry(title="Deep Learning") == entry(title="deep learning")
    assert entry(year=2020) != entry(year=2021)


def test_identifiers():
    e = entry(doi="10.1/x", extras={"scopus_id": "SCOPUS_ID:1", "other": "y"})
    assert e.identifiers == {"doi": "10.1/x", "scopus_id": "SCOPUS_ID:1"}


def test_page_rejects_negative_index():
    with pytest.raises(InvalidArgument):
        Page(query="q", page_index=-1)


def test_page_is_sized_and_iterable():
    page = Page(query="q", page_index=0, entries=(entry(), entry(title="Other")))
    assert len(page) == 2
    assert [e.title for e in page] == ["Paper", "Other"]
    assert not page.is_empty
    assert Page(query="q", page_index=3).is_empty


def test_dedupe_keeps_first_occurrence():
    result = SearchResult(
        pages={
            "OpenAlex": Page("q", 0, (entry(title="A", doi="10.1/a"), entry(title="B"))),
            "Scopus": Page("q", 0, (entry(title="A again", doi="10.1/A", source="Scopus"), entry(title="C"))),
        }
    )
    deduped = result.dedupe()

    assert [e.title for e in deduped.entries] == ["A", "B", "C"]
    assert deduped.total_by_provider == {"OpenAlex": 2, "Scopus": 1}
    assert deduped.pages["Scopus"].page_index == 0
