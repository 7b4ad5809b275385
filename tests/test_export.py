# tests/test_export.py
import json
from datetime import date

import pytest

from bibfetch.errors import TransportError
from bibfetch.export import JsonExporter, TreeExporter, get_exporter
from bibfetch.models import Author, Entry, Page, SearchResult


@pytest.fixture
def result():
    entries = (
        Entry(
            title="Attention Is All You Need",
            authors=tuple(Author(n) for n in ["Vaswani", "Shazeer", "Parmar", "Uszkoreit"]),
            source="OpenAlex",
            year=2017,
            doi="10.48550/arXiv.1706.03762",
            venue="NeurIPS",
            publication_date=date(2017, 6, 12),
        ),
        Entry(title="Untitled", authors=(), source="OpenAlex"),
    )
    return SearchResult(
        pages={"OpenAlex": Page(query="attention", page_index=2, entries=entries)},
        errors={"Scopus": TransportError("HTTP 401", provider="Scopus", status_code=401)},
    )


def test_get_exporter():
    assert isinstance(get_exporter("json"), JsonExporter)
    assert isinstance(get_exporter("TREE"), TreeExporter)
    with pytest.raises(ValueError, match="Unknown format"):
        get_exporter("bibtex")


def test_json_export(result):
    data = json.loads(JsonExporter().to_string(result))

    assert data["total"] == 2
    assert data["by_provider"] == {"OpenAlex": 2}
    assert data["pages"] == {"OpenAlex": 2}
    assert data["errors"] == {"Scopus": "Scopus: HTTP 401"}
    first = data["entries"][0]
    assert first["title"] == "Attention Is All You Need"
    assert first["publication_date"] == "2017-06-12"
    assert first["authors"][0] == {"name": "Vaswani", "affiliation": None, "orcid": None}


def test_tree_export(result):
    text = TreeExporter().to_string(result)
    first, second = text.split("\n\n")

    assert first.splitlines() == [
        "Attention Is All You Need",
        "├─ authors: Vaswani, Shazeer, Parmar, et al.",
        "├─ year: 2017",
        "├─ venue: NeurIPS",
        "├─ doi: 10.48550/arXiv.1706.03762",
        "└─ source: OpenAlex",
    ]
    assert second.splitlines() == ["Untitled", "└─ source: OpenAlex"]


def test_export_to_file(result, tmp_path):
    path = tmp_path / "out.json"
    JsonExporter().export(result, path)
    assert json.loads(path.read_text())["total"] == 2
