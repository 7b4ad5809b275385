# tests/test_search.py
import asyncio
import json

import pytest

from bibfetch.errors import Cancelled, TransportError
from bibfetch.providers import OpenAlex, SemanticScholar
from bibfetch.query.combinators import title
from bibfetch.search import iter_entries, search, take


def openalex_body(*titles):
    return json.dumps({"results": [{"title": t, "publication_year": 2020} for t in titles]})


def s2_body(*titles):
    return json.dumps({"total": len(titles), "data": [{"title": t, "year": 2020} for t in titles]})


async def collect(aiter):
    return [item async for item in aiter]


async def numbers(n):
    for i in range(n):
        yield i


@pytest.mark.asyncio
async def test_take():
    assert await collect(take(3, numbers(10))) == [0, 1, 2]
    assert await collect(take(5, numbers(2))) == [0, 1]
    assert await collect(take(0, numbers(2))) == []


@pytest.mark.asyncio
async def test_take_does_not_read_past_limit():
    pulled = []

    async def source():
        for i in range(10):
            pulled.append(i)
            yield i

    assert await collect(take(2, source())) == [0, 1]
    assert pulled == [0, 1]


@pytest.mark.asyncio
async def test_search_merges_providers(recording_transport):
    openalex = OpenAlex(recording_transport(openalex_body("Shared", "Only OpenAlex")))
    s2 = SemanticScholar(recording_transport(s2_body("shared", "Only S2")))

    result = await search(title("x"), [openalex, s2], page_index=1)

    assert [e.title for e in result.entries] == ["Shared", "Only OpenAlex", "Only S2"]
    assert result.pages["OpenAlex"].page_index == 1
    assert result.pages["Semantic Scholar"].page_index == 1
    assert result.errors == {}


@pytest.mark.asyncio
async def test_search_without_dedupe(recording_transport):
    openalex = OpenAlex(recording_transport(openalex_body("Shared")))
    s2 = SemanticScholar(recording_transport(s2_body("Shared")))

    result = await search(title("x"), [openalex, s2], dedupe=False)
    assert len(result.entries) == 2


@pytest.mark.asyncio
async def test_search_parses_query_strings(recording_transport):
    transport = recording_transport(openalex_body("A"))
    await search("title:transformer author:Vaswani", [OpenAlex(transport)])
    params = transport.calls[0][1]
    assert params["search"] == "transformer"
    assert params["filter"] == "raw_author_name.search:Vaswani"


@pytest.mark.asyncio
async def test_search_warns_on_error(recording_transport, failing_transport):
    openalex = OpenAlex(recording_transport(openalex_body("A")))
    s2 = SemanticScholar(failing_transport)

    with pytest.warns(UserWarning, match="Semantic Scholar"):
        result = await search(title("x"), [openalex, s2])

    assert [e.title for e in result.entries] == ["A"]
    assert isinstance(result.errors["Semantic Scholar"], TransportError)
    assert "Semantic Scholar" not in result.pages


@pytest.mark.asyncio
async def test_search_ignores_errors(failing_transport):
    result = await search(title("x"), [SemanticScholar(failing_transport)], on_error="ignore")
    assert result.entries == []
    assert "Semantic Scholar" in result.errors


@pytest.mark.asyncio
async def test_search_fails_on_error(failing_transport):
    with pytest.raises(TransportError):
        await search(title("x"), [SemanticScholar(failing_transport)], on_error="fail")


@pytest.mark.asyncio
async def test_search_cancel_event(blocking_transport):
    cancel = asyncio.Event()
    cancel.set()
    result = await search(
        title("x"), [OpenAlex(blocking_transport)], on_error="ignore", cancel=cancel
    )
    assert isinstance(result.errors["OpenAlex"], Cancelled)


@pytest.mark.asyncio
async def test_iter_entries_walks_pages_until_empty(recording_transport):
    bodies = {"1": openalex_body("a", "b"), "2": openalex_body("c"), "3": openalex_body()}
    transport = recording_transport(lambda params: bodies[params["page"]])

    entries = await collect(iter_entries(title("x"), OpenAlex(transport)))

    assert [e.title for e in entries] == ["a", "b", "c"]
    assert [call[1]["page"] for call in transport.calls] == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_iter_entries_max_pages(recording_transport):
    transport = recording_transport(lambda params: openalex_body(f"page {params['page']}"))

    entries = await collect(iter_entries(title("x"), OpenAlex(transport), start_page=2, max_pages=2))

    assert [e.title for e in entries] == ["page 3", "page 4"]
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_iter_entries_limit(recording_transport):
    transport = recording_transport(lambda params: openalex_body("a", "b", "c"))

    entries = await collect(iter_entries(title("x"), OpenAlex(transport), limit=4))

    assert [e.title for e in entries] == ["a", "b", "c", "a"]


@pytest.mark.asyncio
async def test_iter_entries_propagates_errors(failing_transport):
    with pytest.raises(TransportError):
        await collect(iter_entries(title("x"), SemanticScholar(failing_transport)))


@pytest.mark.asyncio
async def test_iter_entries_stops_at_last_page(recording_transport):
    transport = recording_transport(lambda params: s2_body(f"offset {params['offset']}"))

    entries = await collect(iter_entries(title("x"), SemanticScholar(transport)))

    offsets = [call[1]["offset"] for call in transport.calls]
    assert offsets == [str(100 * i) for i in range(10)]
    assert entries[-1].title == "offset 900"
