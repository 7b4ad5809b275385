# tests/integration/test_live_providers.py
import asyncio
import os

import pytest

from bibfetch import HttpxTransport, default_registry, search, title, year

ATTENTION_PAPER_TITLE = "Attention Is All You Need"
ATTENTION_PAPER_YEAR = 2017

pytestmark = pytest.mark.skipif(
    os.environ.get("BIBFETCH_LIVE") != "1",
    reason="BIBFETCH_LIVE=1 not set",
)

requires_scopus = pytest.mark.skipif(
    not os.environ.get("SCOPUS_API_KEY"),
    reason="SCOPUS_API_KEY not set",
)


def attention_query():
    return title(ATTENTION_PAPER_TITLE) & year(ATTENTION_PAPER_YEAR, ATTENTION_PAPER_YEAR)


class TestLiveProviders:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["OpenAlex", "Semantic Scholar", "ACM Portal"])
    async def test_first_page(self, name):
        async with HttpxTransport() as transport:
            fetcher = default_registry(transport).get(name)
            page = await fetcher.fetch_page(attention_query(), 0, timeout=60)

        assert page.page_index == 0
        for entry in page:
            assert entry.title
            assert entry.source == name

    @requires_scopus
    @pytest.mark.asyncio
    async def test_scopus_first_page(self):
        async with HttpxTransport() as transport:
            page = await default_registry(transport).get("Scopus").fetch_page(attention_query(), 0)

        assert any(ATTENTION_PAPER_TITLE.lower() in e.title.lower() for e in page)

    @pytest.mark.asyncio
    async def test_consecutive_pages_differ(self):
        async with HttpxTransport() as transport:
            fetcher = default_registry(transport).get("OpenAlex")
            first, second = await asyncio.gather(
                fetcher.fetch_page(title("neural network"), 0),
                fetcher.fetch_page(title("neural network"), 1),
            )

        assert first.page_index == 0
        assert second.page_index == 1
        assert {e.url for e in first}.isdisjoint({e.url for e in second})

    @pytest.mark.asyncio
    async def test_multi_provider_search(self):
        async with HttpxTransport() as transport:
            registry = default_registry(transport)
            result = await search(
                attention_query(),
                [registry.get("OpenAlex"), registry.get("Semantic Scholar")],
                on_error="ignore",
                timeout=60,
            )

        assert result.pages or result.errors
        dois = [e.doi.lower() for e in result.entries if e.doi]
        assert len(dois) == len(set(dois))
