"""Search adapter normalization and degradation to empty results."""
import asyncio
from dataclasses import replace

import httpx

from answer_engine.services.search_service import SearchService, favicon_for
from tests.helpers import FakeProviders, cse_items


def run_search(settings, providers: FakeProviders, query: str = "python asyncio"):
    async def scenario():
        async with providers.client() as client:
            return await SearchService(client, settings).search(query)

    return asyncio.run(scenario())


def test_results_are_normalized_and_ranked(settings, providers):
    providers.search_items = cse_items(2)

    results = run_search(settings, providers)

    assert [r.index for r in results] == [1, 2]
    first = results[0]
    assert first.title == "Result 1"
    assert first.url == "https://site1.example.com/page/1"
    assert first.description == "Snippet 1"
    assert first.favicon == "https://www.google.com/s2/favicons?domain=site1.example.com&sz=32"


def test_request_carries_credentials_and_limit(settings, providers):
    run_search(settings, providers, query="fastapi sse")

    params = providers.requests[0].url.params
    assert params["key"] == "test-cse-key"
    assert params["cx"] == "test-cx"
    assert params["q"] == "fastapi sse"
    assert params["num"] == "5"


def test_results_are_capped_at_five(settings, providers):
    providers.search_items = cse_items(8)
    assert len(run_search(settings, providers)) == 5


def test_missing_credentials_return_empty_without_calling_provider(settings, providers):
    results = run_search(replace(settings, GOOGLE_CSE_CX=None), providers)

    assert results == []
    assert providers.requests == []


def test_http_error_returns_empty(settings, providers):
    providers.search_status = 403
    assert run_search(settings, providers) == []


def test_no_items_returns_empty(settings, providers):
    providers.search_items = []
    assert run_search(settings, providers) == []


def test_malformed_item_returns_empty(settings, providers):
    providers.search_items = [{"title": "no link"}]
    assert run_search(settings, providers) == []


def test_transport_failure_returns_empty(settings):
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(broken)) as client:
            return await SearchService(client, settings).search("anything")

    assert asyncio.run(scenario()) == []


def test_favicon_uses_hostname_only():
    assert favicon_for("https://docs.python.org:443/3/library/asyncio.html?x=1") == (
        "https://www.google.com/s2/favicons?domain=docs.python.org&sz=32"
    )
