import asyncio
import json

import httpx
import pytest

from ttlstore.client import CachedJSONClient


def make_transport(calls, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.method == "POST":
            return httpx.Response(status, json={"echo": json.loads(request.content)})
        return httpx.Response(status, json={"n": len(calls), "path": request.url.path})
    return httpx.MockTransport(handler)


def test_get_json_is_cached(make_store, clock):
    calls = []
    cache = make_store(60, 3600, clock=clock)
    client = CachedJSONClient("https://api.example.com/", cache=cache, transport=make_transport(calls))

    first = asyncio.run(client.get_json("/items"))
    second = asyncio.run(client.get_json("items"))
    assert first == second == {"n": 1, "path": "/items"}
    assert len(calls) == 1
    assert cache.len() == 1


def test_cached_response_expires(make_store, clock):
    calls = []
    cache = make_store(60, 3600, clock=clock)
    client = CachedJSONClient("https://api.example.com", cache=cache, cache_ttl=5, transport=make_transport(calls))

    asyncio.run(client.get_json("/items"))
    clock.advance(5)
    data = asyncio.run(client.get_json("/items"))
    assert data["n"] == 2
    assert len(calls) == 2


def test_per_call_ttl_and_bypass(make_store, clock):
    calls = []
    cache = make_store(60, 3600, clock=clock)
    client = CachedJSONClient("https://api.example.com", cache=cache, transport=make_transport(calls))

    asyncio.run(client.get_json("/a", ttl=1))
    clock.advance(1)
    asyncio.run(client.get_json("/a"))
    asyncio.run(client.get_json("/a", use_cache=False))
    assert len(calls) == 3


def test_query_params_part_of_key(make_store, clock):
    calls = []
    cache = make_store(60, 3600, clock=clock)
    client = CachedJSONClient(
        "https://api.example.com", cache=cache, params={"lang": "en"}, transport=make_transport(calls)
    )

    asyncio.run(client.get_json("/q", params={"b": "2", "a": "1"}))
    asyncio.run(client.get_json("/q", params={"a": "1", "b": "2"}))
    asyncio.run(client.get_json("/q", params={"a": "9"}))
    assert len(calls) == 2
    assert calls[0].url.params["lang"] == "en"
    assert calls[0].url.params["a"] == "1"
    assert client.cache_key("/q", {"b": "2", "a": "1"}) == "https://api.example.com/q?a=1&b=2&lang=en"


def test_headers_and_basic_auth_sent(make_store):
    calls = []
    client = CachedJSONClient("https://api.example.com", cache=make_store(), transport=make_transport(calls))
    client.set_headers({"X-Token": "abc"}).set_basic_auth("user", "pass")

    asyncio.run(client.get_json("/secure"))
    req = calls[0]
    assert req.headers["x-token"] == "abc"
    assert req.headers["authorization"].startswith("Basic ")


def test_http_error_propagates_and_is_not_cached(make_store):
    calls = []
    cache = make_store()
    client = CachedJSONClient("https://api.example.com", cache=cache, transport=make_transport(calls, status=503))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.get_json("/down"))
    assert cache.len() == 0


def test_post_json_not_cached(make_store):
    calls = []
    cache = make_store()
    client = CachedJSONClient("https://api.example.com", cache=cache, transport=make_transport(calls))

    out = asyncio.run(client.post_json("/submit", {"x": 1}))
    assert out == {"echo": {"x": 1}}
    assert cache.len() == 0


def test_invalidate(make_store, clock):
    calls = []
    client = CachedJSONClient(
        "https://api.example.com", cache=make_store(60, 3600, clock=clock), transport=make_transport(calls)
    )

    asyncio.run(client.get_json("/items"))
    client.invalidate("/items")
    asyncio.run(client.get_json("/items"))
    assert len(calls) == 2


def test_owned_cache_stopped_on_close():
    async def run():
        async with CachedJSONClient("https://api.example.com", transport=make_transport([])) as client:
            await client.get_json("/items")
            assert client.cache.running
        return client

    client = asyncio.run(run())
    assert not client.cache.running


def test_shared_cache_left_running(make_store):
    cache = make_store()
    client = CachedJSONClient(cache=cache, transport=make_transport([]))
    asyncio.run(client.aclose())
    assert cache.running
