"""Tests for the proxy strategy chain and its fallback feed."""

from __future__ import annotations

import asyncio
import json

import httpx

from unsalted_truth.config import FetchConfig
from unsalted_truth.fetch.fetcher import build_proxy_url, fetch_url
from unsalted_truth.fetch.orchestrator import FALLBACK_SOURCE, FetchOrchestrator


FEED_URL = "https://news.google.com/rss/headlines/section/topic/WORLD"

RSS = """<rss version="2.0"><channel>
<item><title>Proxy story</title><link>https://example.com/a</link><guid>a-1</guid></item>
</channel></rss>"""

EMPTY_RSS = "<rss version='2.0'><channel><title>Nothing</title></channel></rss>"


def _run(handler, cfg: FetchConfig | None = None):
    cfg = cfg or FetchConfig()

    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            orchestrator = FetchOrchestrator(cfg, client=client)
            items = await orchestrator.fetch_feed(FEED_URL)
            return items, orchestrator.last_source

    return asyncio.run(_go())


def _router(allorigins, rss2json, codetabs, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if calls is not None:
            calls.append(host)
        if host == "api.allorigins.win":
            return allorigins(request)
        if host == "api.rss2json.com":
            return rss2json(request)
        if host == "api.codetabs.com":
            return codetabs(request)
        return httpx.Response(404)

    return handler


def _fail(request: httpx.Request) -> httpx.Response:
    return httpx.Response(500, text="boom")


def test_first_strategy_wins_and_later_ones_are_not_called():
    calls: list[str] = []
    handler = _router(
        lambda request: httpx.Response(200, json={"contents": RSS}),
        _fail,
        _fail,
        calls,
    )

    items, source = _run(handler)

    assert [item.title for item in items] == ["Proxy story"]
    assert source == "allorigins"
    assert calls == ["api.allorigins.win"]


def test_falls_through_to_json_service():
    handler = _router(
        _fail,
        lambda request: httpx.Response(
            200,
            json={
                "status": "ok",
                "items": [{"title": "JSON story", "link": "https://example.com/j", "guid": "j-1"}],
            },
        ),
        _fail,
    )

    items, source = _run(handler)

    assert [item.guid for item in items] == ["j-1"]
    assert items[0].source == "News"
    assert source == "rss2json"


def test_falls_through_to_raw_proxy_after_malformed_replies():
    handler = _router(
        lambda request: httpx.Response(200, text="<html>not json</html>"),
        lambda request: httpx.Response(200, json={"status": "error", "message": "rate limited"}),
        lambda request: httpx.Response(200, text=RSS),
    )

    items, source = _run(handler)

    assert items[0].guid == "a-1"
    assert source == "codetabs"


def test_empty_extraction_counts_as_failure():
    handler = _router(
        lambda request: httpx.Response(200, json={"contents": EMPTY_RSS}),
        lambda request: httpx.Response(200, json={"status": "ok", "items": []}),
        lambda request: httpx.Response(200, text=RSS),
    )

    items, source = _run(handler)

    assert source == "codetabs"
    assert len(items) == 1


def test_all_strategies_failing_serves_fallback_feed():
    items, source = _run(_router(_fail, _fail, _fail))

    assert [item.guid for item in items] == ["demo-1", "demo-2", "demo-3"]
    assert source == FALLBACK_SOURCE


def test_slow_strategy_times_out_and_next_one_runs():
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1.0)
        return httpx.Response(200, json={"contents": RSS})

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.allorigins.win":
            return await slow(request)
        if request.url.host == "api.rss2json.com":
            return httpx.Response(
                200, json={"status": "ok", "items": [{"title": "Fast", "link": "#"}]}
            )
        return httpx.Response(500)

    items, source = _run(handler, FetchConfig(timeout_seconds=0.05))

    assert source == "rss2json"
    assert items[0].title == "Fast"


def test_proxy_url_encodes_feed_url():
    url = build_proxy_url("https://proxy.example.com/get?url={url}", "https://a.com/rss?q=x&y=1")

    assert url == "https://proxy.example.com/get?url=https%3A%2F%2Fa.com%2Frss%3Fq%3Dx%26y%3D1"


def test_fetch_url_reports_http_errors_without_raising():
    async def _go():
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with httpx.AsyncClient(transport=transport) as client:
            return await fetch_url("https://example.com/feed", timeout=1.0, client=client)

    result = asyncio.run(_go())

    assert not result.ok
    assert result.status_code == 503
    assert result.error == "HTTP Error: 503"


def test_wrapped_proxy_receives_encoded_feed_url():
    seen: list[str] = []

    def allorigins(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["url"])
        return httpx.Response(200, content=json.dumps({"contents": RSS}).encode())

    _run(_router(allorigins, _fail, _fail))

    assert seen == [FEED_URL]
