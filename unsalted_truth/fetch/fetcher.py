"""
HTTP retrieval of feeds through public pass-through proxies.

This module provides the three network capabilities the feed orchestrator
chains together:
1. retrieve_via_proxy_wrapped: proxy returning {"contents": "<markup>"}
2. retrieve_feed_as_json: feed-to-JSON conversion returning {"status", "items"}
3. retrieve_raw: proxy returning the feed markup as-is

Every call is bounded by its own timeout. A timeout cancels the in-flight
request; it is never retried here.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
from typing import Any
from urllib.parse import quote

import httpx

from ..config import FetchConfig
from ..exceptions import MalformedResponseError, TransportError


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 300


def build_proxy_url(template: str, feed_url: str) -> str:
    """Substitute the percent-encoded feed URL into a proxy template."""
    return template.format(url=quote(feed_url, safe=""))


async def fetch_url(
    url: str,
    timeout: float,
    user_agent: str | None = None,
    trust_env: bool = True,
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """Fetch a URL once, aborting the request when ``timeout`` elapses.

    Args:
        url: The URL to fetch
        timeout: Hard limit in seconds for the whole request
        user_agent: Optional User-Agent header
        trust_env: Whether to respect system proxy settings from environment
        client: Optional shared client (used by tests with a mock transport)

    Returns:
        FetchResult with text on a 2xx response, or an error message otherwise
    """
    headers = {"User-Agent": user_agent} if user_agent else {}
    try:
        resp = await asyncio.wait_for(
            _get(url, timeout, headers, trust_env, client),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return FetchResult(url=url, status_code=None, text=None, error=f"TimeoutError: exceeded {timeout}s")
    except httpx.HTTPError as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"{type(exc).__name__}: {exc}")

    if not 200 <= resp.status_code < 300:
        return FetchResult(
            url=url,
            status_code=resp.status_code,
            text=None,
            error=f"HTTP Error: {resp.status_code}",
        )
    return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)


async def _get(
    url: str,
    timeout: float,
    headers: dict[str, str],
    trust_env: bool,
    client: httpx.AsyncClient | None,
) -> httpx.Response:
    if client is not None:
        return await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
    async with httpx.AsyncClient(
        timeout=timeout,
        headers=headers,
        follow_redirects=True,
        trust_env=trust_env,
    ) as own_client:
        return await own_client.get(url)


async def retrieve_via_proxy_wrapped(
    feed_url: str,
    cfg: FetchConfig,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Return the feed markup carried in the proxy's ``contents`` wrapper."""
    data = await _fetch_json(build_proxy_url(cfg.wrapped_proxy_url, feed_url), cfg, client)
    contents = data.get("contents") if isinstance(data, dict) else None
    if not isinstance(contents, str) or not contents.strip():
        raise MalformedResponseError("Wrapped proxy reply has no contents")
    return contents


async def retrieve_feed_as_json(
    feed_url: str,
    cfg: FetchConfig,
    client: httpx.AsyncClient | None = None,
) -> list[dict[str, Any]]:
    """Return the pre-parsed item list of the feed-to-JSON service."""
    data = await _fetch_json(build_proxy_url(cfg.json_proxy_url, feed_url), cfg, client)
    if not isinstance(data, dict) or data.get("status") != "ok":
        raise MalformedResponseError("Feed-to-JSON reply status is not ok")
    items = data.get("items")
    if not isinstance(items, list):
        raise MalformedResponseError("Feed-to-JSON reply has no item list")
    return [item for item in items if isinstance(item, dict)]


async def retrieve_raw(
    feed_url: str,
    cfg: FetchConfig,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Return the raw feed markup relayed by the pass-through proxy."""
    result = await fetch_url(
        build_proxy_url(cfg.raw_proxy_url, feed_url),
        timeout=cfg.timeout_seconds,
        user_agent=cfg.user_agent,
        trust_env=cfg.trust_env,
        client=client,
    )
    if not result.ok or result.text is None:
        raise TransportError(result.error or "Empty response")
    return result.text


async def _fetch_json(url: str, cfg: FetchConfig, client: httpx.AsyncClient | None) -> Any:
    result = await fetch_url(
        url,
        timeout=cfg.timeout_seconds,
        user_agent=cfg.user_agent,
        trust_env=cfg.trust_env,
        client=client,
    )
    if not result.ok or result.text is None:
        raise TransportError(result.error or "Empty response")
    try:
        return json.loads(result.text)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"JSONDecodeError: {exc} - Response: {result.text[:200]}") from exc
