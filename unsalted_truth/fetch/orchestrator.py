"""Feed retrieval through an ordered chain of independent strategies."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Awaitable, Callable

import httpx

from ..config import FetchConfig
from ..core.catalog import fallback_items
from ..core.types import ContentItem
from ..exceptions import UnsaltedTruthError
from ..utils.logging import log_event
from .feed_parser import items_from_json, parse_feed_markup
from .fetcher import retrieve_feed_as_json, retrieve_raw, retrieve_via_proxy_wrapped


FALLBACK_SOURCE = "fallback"


@dataclass
class FeedStrategy:
    """One way of turning a feed URL into items.

    Attributes:
        name: Label used in logs
        run: Coroutine function returning the extracted items
    """
    name: str
    run: Callable[[str], Awaitable[list[ContentItem]]]


class FetchOrchestrator:
    """Fetch a feed by trying each strategy in order until one yields items.

    Strategies run sequentially, each bounded by its own timeout. A timeout,
    transport failure, malformed reply, or empty extraction moves on to the
    next strategy. When every strategy fails the bundled fallback feed is
    returned, so ``fetch_feed`` never raises and never returns an empty list.
    """

    def __init__(
        self,
        cfg: FetchConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.last_source: str | None = None

    def strategies(self) -> list[FeedStrategy]:
        return [
            FeedStrategy("allorigins", self._via_wrapped_proxy),
            FeedStrategy("rss2json", self._via_json_service),
            FeedStrategy("codetabs", self._via_raw_proxy),
        ]

    async def fetch_feed(self, source_url: str) -> list[ContentItem]:
        for strategy in self.strategies():
            try:
                items = await strategy.run(source_url)
            except UnsaltedTruthError as exc:
                self.logger.warning("Strategy %s failed: %s", strategy.name, exc)
                continue
            if not items:
                self.logger.warning("Strategy %s returned no items", strategy.name)
                continue
            self.last_source = strategy.name
            log_event(
                self.logger,
                "Feed fetched",
                event="feed_fetched",
                strategy=strategy.name,
                count=len(items),
            )
            return items

        self.logger.error("All proxies failed. Serving fallback data.")
        self.last_source = FALLBACK_SOURCE
        return fallback_items()

    async def _via_wrapped_proxy(self, source_url: str) -> list[ContentItem]:
        markup = await retrieve_via_proxy_wrapped(source_url, self.cfg, self.client)
        return parse_feed_markup(markup, self.cfg.max_items, self.cfg.snippet_chars)

    async def _via_json_service(self, source_url: str) -> list[ContentItem]:
        raw_items = await retrieve_feed_as_json(source_url, self.cfg, self.client)
        return items_from_json(raw_items, self.cfg.max_items, self.cfg.snippet_chars)

    async def _via_raw_proxy(self, source_url: str) -> list[ContentItem]:
        markup = await retrieve_raw(source_url, self.cfg, self.client)
        return parse_feed_markup(markup, self.cfg.max_items, self.cfg.snippet_chars)
