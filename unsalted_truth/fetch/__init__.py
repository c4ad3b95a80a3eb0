"""
Feed retrieval.

This package handles proxy-based HTTP retrieval, feed markup parsing,
and the strategy chain that always yields a usable feed.
"""

from .feed_parser import items_from_json, make_snippet, parse_feed_markup
from .fetcher import FetchResult, fetch_url
from .orchestrator import FeedStrategy, FetchOrchestrator

__all__ = [
    "FeedStrategy",
    "FetchOrchestrator",
    "FetchResult",
    "fetch_url",
    "items_from_json",
    "make_snippet",
    "parse_feed_markup",
]
