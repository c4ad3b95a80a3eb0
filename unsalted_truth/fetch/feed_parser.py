"""
Feed markup parsing into ContentItem objects.

RSS/Atom markup is parsed with feedparser; item descriptions often carry
HTML (Google News wraps each story in anchor lists), so snippets are reduced
to plain text with BeautifulSoup and truncated with a "..." marker.
"""

from __future__ import annotations

import logging
from typing import Any
import uuid

from bs4 import BeautifulSoup
import feedparser

from ..core.types import ContentItem

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."
DEFAULT_TITLE = "No Title"


def parse_feed_markup(markup: str, max_items: int = 15, snippet_chars: int = 200) -> list[ContentItem]:
    """Parse RSS/Atom markup into at most ``max_items`` items.

    Malformed markup yields an empty list rather than raising; an empty
    result is treated as a failed strategy by the caller.

    Args:
        markup: The feed document as text
        max_items: Cap on the number of items returned
        snippet_chars: Maximum plain-text snippet length before truncation

    Returns:
        Items in feed order
    """
    if not markup or not markup.strip():
        return []
    try:
        feed = feedparser.parse(markup)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to parse feed markup: %s", exc)
        return []

    entries = getattr(feed, "entries", None) or []
    items: list[ContentItem] = []
    for entry in entries[:max_items]:
        items.append(_entry_to_item(entry, snippet_chars))
    return items


def items_from_json(raw_items: list[dict[str, Any]], max_items: int = 15, snippet_chars: int = 200) -> list[ContentItem]:
    """Map the item list of a feed-to-JSON service into ContentItem objects."""
    items: list[ContentItem] = []
    for raw in raw_items[:max_items]:
        if not isinstance(raw, dict):
            continue
        link = _text(raw.get("link")) or "#"
        guid = _text(raw.get("guid"))
        if not guid:
            guid = link if link != "#" else _random_guid()
        items.append(
            ContentItem(
                title=_text(raw.get("title")) or DEFAULT_TITLE,
                link=link,
                pub_date=_text(raw.get("pubDate")),
                source="News",
                guid=guid,
                snippet=make_snippet(_text(raw.get("description")), snippet_chars),
            )
        )
    return items


def make_snippet(html: str, limit: int = 200) -> str:
    """Strip markup from ``html`` and truncate it to ``limit`` characters."""
    text = strip_markup(html)
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def strip_markup(html: str) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    text = soup.get_text(separator=" ")
    return " ".join(text.split())


def _entry_to_item(entry: Any, snippet_chars: int) -> ContentItem:
    source = "News"
    source_info = entry.get("source")
    if isinstance(source_info, dict):
        source_title = _text(source_info.get("title"))
        if source_title:
            source = source_title

    description = entry.get("summary") or entry.get("description") or ""

    return ContentItem(
        title=_text(entry.get("title")) or DEFAULT_TITLE,
        link=_text(entry.get("link")) or "#",
        pub_date=_text(entry.get("published") or entry.get("updated")),
        source=source,
        guid=_text(entry.get("id") or entry.get("guid")) or _random_guid(),
        snippet=make_snippet(_text(description), snippet_chars),
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _random_guid() -> str:
    return uuid.uuid4().hex
