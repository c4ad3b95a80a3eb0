"""Bundled catalog: feed categories, supported languages, and the offline fallback feed."""

from __future__ import annotations

from email.utils import format_datetime
from datetime import datetime, timezone

from .types import Category, ContentItem


SOURCE_LANGUAGE = "English"

SUPPORTED_LANGUAGES: tuple[str, ...] = (
    "English",
    "Hindi",
    "Spanish",
    "French",
    "German",
    "Italian",
    "Chinese",
    "Japanese",
    "Arabic",
)

_GOOGLE_NEWS = "https://news.google.com/rss"

CATEGORIES: tuple[Category, ...] = (
    Category("WORLD", "World", f"{_GOOGLE_NEWS}/headlines/section/topic/WORLD"),
    Category("NATION", "Politics", f"{_GOOGLE_NEWS}/headlines/section/topic/NATION"),
    Category("BUSINESS", "Economy", f"{_GOOGLE_NEWS}/headlines/section/topic/BUSINESS"),
    Category("TECHNOLOGY", "Sci/Tech", f"{_GOOGLE_NEWS}/headlines/section/topic/TECHNOLOGY"),
    Category(
        "EDUCATION",
        "Education",
        f"{_GOOGLE_NEWS}/search?q=Education+News&hl=en-US&gl=US&ceid=US:en",
    ),
    Category("HEALTH", "Health", f"{_GOOGLE_NEWS}/headlines/section/topic/HEALTH"),
    Category("SCIENCE", "Environment", f"{_GOOGLE_NEWS}/headlines/section/topic/SCIENCE"),
    Category("ENTERTAINMENT", "Culture", f"{_GOOGLE_NEWS}/headlines/section/topic/ENTERTAINMENT"),
    Category("SPORTS", "Sports", f"{_GOOGLE_NEWS}/headlines/section/topic/SPORTS"),
)

DEFAULT_CATEGORY = "WORLD"


def get_category(category_id: str) -> Category | None:
    wanted = category_id.strip().upper()
    for category in CATEGORIES:
        if category.id == wanted:
            return category
    return None


def fallback_items() -> list[ContentItem]:
    """Return the offline feed served when every retrieval strategy fails."""
    now = format_datetime(datetime.now(timezone.utc), usegmt=True)
    return [
        ContentItem(
            title="Global Climate Summit Reaches Historic Net-Zero Agreement",
            link="#",
            pub_date=now,
            source="Global Wire",
            guid="demo-1",
            snippet=(
                "World leaders have unanimously agreed to accelerate the transition to "
                "renewable energy, targeting a 50% reduction in carbon emissions by 2030. "
                "The agreement includes funding for developing nations."
            ),
        ),
        ContentItem(
            title="Breakthrough AI Model Predicts Weather Patterns with 99% Accuracy",
            link="#",
            pub_date=now,
            source="Tech Daily",
            guid="demo-2",
            snippet=(
                "Scientists have unveiled a new machine learning system capable of "
                "forecasting extreme weather events weeks in advance, potentially saving "
                "thousands of lives and billions in damages."
            ),
        ),
        ContentItem(
            title="Markets Rally as Inflation Data Shows Unexpected Cooling",
            link="#",
            pub_date=now,
            source="Finance Post",
            guid="demo-3",
            snippet=(
                "Global stock markets hit record highs today after the latest consumer "
                "price index revealed inflation has dropped faster than anticipated, "
                "signaling relief for consumers worldwide."
            ),
        ),
    ]
