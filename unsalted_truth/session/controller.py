"""
Top-level feed controller.

The controller owns the active category, language and persona, the
translation cache, and the per-item sessions. It wires the fetch,
translation, and analysis flows together the way a reader interface
drives them.
"""

from __future__ import annotations

from dataclasses import dataclass
import asyncio
import logging
from pathlib import Path
from typing import Callable

from ..analyzers.breakdown import BreakdownAnalyzer
from ..analyzers.translator import BatchTranslator, TranslationCache
from ..config import AppConfig
from ..core.catalog import DEFAULT_CATEGORY, get_category
from ..core.types import ContentItem, Persona
from ..fetch.orchestrator import FetchOrchestrator
from ..llm.providers.base import GenerationProvider
from ..utils.logging import log_event
from .audio import AudioOutput, AudioPlaybackCache, WavFileOutput
from .session import AnalysisSession, Notifier


@dataclass(frozen=True)
class LoadingView:
    """Derived loading flags shown by a reader."""
    is_content_loading: bool
    show_translating_banner: bool
    is_empty: bool


def loading_view(loading: bool, translating: bool, displayed_count: int) -> LoadingView:
    """Project the primitive loading flags into what a reader displays.

    Content counts as loading while the feed is fetched, or while a
    translation runs with nothing displayed yet. With items already on screen
    a running translation only shows a banner.
    """
    has_items = displayed_count > 0
    return LoadingView(
        is_content_loading=loading or (translating and not has_items),
        show_translating_banner=translating and has_items,
        is_empty=not loading and not translating and not has_items,
    )


class FeedController:
    """Coordinate feed loading, translation, and item sessions."""

    def __init__(
        self,
        cfg: AppConfig,
        provider: GenerationProvider,
        orchestrator: FetchOrchestrator | None = None,
        translator: BatchTranslator | None = None,
        analyzer: BreakdownAnalyzer | None = None,
        cache: TranslationCache | None = None,
        output_factory: Callable[[ContentItem], AudioOutput] | None = None,
        notifier: Notifier | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)
        self.orchestrator = orchestrator or FetchOrchestrator(cfg.fetch, logger=self.logger)
        self.translator = translator or BatchTranslator(cfg.translate, provider, logger=self.logger)
        self.analyzer = analyzer or BreakdownAnalyzer(cfg.analysis, provider, logger=self.logger)
        self.cache = cache or TranslationCache()
        self.output_factory = output_factory or self._default_output
        self.notifier = notifier

        self.category_id = DEFAULT_CATEGORY
        self.language = cfg.translate.source_language
        self.persona = Persona()
        self.original_items: list[ContentItem] = []
        self.displayed_items: list[ContentItem] = []
        self.loading = False
        self._translations_running = 0
        self._load_generation = 0
        self._sessions: dict[str, AnalysisSession] = {}

    @property
    def translating(self) -> bool:
        return self._translations_running > 0

    @property
    def view(self) -> LoadingView:
        return loading_view(self.loading, self.translating, len(self.displayed_items))

    async def select_category(self, category_id: str) -> list[ContentItem]:
        """Load a category, superseding any load still in flight.

        Raises:
            ValueError: If the category is not in the catalog
        """
        category = get_category(category_id)
        if category is None:
            raise ValueError(f"Unknown category: {category_id}")

        self.category_id = category.id
        self._load_generation += 1
        generation = self._load_generation
        self.cache.invalidate_all()
        self.loading = True
        try:
            items = await self.orchestrator.fetch_feed(category.rss_url)
        finally:
            if generation == self._load_generation:
                self.loading = False

        if generation != self._load_generation or category.id != self.category_id:
            self.logger.warning("Discarding stale feed for %s", category.id)
            return self.displayed_items

        # Translations started during the fetch were built from the previous feed.
        self.cache.invalidate_all()
        self.original_items = items
        self._sessions.clear()
        log_event(
            self.logger,
            "Category loaded",
            event="category_loaded",
            category=category.id,
            source=self.orchestrator.last_source,
            count=len(items),
        )
        return await self._refresh_display()

    async def set_language(self, language: str) -> list[ContentItem]:
        """Switch the active language and re-analyze expanded stale items."""
        self.language = language
        displayed = await self._refresh_display()
        sessions = list(self._sessions.values())
        for session in sessions:
            session.item = self._displayed_for(session.item.guid) or session.item
        await asyncio.gather(*(session.on_language_change(language) for session in sessions))
        return displayed

    def set_persona(self, persona: Persona) -> None:
        self.persona = persona
        for session in self._sessions.values():
            session.persona = persona

    def session_for(self, item: ContentItem) -> AnalysisSession:
        """Return the item's session, creating it on first use."""
        session = self._sessions.get(item.guid)
        if session is None:
            session = AnalysisSession(
                item,
                analyzer=self.analyzer,
                speech_provider=self.provider,
                audio=AudioPlaybackCache(
                    lambda: self.output_factory(item),
                    sample_rate=self.cfg.audio.sample_rate,
                    channels=self.cfg.audio.channels,
                ),
                language=self.language,
                persona=self.persona,
                illustrations=self.cfg.analysis.illustrations,
                notifier=self.notifier,
                logger=self.logger,
            )
            self._sessions[item.guid] = session
        else:
            session.item = item
        return session

    async def wait_idle(self) -> None:
        for session in list(self._sessions.values()):
            await session.wait_idle()

    async def _refresh_display(self) -> list[ContentItem]:
        language = self.language
        generation = self.cache.generation
        originals = self.original_items

        if language == self.cfg.translate.source_language or not originals:
            self.displayed_items = list(originals)
            return self.displayed_items

        self._translations_running += 1
        try:
            translated = await self.cache.get_or_compute(
                language, lambda: self.translator.translate(originals, language)
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Translation error, showing original items: %s", exc)
            translated = list(originals)
        finally:
            self._translations_running -= 1

        if language != self.language or generation != self.cache.generation:
            self.logger.debug("Discarding translation to %s for a superseded view", language)
            return self.displayed_items

        self.displayed_items = translated
        return self.displayed_items

    def _displayed_for(self, guid: str) -> ContentItem | None:
        for item in self.displayed_items:
            if item.guid == guid:
                return item
        return None

    def _default_output(self, item: ContentItem) -> AudioOutput:
        return WavFileOutput(Path(self.cfg.audio.output_dir) / f"{_safe_name(item.guid)}.wav")


def _safe_name(value: str) -> str:
    cleaned = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in value)
    return cleaned[:80] or "narration"
