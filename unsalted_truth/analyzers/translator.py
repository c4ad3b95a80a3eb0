"""
Batch translation of feed items.

Items are projected to ``{index, title, snippet}`` records, split into chunks,
and every chunk is translated by one generation call. All chunks run
concurrently; a chunk that fails twice simply leaves its items untranslated,
so the output always has the same length and order as the input.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from ..config import TranslateConfig
from ..core.extractor import expect_array, parse_json_payload
from ..core.types import ContentItem
from ..exceptions import UnsaltedTruthError
from ..llm.prompts import build_translation_prompt
from ..llm.providers.base import GenerationProvider
from ..utils.logging import log_event


class TranslationCache:
    """Per-language cache of translated feeds.

    Concurrent requests for the same language share a single in-flight
    computation. ``invalidate_all`` bumps ``generation`` so a computation that
    started before the invalidation never writes its result back.
    """

    def __init__(self) -> None:
        self.generation = 0
        self._entries: dict[str, list[ContentItem]] = {}
        self._inflight: dict[str, asyncio.Task[list[ContentItem]]] = {}

    def get(self, language: str) -> list[ContentItem] | None:
        return self._entries.get(language)

    def put(self, language: str, items: list[ContentItem]) -> None:
        self._entries[language] = list(items)

    def invalidate_all(self) -> None:
        self._entries.clear()
        self._inflight.clear()
        self.generation += 1

    def __contains__(self, language: str) -> bool:
        return language in self._entries

    async def get_or_compute(
        self,
        language: str,
        compute: Callable[[], Awaitable[list[ContentItem]]],
    ) -> list[ContentItem]:
        """Return the cached feed for ``language``, computing it at most once.

        Args:
            language: Cache key
            compute: Zero-argument coroutine function producing the feed

        Returns:
            The cached or freshly computed items
        """
        cached = self._entries.get(language)
        if cached is not None:
            return cached

        task = self._inflight.get(language)
        if task is None:
            generation = self.generation
            task = asyncio.ensure_future(compute())
            self._inflight[language] = task
            task.add_done_callback(
                lambda done, lang=language, gen=generation: self._settle(lang, gen, done)
            )
        return await asyncio.shield(task)

    def _settle(self, language: str, generation: int, task: asyncio.Task[list[ContentItem]]) -> None:
        if self._inflight.get(language) is task:
            del self._inflight[language]
        if task.cancelled() or task.exception() is not None:
            return
        if generation == self.generation:
            self._entries[language] = task.result()


class BatchTranslator:
    """Translate item titles and snippets in parallel chunks."""

    def __init__(
        self,
        cfg: TranslateConfig,
        provider: GenerationProvider,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)

    async def translate(self, items: list[ContentItem], target_language: str) -> list[ContentItem]:
        """Translate ``items`` into ``target_language``.

        Items whose translation is missing keep their original object, so a
        partial failure degrades to the source text instead of raising.
        """
        if not items or target_language == self.cfg.source_language:
            return list(items)

        records = [
            {
                "index": index,
                "title": item.title,
                "snippet": (item.snippet or "")[: self.cfg.snippet_chars],
            }
            for index, item in enumerate(items)
        ]
        size = max(1, self.cfg.chunk_size)
        chunks = [records[start:start + size] for start in range(0, len(records), size)]

        results = await asyncio.gather(
            *(
                self._translate_chunk(chunk, target_language, number)
                for number, chunk in enumerate(chunks, start=1)
            )
        )

        translations: dict[int, dict[str, Any]] = {}
        for partial in results:
            translations.update(partial)

        log_event(
            self.logger,
            "Translation complete",
            event="translation_complete",
            language=target_language,
            items=len(items),
            chunks=len(chunks),
            translated=len(translations),
        )
        return [_merge(item, translations.get(index)) for index, item in enumerate(items)]

    async def _translate_chunk(
        self,
        chunk: list[dict[str, Any]],
        language: str,
        number: int,
    ) -> dict[int, dict[str, Any]]:
        prompt = build_translation_prompt(chunk, language)
        allowed = {record["index"] for record in chunk}
        attempts = max(0, self.cfg.max_retries) + 1

        for attempt in range(1, attempts + 1):
            try:
                result = await self.provider.generate_text(
                    prompt,
                    response_mime_type="application/json",
                    event="llm_translate_chunk",
                )
                entries = expect_array(parse_json_payload(result.text))
            except UnsaltedTruthError as exc:
                self.logger.warning(
                    "Translation chunk %d attempt %d/%d failed: %s", number, attempt, attempts, exc
                )
                continue
            return _index_entries(entries, allowed)

        self.logger.error("Translation chunk %d failed, keeping original text", number)
        return {}


def _index_entries(entries: list[Any], allowed: set[int]) -> dict[int, dict[str, Any]]:
    indexed: dict[int, dict[str, Any]] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        index = entry.get("index")
        if isinstance(index, bool) or not isinstance(index, int):
            continue
        if index not in allowed:
            continue
        indexed[index] = entry
    return indexed


def _merge(item: ContentItem, entry: dict[str, Any] | None) -> ContentItem:
    if entry is None:
        return item
    title = _clean(entry.get("title")) or item.title
    snippet = _clean(entry.get("snippet")) or item.snippet
    return item.with_text(title, snippet)


def _clean(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()
