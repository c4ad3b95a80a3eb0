"""Tests for chunked batch translation and the translation cache."""

from __future__ import annotations

import asyncio
import json

from unsalted_truth.analyzers.translator import BatchTranslator, TranslationCache
from unsalted_truth.config import TranslateConfig
from unsalted_truth.core.types import ContentItem, GenerationResult
from unsalted_truth.exceptions import ProviderError


def _items(count: int) -> list[ContentItem]:
    return [
        ContentItem(
            title=f"Story {i}",
            link=f"https://example.com/{i}",
            pub_date="Mon, 06 Jan 2025 10:00:00 GMT",
            source="Wire",
            guid=f"g{i}",
            snippet=f"Snippet {i}",
        )
        for i in range(count)
    ]


def _chunk_records(prompt: str) -> list[dict]:
    return json.loads(prompt.split("Input:", 1)[1])


class _FakeTranslator:
    """Provider stub that translates by prefixing, with scripted failures."""

    def __init__(self, failures: dict[int, int] | None = None, reply=None):
        # first index of a chunk -> number of calls that should fail
        self.failures = dict(failures or {})
        self.reply = reply
        self.calls: list[tuple[int, ...]] = []
        self.mime_types: list[str | None] = []

    async def generate_text(
        self,
        prompt,
        system_instruction=None,
        tools=None,
        response_mime_type=None,
        event="llm_generate_text",
    ):
        records = _chunk_records(prompt)
        indexes = tuple(record["index"] for record in records)
        self.calls.append(indexes)
        self.mime_types.append(response_mime_type)
        await asyncio.sleep(0)
        if self.failures.get(indexes[0], 0) > 0:
            self.failures[indexes[0]] -= 1
            raise ProviderError("chunk failed")
        if self.reply is not None:
            return GenerationResult(text=self.reply(records))
        translated = [
            {"index": r["index"], "title": f"ES {r['title']}", "snippet": f"ES {r['snippet']}"}
            for r in records
        ]
        return GenerationResult(text=json.dumps(translated))


def test_source_language_is_identity_without_calls():
    provider = _FakeTranslator()
    items = _items(3)

    result = asyncio.run(BatchTranslator(TranslateConfig(), provider).translate(items, "English"))

    assert provider.calls == []
    assert all(out is original for out, original in zip(result, items))


def test_twelve_items_two_chunks_second_failing_twice():
    provider = _FakeTranslator(failures={10: 2})
    items = _items(12)

    result = asyncio.run(BatchTranslator(TranslateConfig(), provider).translate(items, "Spanish"))

    assert len(result) == 12
    assert sorted(provider.calls) == [tuple(range(10)), (10, 11), (10, 11)]
    assert [item.title for item in result[:10]] == [f"ES Story {i}" for i in range(10)]
    assert result[10] is items[10]
    assert result[11] is items[11]
    assert all(out.guid == original.guid for out, original in zip(result, items))


def test_chunk_recovers_on_retry():
    provider = _FakeTranslator(failures={0: 1})
    items = _items(4)

    result = asyncio.run(BatchTranslator(TranslateConfig(), provider).translate(items, "French"))

    assert len(provider.calls) == 2
    assert [item.title for item in result] == [f"ES Story {i}" for i in range(4)]


def test_requests_json_replies():
    provider = _FakeTranslator()

    asyncio.run(BatchTranslator(TranslateConfig(), provider).translate(_items(2), "German"))

    assert provider.mime_types == ["application/json"]


def test_fenced_reply_and_malformed_entries():
    def reply(records):
        entries = [
            {"index": 0, "title": "Titulo 0", "snippet": ""},
            {"index": "1", "title": "string index"},
            {"index": 7, "title": "outside chunk"},
            "not an object",
        ]
        return "```json\n" + json.dumps(entries) + "\n``` done"

    provider = _FakeTranslator(reply=reply)
    items = _items(2)

    result = asyncio.run(BatchTranslator(TranslateConfig(), provider).translate(items, "Spanish"))

    assert result[0].title == "Titulo 0"
    assert result[0].snippet == "Snippet 0"
    assert result[0].link == items[0].link
    assert result[1] is items[1]


def test_non_array_reply_is_retried_then_dropped():
    provider = _FakeTranslator(reply=lambda records: '{"index": 0}')
    items = _items(2)

    result = asyncio.run(BatchTranslator(TranslateConfig(), provider).translate(items, "Spanish"))

    assert len(provider.calls) == 2
    assert result == items


def test_snippets_are_bounded_in_the_request():
    provider = _FakeTranslator()
    long_item = ContentItem("T", "#", "", "Wire", "g0", snippet="x" * 500)
    seen: list[int] = []

    original = provider.generate_text

    async def spy(prompt, **kwargs):
        seen.extend(len(r["snippet"]) for r in _chunk_records(prompt))
        return await original(prompt, **kwargs)

    provider.generate_text = spy

    asyncio.run(BatchTranslator(TranslateConfig(), provider).translate([long_item], "Hindi"))

    assert seen == [200]


def test_warm_cache_returns_cached_sequence_without_calls():
    provider = _FakeTranslator()
    translator = BatchTranslator(TranslateConfig(), provider)
    cache = TranslationCache()
    items = _items(3)

    async def _go():
        first = await cache.get_or_compute("Spanish", lambda: translator.translate(items, "Spanish"))
        second = await cache.get_or_compute("Spanish", lambda: translator.translate(items, "Spanish"))
        return first, second

    first, second = asyncio.run(_go())

    assert len(provider.calls) == 1
    assert first is second


def test_concurrent_requests_coalesce():
    provider = _FakeTranslator()
    translator = BatchTranslator(TranslateConfig(), provider)
    cache = TranslationCache()
    items = _items(3)

    async def _go():
        return await asyncio.gather(
            cache.get_or_compute("Italian", lambda: translator.translate(items, "Italian")),
            cache.get_or_compute("Italian", lambda: translator.translate(items, "Italian")),
        )

    first, second = asyncio.run(_go())

    assert len(provider.calls) == 1
    assert first == second
    assert cache.get("Italian") == first


def test_invalidation_during_compute_discards_result():
    cache = TranslationCache()
    items = _items(1)

    async def compute():
        cache.invalidate_all()
        return items

    async def _go():
        return await cache.get_or_compute("Arabic", compute)

    result = asyncio.run(_go())

    assert result == items
    assert cache.get("Arabic") is None
    assert cache.generation == 1


def test_failed_compute_is_not_cached():
    cache = TranslationCache()

    async def compute():
        raise RuntimeError("translator exploded")

    async def _go():
        try:
            await cache.get_or_compute("Japanese", compute)
        except RuntimeError:
            return True
        return False

    assert asyncio.run(_go()) is True
    assert "Japanese" not in cache


class _HandshakeTranslator(_FakeTranslator):
    """The first chunk's call only completes once the second chunk's call has started."""

    def __init__(self):
        super().__init__()
        self.second_started: asyncio.Event | None = None

    async def generate_text(self, prompt, **kwargs):
        first_index = _chunk_records(prompt)[0]["index"]
        if first_index == 0:
            await asyncio.wait_for(self.second_started.wait(), timeout=1.0)
        else:
            self.second_started.set()
        return await super().generate_text(prompt, **kwargs)


def test_chunks_are_dispatched_concurrently():
    provider = _HandshakeTranslator()
    items = _items(12)

    async def _go():
        provider.second_started = asyncio.Event()
        return await BatchTranslator(TranslateConfig(), provider).translate(items, "Spanish")

    result = asyncio.run(_go())

    assert [item.title for item in result] == [f"ES Story {i}" for i in range(12)]
    assert sorted(provider.calls) == [tuple(range(10)), (10, 11)]
