"""Tests for Gemini request building and response parsing."""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from unsalted_truth.config import LoggingConfig, ProviderConfig
from unsalted_truth.exceptions import MalformedResponseError, ProviderError
from unsalted_truth.llm.providers.gemini import (
    GeminiProvider,
    _extract_grounding_chunks,
    _extract_text,
)


def _provider(handler, **cfg_overrides) -> tuple[GeminiProvider, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    provider = GeminiProvider(
        ProviderConfig(**cfg_overrides), "test-key", LoggingConfig(), client=client
    )
    return provider, client


def _call(provider: GeminiProvider, client: httpx.AsyncClient, method: str, *args, **kwargs):
    async def _go():
        async with client:
            return await getattr(provider, method)(*args, **kwargs)

    return asyncio.run(_go())


def _inline_reply(data: bytes, mime_type: str) -> dict:
    encoded = base64.b64encode(data).decode()
    return {
        "candidates": [
            {"content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": encoded}}]}}
        ]
    }


def test_extract_text_joins_non_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": '[{"index": 0'},
                        {"text": ', "title": "Hola"}]'},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == '[{"index": 0, "title": "Hola"}]'


def test_extract_text_falls_back_to_all_text_when_only_thought():
    data = {
        "candidates": [
            {"content": {"parts": [{"thought": True, "text": "first"}, {"thought": True, "text": " second"}]}}
        ]
    }

    assert _extract_text(data) == "first second"


def test_extract_text_handles_missing_candidates():
    assert _extract_text({}) == ""
    assert _extract_text({"candidates": []}) == ""


def test_extract_grounding_chunks():
    data = {
        "candidates": [
            {"groundingMetadata": {"groundingChunks": [{"web": {"uri": "https://a"}}, "junk"]}}
        ]
    }

    assert _extract_grounding_chunks(data) == [{"web": {"uri": "https://a"}}]


def test_generate_text_builds_grounded_request():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.url.params["key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {
                        "content": {"parts": [{"text": '{"why": "x"}'}]},
                        "groundingMetadata": {
                            "groundingChunks": [{"web": {"uri": "https://s", "title": "S"}}]
                        },
                    }
                ]
            },
        )

    provider, client = _provider(handler)
    result = _call(
        provider,
        client,
        "generate_text",
        "Analyze this",
        system_instruction="Be simple",
        tools=[{"google_search": {}}],
    )

    assert seen["path"] == "/v1beta/models/gemini-2.5-flash:generateContent"
    assert seen["key"] == "test-key"
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "Be simple"}]}
    assert seen["body"]["tools"] == [{"google_search": {}}]
    assert "generationConfig" not in seen["body"]
    assert result.text == '{"why": "x"}'
    assert [c.uri for c in result.citations()] == ["https://s"]


def test_generate_text_requests_json_mime_type():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "[]"}]}}]})

    provider, client = _provider(handler)
    _call(provider, client, "generate_text", "Translate", response_mime_type="application/json")

    assert bodies[0]["generationConfig"] == {"responseMimeType": "application/json"}


def test_http_error_becomes_provider_error():
    provider, client = _provider(lambda request: httpx.Response(429, json={"error": "quota"}))

    with pytest.raises(ProviderError):
        _call(provider, client, "generate_text", "hello")


def test_non_json_body_is_malformed():
    provider, client = _provider(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(MalformedResponseError):
        _call(provider, client, "generate_text", "hello")


def test_generate_image_returns_inline_bytes_and_aspect_ratio():
    bodies: list[dict] = []
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=_inline_reply(b"\x89PNG", "image/png"))

    provider, client = _provider(handler)
    image = _call(provider, client, "generate_image", "sketch")

    assert image is not None
    assert image.data == b"\x89PNG"
    assert image.mime_type == "image/png"
    assert bodies[0]["generationConfig"]["imageConfig"] == {"aspectRatio": "16:9"}
    assert paths == ["/v1beta/models/gemini-2.5-flash-image:generateContent"]


def test_generate_image_without_inline_data_is_none():
    reply = {"candidates": [{"content": {"parts": [{"text": "I cannot draw that"}]}}]}
    provider, client = _provider(lambda request: httpx.Response(200, json=reply))

    assert _call(provider, client, "generate_image", "sketch") is None


def test_generate_speech_uses_voice_and_returns_pcm():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=_inline_reply(b"\x00\x01\x02\x03", "audio/L16;rate=24000"))

    provider, client = _provider(handler, voice="Kore")
    pcm = _call(provider, client, "generate_speech", "Here is the truth.")

    assert pcm == b"\x00\x01\x02\x03"
    config = bodies[0]["generationConfig"]
    assert config["responseModalities"] == ["AUDIO"]
    assert config["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Kore"


def test_generate_speech_without_audio_raises():
    reply = {"candidates": [{"content": {"parts": []}}]}
    provider, client = _provider(lambda request: httpx.Response(200, json=reply))

    with pytest.raises(MalformedResponseError, match="No audio data returned"):
        _call(provider, client, "generate_speech", "text")


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        GeminiProvider(ProviderConfig(), None, LoggingConfig())
