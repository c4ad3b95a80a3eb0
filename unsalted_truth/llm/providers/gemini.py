"""Google Gemini provider for translation, analysis, illustration, and narration."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.types import GenerationResult, ImageResult
from ...exceptions import MalformedResponseError, ProviderError
from ...utils.logging import log_event, sanitize_text
from ..tracing import trace_generation
from .base import GenerationProvider


class GeminiProvider(GenerationProvider):
    """Gemini-backed provider using the ``generateContent`` REST endpoint."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Google API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._client = client

    async def generate_text(
        self,
        prompt: str,
        system_instruction: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        response_mime_type: str | None = None,
        event: str = "llm_generate_text",
    ) -> GenerationResult:
        payload = _user_payload(prompt)
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if tools:
            payload["tools"] = tools
        if response_mime_type:
            payload["generationConfig"] = {"responseMimeType": response_mime_type}

        data = await self._generate(event, self.cfg.text_model, prompt, payload, grounded=bool(tools))
        content = _extract_text(data)
        self._log_llm_response(event, "ok", content, prompt, self.cfg.text_model)
        return GenerationResult(text=content, grounding_chunks=_extract_grounding_chunks(data))

    async def generate_image(self, prompt: str) -> ImageResult | None:
        payload = _user_payload(prompt)
        payload["generationConfig"] = {
            "responseModalities": ["TEXT", "IMAGE"],
            "imageConfig": {"aspectRatio": self.cfg.image_aspect_ratio},
        }
        event = "llm_generate_image"
        data = await self._generate(event, self.cfg.image_model, prompt, payload)
        inline = _extract_inline_data(data)
        self._log_llm_response(event, "ok" if inline else "empty", "", prompt, self.cfg.image_model)
        if inline is None:
            return None
        raw, mime_type = inline
        return ImageResult(data=raw, mime_type=mime_type or "image/png")

    async def generate_speech(self, text: str) -> bytes:
        payload = _user_payload(text)
        payload["generationConfig"] = {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.cfg.voice}},
            },
        }
        event = "llm_generate_speech"
        data = await self._generate(event, self.cfg.speech_model, text, payload)
        inline = _extract_inline_data(data)
        if inline is None:
            self._log_llm_response(event, "empty", "", text, self.cfg.speech_model)
            raise MalformedResponseError("No audio data returned")
        self._log_llm_response(event, "ok", "", text, self.cfg.speech_model)
        return inline[0]

    async def _generate(
        self,
        event: str,
        model: str,
        prompt: str,
        payload: dict[str, Any],
        grounded: bool = False,
    ) -> dict[str, Any]:
        with trace_generation(f"gemini.{event}", model, prompt, provider="gemini", grounded=grounded) as trace:
            try:
                data = await self._post(model, payload)
            except (ProviderError, MalformedResponseError) as exc:
                trace.fail(exc)
                self._log_llm_response(event, "provider_error", str(exc), prompt, model)
                raise
            trace.succeed(_extract_text(data) or {"parts": len(_parts(data))})
        return data

    async def _post(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url}/v1beta/models/{model}:generateContent"
        params = {"key": self.api_key}
        try:
            if self._client is not None:
                resp = await self._client.post(
                    url, params=params, json=payload, timeout=self.cfg.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env
                ) as client:
                    resp = await client.post(url, params=params, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise ProviderError(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise MalformedResponseError(f"Provider returned non-JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedResponseError("Provider returned an unexpected body")
        return data

    def _log_llm_response(
        self,
        event: str,
        status: str,
        content: str,
        prompt: str,
        model: str,
    ) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        fields: dict[str, Any] = {"event": event, "status": status, "model": model}
        if self.log_cfg.llm_log_detail == "prompt_response":
            fields["raw_prompt"] = sanitize_text(prompt, redaction)
        fields["raw_response"] = sanitize_text(content, redaction)
        log_event(self.llm_logger, "LLM response", **fields)


def _user_payload(text: str) -> dict[str, Any]:
    return {"contents": [{"role": "user", "parts": [{"text": text}]}]}


def _first_candidate(data: dict[str, Any]) -> dict[str, Any]:
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return {}
    first = candidates[0]
    return first if isinstance(first, dict) else {}


def _parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    content = _first_candidate(data).get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [part for part in parts if isinstance(part, dict)]


def _extract_text(data: dict[str, Any]) -> str:
    non_thought_chunks: list[str] = []
    all_chunks: list[str] = []
    for part in _parts(data):
        text = part.get("text")
        if text is None:
            continue
        chunk = str(text)
        if not chunk:
            continue
        all_chunks.append(chunk)
        if not bool(part.get("thought")):
            non_thought_chunks.append(chunk)

    if non_thought_chunks:
        return "".join(non_thought_chunks)
    return "".join(all_chunks)


def _extract_grounding_chunks(data: dict[str, Any]) -> list[dict[str, Any]]:
    metadata = _first_candidate(data).get("groundingMetadata")
    if not isinstance(metadata, dict):
        return []
    chunks = metadata.get("groundingChunks")
    if not isinstance(chunks, list):
        return []
    return [chunk for chunk in chunks if isinstance(chunk, dict)]


def _extract_inline_data(data: dict[str, Any]) -> tuple[bytes, str | None] | None:
    for part in _parts(data):
        inline = part.get("inlineData") or part.get("inline_data")
        if not isinstance(inline, dict):
            continue
        encoded = inline.get("data")
        if not isinstance(encoded, str) or not encoded:
            continue
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            continue
        if not raw:
            continue
        return raw, inline.get("mimeType") or inline.get("mime_type")
    return None
