"""Abstract interface for text, image, and speech generation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ...core.types import GenerationResult, ImageResult


class GenerationProvider(ABC):
    """Provider interface for every generation capability the package consumes.

    Implementations raise ``ProviderError`` for transport failures and
    ``MalformedResponseError`` when a reply lacks the expected content. Callers
    own the fallback policy.
    """

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        system_instruction: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        response_mime_type: str | None = None,
        event: str = "llm_generate_text",
    ) -> GenerationResult:
        """Return the text reply and any grounding chunks."""
        raise NotImplementedError

    @abstractmethod
    async def generate_image(self, prompt: str) -> ImageResult | None:
        """Return inline image bytes, or None when the model produced no image."""
        raise NotImplementedError

    @abstractmethod
    async def generate_speech(self, text: str) -> bytes:
        """Return raw 16-bit PCM narration bytes."""
        raise NotImplementedError
