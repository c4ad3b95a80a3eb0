"""Per-item breakdown analysis and illustration generation."""

from __future__ import annotations

import base64
import logging

from ..config import AnalysisConfig
from ..core.extractor import expect_object, parse_json_payload
from ..core.types import AnalysisBreakdown, Citation, Persona
from ..exceptions import AnalysisFailedError, MalformedResponseError, UnsaltedTruthError
from ..llm.prompts import (
    build_analysis_prompt,
    build_analysis_system_instruction,
    build_fallback_illustration_prompt,
    build_illustration_prompt,
    build_repair_prompt,
)
from ..llm.providers.base import GenerationProvider
from ..utils.logging import log_event


GOOGLE_SEARCH_TOOL = {"google_search": {}}


class BreakdownAnalyzer:
    """Produce a structured breakdown of one headline for a persona."""

    def __init__(
        self,
        cfg: AnalysisConfig,
        provider: GenerationProvider,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)

    async def analyze(
        self,
        headline: str,
        snippet: str,
        persona: Persona,
        language: str,
    ) -> tuple[AnalysisBreakdown, list[Citation]]:
        """Analyze a headline and return the breakdown with its citations.

        The grounded call cannot request a JSON mime type, so its reply is
        extracted leniently. When that fails, a single repair call asks the
        model to fix its own output.

        Raises:
            AnalysisFailedError: If the call fails or no valid breakdown is obtained
        """
        system_instruction = build_analysis_system_instruction(
            persona, language, self.cfg.use_search_grounding
        )
        tools = [GOOGLE_SEARCH_TOOL] if self.cfg.use_search_grounding else None

        try:
            result = await self.provider.generate_text(
                build_analysis_prompt(headline, snippet, language),
                system_instruction=system_instruction,
                tools=tools,
                event="llm_analyze",
            )
        except UnsaltedTruthError as exc:
            raise AnalysisFailedError(f"Analysis call failed: {exc}") from exc

        try:
            payload = expect_object(parse_json_payload(result.text))
        except MalformedResponseError as exc:
            self.logger.warning("Initial JSON parse failed, attempting self-correction: %s", exc)
            payload = await self._repair(result.text)

        try:
            breakdown = AnalysisBreakdown.from_payload(payload, language)
        except MalformedResponseError as exc:
            raise AnalysisFailedError(str(exc)) from exc

        citations = result.citations()
        log_event(
            self.logger,
            "Analysis complete",
            event="analysis_complete",
            headline=headline,
            language=language,
            citations=len(citations),
        )
        return breakdown, citations

    async def _repair(self, broken: str) -> dict:
        try:
            repaired = await self.provider.generate_text(
                build_repair_prompt(broken),
                response_mime_type="application/json",
                event="llm_repair_json",
            )
            return expect_object(parse_json_payload(repaired.text))
        except UnsaltedTruthError as exc:
            raise AnalysisFailedError(f"Could not repair analysis JSON: {exc}") from exc

    async def generate_illustration(self, headline: str) -> str | None:
        """Return an illustration data URI for ``headline``, or None.

        A blocked or empty specific prompt is followed by exactly one attempt
        with a generic prompt. Failure is never raised to the caller.
        """
        uri = await self._attempt_image(build_illustration_prompt(headline))
        if uri:
            return uri
        self.logger.warning("Specific image generation blocked or failed. Attempting fallback.")
        uri = await self._attempt_image(build_fallback_illustration_prompt())
        if uri:
            return uri
        self.logger.error("Image generation failed on both attempts")
        return None

    async def _attempt_image(self, prompt: str) -> str | None:
        try:
            image = await self.provider.generate_image(prompt)
        except UnsaltedTruthError as exc:
            self.logger.warning("Image generation failed: %s", exc)
            return None
        if image is None or not image.data:
            return None
        encoded = base64.b64encode(image.data).decode("ascii")
        return f"data:{image.mime_type};base64,{encoded}"
