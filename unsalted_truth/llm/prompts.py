"""Prompt loading and rendering helpers for generation calls."""

from __future__ import annotations

from functools import lru_cache
import json
from pathlib import Path
from typing import Any

from ..core.types import Persona


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_translation_prompt(chunk: list[dict[str, Any]], language: str) -> str:
    return _render_template(
        "translate_chunk",
        language=language,
        items_json=json.dumps(chunk, ensure_ascii=False),
    )


def build_analysis_system_instruction(
    persona: Persona,
    language: str,
    use_search_grounding: bool = True,
) -> str:
    if use_search_grounding:
        grounding_rule = "You MUST use the Google Search tool to verify details."
    else:
        grounding_rule = "Only state facts you are confident about."
    return _render_template(
        "analysis_system",
        role=persona.role,
        location=persona.location,
        language=language,
        language_upper=language.upper(),
        grounding_rule=grounding_rule,
    )


def build_analysis_prompt(headline: str, snippet: str, language: str) -> str:
    return _render_template(
        "analysis",
        headline=headline,
        snippet=snippet,
        language=language,
    )


def build_repair_prompt(broken: str) -> str:
    return _render_template("repair_json", broken=broken)


def build_illustration_prompt(headline: str) -> str:
    return _render_template("illustration", headline=headline)


def build_fallback_illustration_prompt() -> str:
    return _load_template("illustration_fallback")
