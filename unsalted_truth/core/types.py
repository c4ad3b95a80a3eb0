"""
Core data types for Unsalted Truth.

This module defines the fundamental data structures used throughout the package:
- ContentItem: A single feed item as retrieved (or translated)
- Citation: A grounding source attached to a breakdown
- AnalysisBreakdown: The structured multi-field analysis of one item
- Persona: Who the breakdown is written for
- Category: A feed section with its source URL
- GenerationResult / ImageResult: Replies from the generation provider
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
from typing import Any

from ..exceptions import MalformedResponseError


@dataclass(frozen=True)
class ContentItem:
    """Represents one item of a feed.

    Items are immutable; translation produces new instances through
    ``with_text``. Cache identity is the guid, not the content.

    Attributes:
        title: The headline
        link: URL of the original story
        pub_date: Publication timestamp as delivered by the feed
        source: Publisher label (e.g., "Reuters")
        guid: Stable unique identifier
        snippet: Optional plain-text description, already length-bounded
    """
    title: str
    link: str
    pub_date: str
    source: str
    guid: str
    snippet: str | None = None

    def with_text(self, title: str, snippet: str | None) -> ContentItem:
        """Return a copy with title/snippet replaced and every other field preserved."""
        return replace(self, title=title, snippet=snippet)


@dataclass(frozen=True)
class Citation:
    """A web source returned in the grounding metadata of an analysis call."""
    uri: str
    title: str = ""


@dataclass(frozen=True)
class Advice:
    advice: str = ""
    reasoning: str = ""


@dataclass(frozen=True)
class Geolocation:
    lat: float
    lng: float
    label: str = ""


@dataclass(frozen=True)
class BiasAnalysis:
    detected_bias: str = ""
    missing_perspectives: list[str] = field(default_factory=list)
    is_controversial: bool = False
    label: str = ""


@dataclass(frozen=True)
class EmotionalLoad:
    score: int = 0
    warning: str | None = None


@dataclass(frozen=True)
class AnalysisBreakdown:
    """Structured analysis of a single item, tagged with its language.

    A breakdown is always replaced as a whole, never partially updated.

    Attributes:
        what: Bullets describing what happened
        who: Affected people and organisations
        why: One-line thesis
        past_references: Historical context bullets
        present_consequences: Present impact bullets
        future_impact: Future outlook bullets
        audience: Target audience label
        advice: One-word action plus its reasoning
        geolocation: Optional map location of the story
        bias: Narrative bias assessment
        emotional_load: 0-100 emotional intensity with optional warning
        language: Language the values were generated in
    """
    what: list[str]
    who: list[str]
    why: str
    past_references: list[str]
    present_consequences: list[str]
    future_impact: list[str]
    audience: str
    advice: Advice
    bias: BiasAnalysis
    emotional_load: EmotionalLoad
    language: str
    geolocation: Geolocation | None = None

    @classmethod
    def from_payload(cls, payload: Any, language: str) -> AnalysisBreakdown:
        """Validate a decoded model reply and build a breakdown from it.

        Field types are normalized rather than trusted: non-list bullet fields
        become empty lists, the emotional score is clamped to 0-100, and an
        unusable geolocation is dropped.

        Raises:
            MalformedResponseError: If the payload is not a JSON object
        """
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Breakdown payload must be an object, got {type(payload).__name__}"
            )

        advice_raw = _as_dict(payload.get("wait_or_prepare"))
        bias_raw = _as_dict(payload.get("bias_analysis"))
        load_raw = _as_dict(payload.get("emotional_load"))
        warning = _as_text(load_raw.get("warning"))

        return cls(
            what=_as_list(payload.get("what")),
            who=_as_list(payload.get("who")),
            why=_as_text(payload.get("why")),
            past_references=_as_list(payload.get("past_references")),
            present_consequences=_as_list(payload.get("present_consequences")),
            future_impact=_as_list(payload.get("future_impact")),
            audience=_as_text(payload.get("audience")),
            advice=Advice(
                advice=_as_text(advice_raw.get("advice")),
                reasoning=_as_text(advice_raw.get("reasoning")),
            ),
            bias=BiasAnalysis(
                detected_bias=_as_text(bias_raw.get("detected_bias")),
                missing_perspectives=_as_list(bias_raw.get("missing_perspectives")),
                is_controversial=bool(bias_raw.get("is_controversial")),
                label=_as_text(bias_raw.get("label")),
            ),
            emotional_load=EmotionalLoad(
                score=_clamp_score(load_raw.get("score")),
                warning=warning or None,
            ),
            language=language,
            geolocation=_as_geolocation(payload.get("geolocation")),
        )

    def narration_script(self) -> str:
        """Build the narration read aloud by the speech flow."""
        what_text = ". ".join(self.what)
        impact_text = ". ".join(self.present_consequences)
        future_text = ". ".join(self.future_impact)
        return (
            f"Here is the truth. {self.why}. "
            f"What Happened: {what_text}. "
            f"Why it matters: {impact_text}. "
            f"Future outlook: {future_text}"
        )


@dataclass(frozen=True)
class Persona:
    """Reader profile the breakdown is tailored to."""
    role: str = "Citizen"
    location: str = "USA"


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    rss_url: str


@dataclass
class GenerationResult:
    """Text reply of a generation call.

    Attributes:
        text: Concatenated non-thought text parts
        grounding_chunks: Raw grounding chunks (``{"web": {"uri", "title"}}``)
    """
    text: str
    grounding_chunks: list[dict[str, Any]] = field(default_factory=list)

    def citations(self) -> list[Citation]:
        """Convert grounding chunks into citations, dropping chunks without a URI."""
        citations: list[Citation] = []
        for chunk in self.grounding_chunks:
            web = _as_dict(_as_dict(chunk).get("web"))
            uri = _as_text(web.get("uri"))
            if not uri:
                continue
            citations.append(Citation(uri=uri, title=_as_text(web.get("title")) or uri))
        return citations


@dataclass
class ImageResult:
    data: bytes
    mime_type: str = "image/png"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def _clamp_score(value: Any) -> int:
    try:
        score = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, score))


def _as_geolocation(value: Any) -> Geolocation | None:
    raw = _as_dict(value)
    try:
        lat = float(raw["lat"])
        lng = float(raw["lng"])
    except (KeyError, TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return Geolocation(lat=lat, lng=lng, label=_as_text(raw.get("label")))
