"""Tests for breakdown normalization and citation mapping."""

from __future__ import annotations

import pytest

from unsalted_truth.core.types import AnalysisBreakdown, ContentItem, GenerationResult
from unsalted_truth.exceptions import MalformedResponseError


def test_from_payload_normalizes_field_types():
    breakdown = AnalysisBreakdown.from_payload(
        {
            "what": "not a list",
            "who": ["  Farmers ", "", 3],
            "why": None,
            "emotional_load": {"score": "-20", "warning": "Graphic details"},
            "geolocation": {"lat": 200, "lng": 10},
        },
        "Hindi",
    )

    assert breakdown.what == []
    assert breakdown.who == ["Farmers", "3"]
    assert breakdown.why == ""
    assert breakdown.emotional_load.score == 0
    assert breakdown.emotional_load.warning == "Graphic details"
    assert breakdown.geolocation is None
    assert breakdown.language == "Hindi"


def test_from_payload_rejects_non_objects():
    with pytest.raises(MalformedResponseError):
        AnalysisBreakdown.from_payload(["what"], "English")


def test_narration_script_joins_fields():
    breakdown = AnalysisBreakdown.from_payload(
        {
            "why": "Prices rose",
            "what": ["Fuel is dearer", "Bus fares too"],
            "present_consequences": ["Budgets shrink"],
            "future_impact": ["Fares may fall"],
        },
        "English",
    )

    assert breakdown.narration_script() == (
        "Here is the truth. Prices rose. "
        "What Happened: Fuel is dearer. Bus fares too. "
        "Why it matters: Budgets shrink. "
        "Future outlook: Fares may fall"
    )


def test_with_text_preserves_other_fields():
    item = ContentItem("Title", "https://x", "today", "Wire", "guid-1", "Snippet")

    translated = item.with_text("Titulo", "Resumen")

    assert translated.title == "Titulo"
    assert translated.snippet == "Resumen"
    assert (translated.link, translated.pub_date, translated.source, translated.guid) == (
        "https://x",
        "today",
        "Wire",
        "guid-1",
    )


def test_citations_skip_chunks_without_uri():
    result = GenerationResult(
        text="",
        grounding_chunks=[{"web": {"uri": "https://a", "title": "A"}}, {"web": {}}, {"other": 1}],
    )

    assert [(c.uri, c.title) for c in result.citations()] == [("https://a", "A")]
