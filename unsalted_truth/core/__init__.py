"""
Core domain models and helpers.

This package contains data types, the bundled catalog, and the model-output
extractor, all independent of any network capability.
"""

from .catalog import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    SOURCE_LANGUAGE,
    SUPPORTED_LANGUAGES,
    fallback_items,
    get_category,
)
from .extractor import extract_json_payload, parse_json_payload
from .types import (
    AnalysisBreakdown,
    Category,
    Citation,
    ContentItem,
    GenerationResult,
    ImageResult,
    Persona,
)

__all__ = [
    "AnalysisBreakdown",
    "CATEGORIES",
    "Category",
    "Citation",
    "ContentItem",
    "DEFAULT_CATEGORY",
    "GenerationResult",
    "ImageResult",
    "Persona",
    "SOURCE_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "extract_json_payload",
    "fallback_items",
    "get_category",
    "parse_json_payload",
]
