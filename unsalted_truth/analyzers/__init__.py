"""Generation-backed analyzers: batch translation and per-item breakdowns."""

from .breakdown import BreakdownAnalyzer
from .translator import BatchTranslator, TranslationCache

__all__ = ["BatchTranslator", "BreakdownAnalyzer", "TranslationCache"]
