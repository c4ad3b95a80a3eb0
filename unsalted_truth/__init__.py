"""
Unsalted Truth - persona-tailored news breakdowns.

This package fetches category news feeds through a chain of public proxies,
translates them in parallel batches, and produces structured per-story
breakdowns with illustrations and spoken narration.

Main entry point is the CLI via `unsalted-truth` commands.

Example:
    $ unsalted-truth feed --category WORLD --language Spanish
    $ unsalted-truth analyze --index 0 --role Student --location India
"""

__all__ = ["__version__", "FeedController", "FetchOrchestrator", "BatchTranslator", "AnalysisSession"]
__version__ = "0.1.0"

from .analyzers.translator import BatchTranslator
from .fetch.orchestrator import FetchOrchestrator
from .session.controller import FeedController
from .session.session import AnalysisSession
