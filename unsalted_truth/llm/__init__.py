"""LLM generation and observability."""

from .providers.base import GenerationProvider
from .providers.factory import available_providers, create_provider
from .providers.gemini import GeminiProvider
from .tracing import GenerationTrace, flush, setup_langfuse, trace_generation

__all__ = [
    "GenerationProvider",
    "GeminiProvider",
    "GenerationTrace",
    "create_provider",
    "available_providers",
    "setup_langfuse",
    "flush",
    "trace_generation",
]
