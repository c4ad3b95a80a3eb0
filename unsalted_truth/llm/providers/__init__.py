"""Generation provider implementations."""

from .base import GenerationProvider
from .factory import available_providers, create_provider
from .gemini import GeminiProvider

__all__ = [
    "GenerationProvider",
    "GeminiProvider",
    "create_provider",
    "available_providers",
]
