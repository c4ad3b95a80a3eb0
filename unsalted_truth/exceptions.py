class UnsaltedTruthError(Exception):
    """Base class for recoverable failures raised inside the package."""


class TransportError(UnsaltedTruthError):
    """Raised when a network call times out, fails, or returns a non-success status."""


class ProviderError(TransportError):
    """Raised when the generation provider cannot be reached or rejects a request."""


class MalformedResponseError(UnsaltedTruthError):
    """Raised when a reply cannot be parsed into the expected structure."""


class AnalysisFailedError(UnsaltedTruthError):
    """Raised when a breakdown could not be produced, even after repair."""


class SpeechSynthesisError(UnsaltedTruthError):
    """Raised when narration audio could not be generated or decoded."""
