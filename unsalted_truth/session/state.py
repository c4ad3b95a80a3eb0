"""
Per-item session state and its transition function.

Every change to a session goes through ``reduce(state, event)``, which
returns a new immutable ``SessionState``. The invalidation rules live here:
starting an analysis keeps the previous breakdown visible until the new one
replaces it, and a failed analysis folds the item back to collapsed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ..core.types import AnalysisBreakdown, Citation


class Phase(str, Enum):
    COLLAPSED = "collapsed"
    ANALYZING = "analyzing"
    EXPANDED = "expanded"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of one item's analysis, illustration, and speech state.

    Attributes:
        phase: Position in the collapsed/analyzing/expanded machine
        breakdown: Latest breakdown, tagged with its language
        citations: Grounding sources of the latest breakdown
        illustration: Data URI of the illustration, if any
        image_loading: Illustration generation in progress
        speech_loading: Narration synthesis in progress
        playing: Narration playback in progress
    """
    phase: Phase = Phase.COLLAPSED
    breakdown: AnalysisBreakdown | None = None
    citations: tuple[Citation, ...] = ()
    illustration: str | None = None
    image_loading: bool = False
    speech_loading: bool = False
    playing: bool = False

    @property
    def expanded(self) -> bool:
        return self.phase is not Phase.COLLAPSED

    @property
    def analyzed_language(self) -> str | None:
        if self.breakdown is None:
            return None
        return self.breakdown.language

    def is_stale(self, language: str) -> bool:
        """True when a breakdown exists but was produced for another language."""
        return self.breakdown is not None and self.breakdown.language != language


@dataclass(frozen=True)
class Toggled:
    pass


@dataclass(frozen=True)
class AnalysisStarted:
    pass


@dataclass(frozen=True)
class AnalysisSucceeded:
    breakdown: AnalysisBreakdown
    citations: tuple[Citation, ...] = ()


@dataclass(frozen=True)
class AnalysisFailed:
    reason: str = ""


@dataclass(frozen=True)
class ImageStarted:
    pass


@dataclass(frozen=True)
class ImageFinished:
    uri: str | None = None


@dataclass(frozen=True)
class SpeechStarted:
    pass


@dataclass(frozen=True)
class PlaybackStarted:
    pass


@dataclass(frozen=True)
class PlaybackStopped:
    pass


@dataclass(frozen=True)
class SpeechFailed:
    reason: str = ""


SessionEvent = (
    Toggled
    | AnalysisStarted
    | AnalysisSucceeded
    | AnalysisFailed
    | ImageStarted
    | ImageFinished
    | SpeechStarted
    | PlaybackStarted
    | PlaybackStopped
    | SpeechFailed
)


def reduce(state: SessionState, event: SessionEvent) -> SessionState:
    """Apply ``event`` to ``state`` and return the resulting state.

    Raises:
        TypeError: For an unknown event type
    """
    if isinstance(event, Toggled):
        if state.phase is Phase.ANALYZING:
            return state
        phase = Phase.COLLAPSED if state.phase is Phase.EXPANDED else Phase.EXPANDED
        return replace(state, phase=phase)
    if isinstance(event, AnalysisStarted):
        return replace(state, phase=Phase.ANALYZING)
    if isinstance(event, AnalysisSucceeded):
        return replace(
            state,
            phase=Phase.EXPANDED,
            breakdown=event.breakdown,
            citations=tuple(event.citations),
        )
    if isinstance(event, AnalysisFailed):
        return replace(state, phase=Phase.COLLAPSED)
    if isinstance(event, ImageStarted):
        return replace(state, illustration=None, image_loading=True)
    if isinstance(event, ImageFinished):
        return replace(state, illustration=event.uri, image_loading=False)
    if isinstance(event, SpeechStarted):
        return replace(state, speech_loading=True)
    if isinstance(event, PlaybackStarted):
        return replace(state, speech_loading=False, playing=True)
    if isinstance(event, PlaybackStopped):
        return replace(state, playing=False)
    if isinstance(event, SpeechFailed):
        return replace(state, speech_loading=False, playing=False)
    raise TypeError(f"Unknown session event: {type(event).__name__}")
