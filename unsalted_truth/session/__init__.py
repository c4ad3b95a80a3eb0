"""Per-item analysis sessions, narration audio, and the feed controller."""

from .audio import AudioBuffer, AudioOutput, AudioPlaybackCache, WavFileOutput, decode_pcm16
from .controller import FeedController, LoadingView, loading_view
from .session import AnalysisSession
from .state import Phase, SessionState, reduce

__all__ = [
    "AnalysisSession",
    "AudioBuffer",
    "AudioOutput",
    "AudioPlaybackCache",
    "FeedController",
    "LoadingView",
    "Phase",
    "SessionState",
    "WavFileOutput",
    "decode_pcm16",
    "loading_view",
    "reduce",
]
