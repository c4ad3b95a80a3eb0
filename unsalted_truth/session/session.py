"""Analysis session for a single feed item."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..analyzers.breakdown import BreakdownAnalyzer
from ..core.types import AnalysisBreakdown, ContentItem, Persona
from ..exceptions import AnalysisFailedError, SpeechSynthesisError, UnsaltedTruthError
from ..llm.providers.base import GenerationProvider
from ..utils.logging import log_event
from .audio import AudioPlaybackCache
from .state import (
    AnalysisFailed,
    AnalysisStarted,
    AnalysisSucceeded,
    ImageFinished,
    ImageStarted,
    Phase,
    PlaybackStarted,
    PlaybackStopped,
    SessionEvent,
    SessionState,
    SpeechFailed,
    SpeechStarted,
    Toggled,
    reduce,
)


ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again."
SPEECH_FAILED_MESSAGE = "Failed to generate speech."

Notifier = Callable[[str], None]


class AnalysisSession:
    """Drive the analysis, illustration, and narration of one item.

    The breakdown is cached per language: asking again in the same language
    only folds or unfolds the item. Illustration generation runs as a
    background task tracked by the session; ``wait_idle`` awaits it.
    """

    def __init__(
        self,
        item: ContentItem,
        analyzer: BreakdownAnalyzer,
        speech_provider: GenerationProvider,
        audio: AudioPlaybackCache,
        language: str = "English",
        persona: Persona | None = None,
        illustrations: bool = True,
        notifier: Notifier | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.item = item
        self.analyzer = analyzer
        self.speech_provider = speech_provider
        self.audio = audio
        self.language = language
        self.persona = persona or Persona()
        self.illustrations = illustrations
        self.logger = logger or logging.getLogger(__name__)
        self.notifier = notifier or self._log_failure
        self._state = SessionState()
        self._tasks: set[asyncio.Task[None]] = set()
        self._image_token = 0

    @property
    def state(self) -> SessionState:
        return self._state

    async def request_analysis(self, force_image_regen: bool = False) -> None:
        """Analyze the item, or toggle it when a current breakdown exists."""
        state = self._state
        if state.phase is Phase.ANALYZING:
            return

        language = self.language
        should_regenerate = force_image_regen or state.is_stale(language)
        if state.breakdown is not None and not should_regenerate:
            self._dispatch(Toggled())
            return

        self.audio.clear()
        self._dispatch(AnalysisStarted())
        try:
            breakdown, citations = await self.analyzer.analyze(
                self.item.title,
                self.item.snippet or "",
                self.persona,
                language,
            )
        except AnalysisFailedError as exc:
            self.logger.error("Analysis failed for %s: %s", self.item.guid, exc)
            self._dispatch(AnalysisFailed(str(exc)))
            self.notifier(ANALYSIS_FAILED_MESSAGE)
            return

        self._dispatch(AnalysisSucceeded(breakdown, tuple(citations)))
        log_event(
            self.logger,
            "Session analyzed",
            event="session_analyzed",
            guid=self.item.guid,
            language=language,
            regenerate_image=should_regenerate,
        )
        if self.language != language:
            # The active language changed while the call was in flight.
            await self.request_analysis(force_image_regen=True)
            return
        if self.illustrations:
            self._spawn(self._generate_illustration(force=should_regenerate))

    async def on_language_change(self, language: str) -> None:
        """Follow a change of the active language.

        An expanded item whose breakdown is in another language is analyzed
        again immediately. An analysis already in flight picks up the new
        language when it completes.
        """
        self.language = language
        state = self._state
        if state.phase is Phase.EXPANDED and state.is_stale(language):
            await self.request_analysis(force_image_regen=True)

    async def handle_speech(self) -> None:
        """Stop narration if it is playing, otherwise narrate the breakdown."""
        if self._state.playing:
            self.audio.stop()
            self._dispatch(PlaybackStopped())
            return

        breakdown = self._state.breakdown
        if breakdown is None:
            return

        self._dispatch(SpeechStarted())
        try:
            await self.audio.ensure_output()
            await self.audio.load(lambda: self._synthesize(breakdown))
            self._dispatch(PlaybackStarted())
            self.audio.play(self._on_playback_ended)
        except (UnsaltedTruthError, OSError) as exc:
            self.logger.error("Speech failed for %s: %s", self.item.guid, exc)
            self._dispatch(SpeechFailed(str(exc)))
            self.notifier(SPEECH_FAILED_MESSAGE)

    async def wait_idle(self) -> None:
        """Wait until every background task of this session has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _synthesize(self, breakdown: AnalysisBreakdown) -> bytes:
        try:
            return await self.speech_provider.generate_speech(breakdown.narration_script())
        except UnsaltedTruthError as exc:
            raise SpeechSynthesisError(f"Speech synthesis failed: {exc}") from exc

    async def _generate_illustration(self, force: bool) -> None:
        if self._state.illustration and not force:
            return
        self._image_token += 1
        token = self._image_token
        self._dispatch(ImageStarted())
        uri = await self.analyzer.generate_illustration(self.item.title)
        if token != self._image_token:
            self.logger.debug("Discarding superseded illustration for %s", self.item.guid)
            return
        self._dispatch(ImageFinished(uri))

    def _on_playback_ended(self) -> None:
        self._dispatch(PlaybackStopped())

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _dispatch(self, event: SessionEvent) -> None:
        self._state = reduce(self._state, event)
        self.logger.debug(
            "Session %s: %s -> %s", self.item.guid, type(event).__name__, self._state.phase.value
        )

    def _log_failure(self, message: str) -> None:
        self.logger.error(message)
