"""
Narration audio decoding, output, and the per-session buffer cache.

The speech model returns raw 16-bit signed little-endian PCM. It is decoded
into float samples in [-1, 1] once per session and the decoded buffer is
reused for every replay until the session's content changes.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Awaitable, Callable, Protocol
import wave

import numpy as np


logger = logging.getLogger(__name__)

PCM_SCALE = 32768.0

STATE_SUSPENDED = "suspended"
STATE_RUNNING = "running"
STATE_CLOSED = "closed"


@dataclass
class AudioBuffer:
    """Decoded narration samples.

    Attributes:
        samples: Interleaved float32 samples in [-1, 1]
        sample_rate: Frames per second
        channels: Number of interleaved channels
    """
    samples: np.ndarray
    sample_rate: int
    channels: int = 1

    @property
    def frames(self) -> int:
        return int(self.samples.size // max(1, self.channels))

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / self.sample_rate


def decode_pcm16(data: bytes, sample_rate: int = 24000, channels: int = 1) -> AudioBuffer:
    """Decode raw 16-bit PCM into a normalized float buffer.

    A trailing partial frame is dropped.
    """
    frame_size = 2 * max(1, channels)
    usable = len(data) - (len(data) % frame_size)
    pcm = np.frombuffer(data[:usable], dtype="<i2")
    samples = pcm.astype(np.float32) / PCM_SCALE
    return AudioBuffer(samples=samples, sample_rate=sample_rate, channels=max(1, channels))


def encode_pcm16(buffer: AudioBuffer) -> bytes:
    clipped = np.clip(buffer.samples, -1.0, 1.0)
    return (clipped * (PCM_SCALE - 1)).astype("<i2").tobytes()


class AudioOutput(Protocol):
    """Playback device used by the speech flow."""

    state: str

    async def resume(self) -> None:
        ...

    def play(self, buffer: AudioBuffer, on_ended: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...


class WavFileOutput:
    """Audio output that renders each narration to a 16-bit WAV file.

    Rendering is synchronous, so ``on_ended`` fires before ``play`` returns.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.state = STATE_SUSPENDED
        self.written: list[Path] = []

    async def resume(self) -> None:
        self.state = STATE_RUNNING

    def play(self, buffer: AudioBuffer, on_ended: Callable[[], None]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with wave.open(str(self.path), "wb") as wavf:
            wavf.setnchannels(buffer.channels)
            wavf.setsampwidth(2)
            wavf.setframerate(buffer.sample_rate)
            wavf.writeframes(encode_pcm16(buffer))
        self.written.append(self.path)
        logger.info("Wrote narration to %s (%.1fs)", self.path, buffer.duration_seconds)
        on_ended()

    def stop(self) -> None:
        return None


class AudioPlaybackCache:
    """Owns a session's audio output and its decoded narration buffer."""

    def __init__(
        self,
        output_factory: Callable[[], AudioOutput],
        sample_rate: int = 24000,
        channels: int = 1,
    ) -> None:
        self.output_factory = output_factory
        self.sample_rate = sample_rate
        self.channels = channels
        self.output: AudioOutput | None = None
        self._buffer: AudioBuffer | None = None

    @property
    def buffer(self) -> AudioBuffer | None:
        return self._buffer

    def clear(self) -> None:
        self._buffer = None

    async def ensure_output(self) -> AudioOutput:
        """Create the output on first use and resume it if suspended."""
        if self.output is None:
            self.output = self.output_factory()
        if self.output.state == STATE_SUSPENDED:
            await self.output.resume()
        return self.output

    async def load(self, synthesize: Callable[[], Awaitable[bytes]]) -> AudioBuffer:
        """Return the cached buffer, synthesizing and decoding it on a miss."""
        if self._buffer is not None:
            return self._buffer
        pcm = await synthesize()
        self._buffer = decode_pcm16(pcm, self.sample_rate, self.channels)
        return self._buffer

    def play(self, on_ended: Callable[[], None]) -> None:
        if self.output is None or self._buffer is None:
            raise RuntimeError("Audio output and buffer must be ready before playback")
        self.output.play(self._buffer, on_ended)

    def stop(self) -> None:
        if self.output is not None:
            self.output.stop()
