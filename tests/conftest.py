from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable

import numpy as np
import pytest

from scribe.alerts import CollectingAlertSink
from scribe.asr.base import (
    BlockFinal,
    FinalPassRecognizer,
    RecognitionEvent,
    StreamingRecognizer,
    TokenUpdate,
    TranscriptChunk,
)
from scribe.audio.frames import AudioFrame
from scribe.config import Settings
from scribe.diarization.models import DiarizationSegment
from scribe.diarization.provider import DiarizationProvider
from scribe.errors import RecognitionError

SAMPLE_RATE = 16000
FRAME_SAMPLES = 320  # 20ms


class ManualClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def speech_frame(value: float = 0.1, samples: int = FRAME_SAMPLES) -> AudioFrame:
    return AudioFrame(np.full(samples, value, dtype=np.float32), SAMPLE_RATE)


def silent_frame(samples: int = FRAME_SAMPLES) -> AudioFrame:
    return AudioFrame(np.zeros(samples, dtype=np.float32), SAMPLE_RATE)


class FakeStreamingRecognizer(StreamingRecognizer):
    """Yields one TokenUpdate per word of the scripted text, then BlockFinal."""

    def __init__(self, texts: list[str] | None = None, fail_blocks: set[int] | None = None) -> None:
        self.texts = list(texts or [])
        self.fail_blocks = fail_blocks or set()
        self.calls: list[tuple[np.ndarray, str | None]] = []
        self.gate: asyncio.Event | None = None
        self.active = 0
        self.max_active = 0

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    async def recognize(self, audio: np.ndarray, language: str | None = None) -> AsyncIterator[RecognitionEvent]:
        self.calls.append((audio, language))
        index = len(self.calls)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if index in self.fail_blocks:
                raise RecognitionError(f"block {index} failed")
            text = self.texts[index - 1] if index - 1 < len(self.texts) else ""
            words = text.split()
            for n in range(1, len(words) + 1):
                yield TokenUpdate(text=" ".join(words[:n]), num_tokens=n, tokens_per_second=None if n == 1 else 10.0)
                await asyncio.sleep(0)
            yield BlockFinal(text=text)
        finally:
            self.active -= 1


class FakeFinalRecognizer(FinalPassRecognizer):
    def __init__(self, chunks: list[TranscriptChunk] | None = None, error: Exception | None = None) -> None:
        self.chunks = chunks or []
        self.error = error
        self.calls: list[np.ndarray] = []

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    async def transcribe(self, audio: np.ndarray, language: str | None = None) -> list[TranscriptChunk]:
        self.calls.append(audio)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.chunks)


class FakeDiarizer(DiarizationProvider):
    def __init__(self, segments: list[DiarizationSegment] | None = None, error: Exception | None = None) -> None:
        self.segments = segments or []
        self.error = error
        self.calls: list[tuple[np.ndarray, int]] = []
        self.completed = False

    async def diarize(self, audio: np.ndarray, sample_rate: int) -> list[DiarizationSegment]:
        self.calls.append((audio, sample_rate))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        self.completed = True
        return list(self.segments)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def settings() -> Settings:
    # Long tick interval: tests drive session.tick() themselves
    return Settings(TICK_INTERVAL_MS=60_000, LANGUAGE_HINT="en", LOG_FILE="")


@pytest.fixture
def alerts() -> CollectingAlertSink:
    return CollectingAlertSink()


@pytest.fixture
def chunk() -> Callable[..., TranscriptChunk]:
    return lambda text, start, end: TranscriptChunk(text=text, start=start, end=end)
