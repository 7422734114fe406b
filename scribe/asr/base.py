"""
ASR capabilities consumed by the pipeline.

StreamingRecognizer: one audio block in, a stream of incremental text updates out,
terminated by the block's final text. Invoked once per dispatched block, repeatedly
across a session; model setup is paid only on the first call.

FinalPassRecognizer: the whole session's audio in, timestamped word/phrase chunks out.

Both accept float32 mono audio (normalized [-1, 1]) at the engine's sample_rate.
Instances are constructed explicitly and injected into each session.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Union

if TYPE_CHECKING:
    import numpy as np


@dataclass(frozen=True)
class TranscriptChunk:
    """Recognized text span; start/end in seconds from session start, start <= end."""

    text: str
    start: float
    end: float

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid chunk timestamps: start={self.start} end={self.end}")

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def midpoint(self) -> float:
        return (self.start + self.end) / 2.0


@dataclass(frozen=True)
class TokenUpdate:
    """Incremental decode of the current block: text so far, tokens decoded, throughput."""

    text: str
    num_tokens: int
    tokens_per_second: float | None = None  # since the block was submitted; None if not measured


@dataclass(frozen=True)
class BlockFinal:
    """Completed decode of one block. Always the last item of a recognize() stream."""

    text: str


RecognitionEvent = Union[TokenUpdate, BlockFinal]


class StreamingRecognizer(ABC):
    @abstractmethod
    def recognize(self, audio: "np.ndarray", language: str | None = None) -> AsyncIterator[RecognitionEvent]:
        """
        Decode one block. Yields TokenUpdate items as text arrives and ends with one BlockFinal.
        Errors propagate to the caller (the dispatcher discards that block).
        """
        ...

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Expected sample rate (e.g. 16000)."""
        ...


class FinalPassRecognizer(ABC):
    @abstractmethod
    async def transcribe(self, audio: "np.ndarray", language: str | None = None) -> list[TranscriptChunk]:
        """Higher-accuracy non-streaming pass. Chunks ordered by start time."""
        ...

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        ...
