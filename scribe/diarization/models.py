"""
Diarization data: speaker turns from the provider, and transcript chunks tagged with a speaker.

Diarization is probabilistic, not a partition: segments may overlap each other and
leave gaps. Speaker ids are provider labels (e.g. "SPEAKER_00"), session-local;
no real identity is inferred.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass

from scribe.asr.base import TranscriptChunk


@dataclass(frozen=True)
class DiarizationSegment:
    """One speaker turn. start/end in seconds from session start; confidence in [0, 1]."""

    speaker_id: str
    start: float
    end: float
    confidence: float = 1.0

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid segment timestamps: start={self.start} end={self.end}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence out of range: {self.confidence}")

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def midpoint(self) -> float:
        return (self.start + self.end) / 2.0


class AlignmentRule(str, enum.Enum):
    """Which tier of the alignment policy produced a label."""

    CONTAINMENT = "containment"
    OVERLAP = "overlap"
    MIDPOINT = "midpoint"
    UNLABELED = "unlabeled"


@dataclass(frozen=True)
class AlignedChunk:
    chunk: TranscriptChunk
    speaker: str
    rule: AlignmentRule

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def start(self) -> float:
        return self.chunk.start

    @property
    def end(self) -> float:
        return self.chunk.end
