"""Output boundary: the one object handed to the surrounding application per session."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TranscriptChunkModel(BaseModel):
    text: str
    start: float
    end: float


class DiarizationSegmentModel(BaseModel):
    speaker_id: str
    start: float
    end: float
    confidence: float = Field(ge=0.0, le=1.0)


class MergedSegment(BaseModel):
    """Same-speaker run. Adjacent segments share a speaker_label only when split by a long pause."""

    speaker_label: str
    text: str
    start: float
    end: float


class RawData(BaseModel):
    """Engine outputs the result was built from; None when that pass failed or did not run."""

    diarization: Optional[list[DiarizationSegmentModel]] = None
    transcription: Optional[list[TranscriptChunkModel]] = None


class TranscriptResult(BaseModel):
    formatted_text: str = ""
    segments: list[MergedSegment] = []
    raw_data: RawData = RawData()
