"""
TranscriptAssembler: speaker-tagged chunks -> same-speaker paragraphs -> readable text.

A chunk joins the previous paragraph when the speaker matches and the silence
between them is under the merge gap (1.5s); otherwise it opens a new paragraph.
This keeps one-word diarization flicker from splitting sentences apart.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from scribe.asr.base import TranscriptChunk
from scribe.diarization.models import AlignedChunk, DiarizationSegment
from scribe.schemas import (
    DiarizationSegmentModel,
    MergedSegment,
    RawData,
    TranscriptChunkModel,
    TranscriptResult,
)

logger = logging.getLogger(__name__)

MERGE_MAX_GAP_SEC = 1.5


def render(segments: Iterable[MergedSegment]) -> str:
    """'{speaker}: {text}' per segment, separated by blank lines."""
    return "\n\n".join(f"{s.speaker_label}: {s.text}" for s in segments)


class TranscriptAssembler:
    def __init__(self, max_gap_sec: float = MERGE_MAX_GAP_SEC) -> None:
        self.max_gap_sec = max_gap_sec

    def merge(self, aligned: Iterable[AlignedChunk]) -> list[MergedSegment]:
        ordered = sorted(aligned, key=lambda a: a.start)  # stable: equal starts keep input order
        segments: list[MergedSegment] = []
        for item in ordered:
            text = item.text.strip()
            if not text:
                continue
            last = segments[-1] if segments else None
            if last is not None and last.speaker_label == item.speaker and item.start - last.end < self.max_gap_sec:
                last.text = f"{last.text} {text}"
                last.end = max(last.end, item.end)
                continue
            segments.append(
                MergedSegment(speaker_label=item.speaker, text=text, start=item.start, end=item.end)
            )
        logger.debug("Merged %d chunks into %d segments", len(ordered), len(segments))
        return segments

    def assemble(
        self,
        aligned: Sequence[AlignedChunk],
        chunks: Sequence[TranscriptChunk] | None = None,
        diarization: Sequence[DiarizationSegment] | None = None,
    ) -> TranscriptResult:
        """
        Build the session result. chunks/diarization are the raw engine outputs;
        pass None for a pass that failed.
        """
        segments = self.merge(aligned)
        return TranscriptResult(
            formatted_text=render(segments),
            segments=segments,
            raw_data=raw_data(chunks, diarization),
        )


def raw_data(
    chunks: Sequence[TranscriptChunk] | None,
    diarization: Sequence[DiarizationSegment] | None,
) -> RawData:
    return RawData(
        transcription=None
        if chunks is None
        else [TranscriptChunkModel(text=c.text, start=c.start, end=c.end) for c in chunks],
        diarization=None
        if diarization is None
        else [
            DiarizationSegmentModel(speaker_id=d.speaker_id, start=d.start, end=d.end, confidence=d.confidence)
            for d in diarization
        ],
    )
