"""
DiarizationAligner: give every transcript chunk exactly one speaker label.

Policy, per chunk, first matching rule wins:

1. Containment: segments with seg.start <= chunk.start and seg.end >= chunk.end.
   One match -> its speaker; several -> the most confident.
2. Overlap: fraction of the chunk covered by each segment,
   max(0, min(chunk.end, seg.end) - max(chunk.start, seg.start)) / chunk duration.
   Segments at or above the threshold (0.35) compete on confidence.
3. Midpoint: the segment whose midpoint is closest to the chunk's midpoint.
   No segments at all -> the generic unlabeled tag.

Ties keep input order. Low-quality segments (short or unconfident) are filtered
out before any of this runs. align_speaker is pure: same inputs, same label.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from scribe.asr.base import TranscriptChunk
from scribe.diarization.models import AlignedChunk, AlignmentRule, DiarizationSegment

logger = logging.getLogger(__name__)

MIN_SEGMENT_DURATION_SEC = 0.5
MIN_SEGMENT_CONFIDENCE = 0.8
MIN_OVERLAP_RATIO = 0.35
UNLABELED_SPEAKER = "Speaker"

# Absorbs float error in boundary comparisons (2.35 - 2.0 is not exactly 0.35)
_EPS = 1e-9


def filter_segments(
    segments: Iterable[DiarizationSegment],
    min_duration: float = MIN_SEGMENT_DURATION_SEC,
    min_confidence: float = MIN_SEGMENT_CONFIDENCE,
) -> list[DiarizationSegment]:
    """Drop segments shorter than min_duration or less confident than min_confidence."""
    return [
        s
        for s in segments
        if s.duration >= min_duration - _EPS and s.confidence >= min_confidence - _EPS
    ]


def overlap_ratio(chunk: TranscriptChunk, segment: DiarizationSegment) -> float:
    """Fraction of the chunk's duration covered by the segment. 0 for zero-length chunks."""
    duration = chunk.end - chunk.start
    if duration <= 0:
        return 0.0
    covered = max(0.0, min(chunk.end, segment.end) - max(chunk.start, segment.start))
    return covered / duration


def _most_confident(candidates: Sequence[DiarizationSegment]) -> DiarizationSegment:
    # max() returns the first of equal maxima, so input order breaks ties
    return max(candidates, key=lambda s: s.confidence)


def resolve_speaker(
    chunk: TranscriptChunk,
    segments: Sequence[DiarizationSegment],
    min_overlap: float = MIN_OVERLAP_RATIO,
    unlabeled: str = UNLABELED_SPEAKER,
) -> tuple[str, AlignmentRule]:
    """Label and the rule that produced it. segments must already be filtered."""
    if not segments:
        return unlabeled, AlignmentRule.UNLABELED

    containing = [s for s in segments if s.start <= chunk.start + _EPS and s.end >= chunk.end - _EPS]
    if containing:
        return _most_confident(containing).speaker_id, AlignmentRule.CONTAINMENT

    overlapping = [s for s in segments if overlap_ratio(chunk, s) >= min_overlap - _EPS]
    if overlapping:
        return _most_confident(overlapping).speaker_id, AlignmentRule.OVERLAP

    mid = chunk.midpoint
    nearest = min(segments, key=lambda s: abs(s.midpoint - mid))
    return nearest.speaker_id, AlignmentRule.MIDPOINT


def align_speaker(
    chunk: TranscriptChunk,
    segments: Sequence[DiarizationSegment],
    min_overlap: float = MIN_OVERLAP_RATIO,
    unlabeled: str = UNLABELED_SPEAKER,
) -> str:
    """Speaker label for one chunk against already-filtered segments."""
    return resolve_speaker(chunk, segments, min_overlap, unlabeled)[0]


class DiarizationAligner:
    def __init__(
        self,
        min_duration: float = MIN_SEGMENT_DURATION_SEC,
        min_confidence: float = MIN_SEGMENT_CONFIDENCE,
        min_overlap: float = MIN_OVERLAP_RATIO,
        unlabeled: str = UNLABELED_SPEAKER,
    ) -> None:
        self.min_duration = min_duration
        self.min_confidence = min_confidence
        self.min_overlap = min_overlap
        self.unlabeled = unlabeled

    @classmethod
    def from_settings(cls, settings) -> "DiarizationAligner":
        return cls(
            min_duration=settings.DIARIZATION_MIN_DURATION_SEC,
            min_confidence=settings.DIARIZATION_MIN_CONFIDENCE,
            min_overlap=settings.ALIGN_MIN_OVERLAP_RATIO,
            unlabeled=settings.UNLABELED_SPEAKER,
        )

    def align(
        self,
        chunks: Iterable[TranscriptChunk],
        segments: Iterable[DiarizationSegment],
    ) -> list[AlignedChunk]:
        kept = filter_segments(segments, self.min_duration, self.min_confidence)
        aligned: list[AlignedChunk] = []
        counts: dict[AlignmentRule, int] = {}
        for chunk in chunks:
            speaker, rule = resolve_speaker(chunk, kept, self.min_overlap, self.unlabeled)
            aligned.append(AlignedChunk(chunk=chunk, speaker=speaker, rule=rule))
            counts[rule] = counts.get(rule, 0) + 1
        logger.debug(
            "Aligned %d chunks against %d segments: %s",
            len(aligned),
            len(kept),
            {r.value: n for r, n in counts.items()},
        )
        return aligned
