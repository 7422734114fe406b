"""
Speaker attribution (diarization only).

- No audio separation; single-channel input.
- Speaker labels are provider labels, consistent within one session only.
- Every transcript chunk receives exactly one label, even when diarization is
  sparse, fails, or is disabled.
"""
from __future__ import annotations

from scribe.diarization.aligner import DiarizationAligner, align_speaker, filter_segments, overlap_ratio
from scribe.diarization.models import AlignedChunk, AlignmentRule, DiarizationSegment
from scribe.diarization.provider import (
    DiarizationProvider,
    NullDiarizationProvider,
    PyannoteDiarizationProvider,
    create_diarization_provider,
)

__all__ = [
    "AlignedChunk",
    "AlignmentRule",
    "DiarizationAligner",
    "DiarizationProvider",
    "DiarizationSegment",
    "NullDiarizationProvider",
    "PyannoteDiarizationProvider",
    "align_speaker",
    "create_diarization_provider",
    "filter_segments",
    "overlap_ratio",
]
