"""Transcript handling: live partial/final text, final pass, speaker-paragraph assembly."""
from .accumulator import PartialResultAccumulator, ThrottledChannel, strip_markers
from .assembler import TranscriptAssembler, render
from .final_pass import FinalPassProcessor

__all__ = [
    "FinalPassProcessor",
    "PartialResultAccumulator",
    "ThrottledChannel",
    "TranscriptAssembler",
    "render",
    "strip_markers",
]
