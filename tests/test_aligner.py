import pytest

from scribe.asr.base import TranscriptChunk
from scribe.diarization.aligner import (
    DiarizationAligner,
    align_speaker,
    filter_segments,
    overlap_ratio,
    resolve_speaker,
)
from scribe.diarization.models import AlignmentRule, DiarizationSegment


def seg(speaker, start, end, confidence=0.9):
    return DiarizationSegment(speaker_id=speaker, start=start, end=end, confidence=confidence)


class TestFilterSegments:
    def test_short_segment_dropped_regardless_of_confidence(self):
        assert filter_segments([seg("A", 0.0, 0.4, confidence=1.0)]) == []

    def test_low_confidence_dropped_regardless_of_duration(self):
        assert filter_segments([seg("A", 0.0, 30.0, confidence=0.79)]) == []

    def test_thresholds_are_inclusive(self):
        kept = filter_segments([seg("A", 1.0, 1.5, confidence=0.8)])
        assert len(kept) == 1

    def test_preserves_order(self):
        segments = [seg("B", 3.0, 5.0), seg("X", 0.0, 0.2), seg("A", 0.0, 2.0)]
        assert [s.speaker_id for s in filter_segments(segments)] == ["B", "A"]


class TestContainment:
    def test_single_containing_segment(self):
        chunk = TranscriptChunk("hi", 1.0, 2.0)
        segments = [seg("A", 0.5, 2.5), seg("B", 3.0, 5.0)]
        assert align_speaker(chunk, segments) == "A"
        assert resolve_speaker(chunk, segments)[1] is AlignmentRule.CONTAINMENT

    def test_highest_confidence_wins(self):
        chunk = TranscriptChunk("hi", 1.0, 2.0)
        segments = [seg("A", 0.0, 3.0, confidence=0.9), seg("B", 0.5, 2.5, confidence=0.95)]
        assert align_speaker(chunk, segments) == "B"

    def test_equal_confidence_keeps_input_order(self):
        chunk = TranscriptChunk("hi", 1.0, 2.0)
        segments = [seg("A", 0.0, 3.0), seg("B", 0.5, 2.5)]
        assert align_speaker(chunk, segments) == "A"
        assert align_speaker(chunk, list(reversed(segments))) == "B"

    def test_shared_boundaries_count_as_contained(self):
        chunk = TranscriptChunk("hi", 1.0, 2.0)
        assert resolve_speaker(chunk, [seg("A", 1.0, 2.0)]) == ("A", AlignmentRule.CONTAINMENT)


class TestOverlap:
    def test_ratio(self):
        chunk = TranscriptChunk("x", 2.0, 3.0)
        assert overlap_ratio(chunk, seg("A", 2.5, 4.0)) == pytest.approx(0.5)
        assert overlap_ratio(chunk, seg("A", 5.0, 6.0)) == 0.0

    def test_zero_length_chunk_has_no_overlap(self):
        assert overlap_ratio(TranscriptChunk("x", 2.0, 2.0), seg("A", 1.0, 2.5)) == 0.0

    def test_exactly_threshold_is_included(self):
        chunk = TranscriptChunk("x", 2.0, 3.0)
        # A covers 0.35s of the chunk; B is nearer by midpoint but covers only 0.1s
        segments = [seg("A", 1.0, 2.35), seg("B", 2.9, 3.5)]
        assert resolve_speaker(chunk, segments) == ("A", AlignmentRule.OVERLAP)

    def test_below_threshold_falls_through_to_midpoint(self):
        chunk = TranscriptChunk("x", 2.0, 3.0)
        segments = [seg("A", 1.0, 2.34), seg("B", 2.9, 3.5)]
        assert resolve_speaker(chunk, segments) == ("B", AlignmentRule.MIDPOINT)

    def test_highest_confidence_among_overlapping(self):
        chunk = TranscriptChunk("x", 2.0, 3.0)
        segments = [seg("A", 1.0, 2.6, confidence=0.85), seg("B", 2.4, 4.0, confidence=0.97)]
        assert resolve_speaker(chunk, segments) == ("B", AlignmentRule.OVERLAP)


class TestMidpointAndUnlabeled:
    def test_nearest_midpoint(self):
        chunk = TranscriptChunk("x", 10.0, 11.0)
        segments = [seg("A", 0.0, 2.0), seg("B", 12.0, 14.0)]
        assert resolve_speaker(chunk, segments) == ("B", AlignmentRule.MIDPOINT)

    def test_no_segments_gives_generic_tag(self):
        chunk = TranscriptChunk("x", 1.0, 2.0)
        assert resolve_speaker(chunk, []) == ("Speaker", AlignmentRule.UNLABELED)
        assert align_speaker(chunk, [], unlabeled="Unknown") == "Unknown"

    def test_deterministic(self):
        chunk = TranscriptChunk("x", 2.0, 3.0)
        segments = [seg("A", 1.0, 2.5, 0.9), seg("B", 2.5, 4.0, 0.9), seg("C", 0.0, 10.0, 0.85)]
        labels = {align_speaker(chunk, segments) for _ in range(20)}
        assert labels == {"C"}


class TestDiarizationAligner:
    def test_filters_before_aligning(self):
        aligner = DiarizationAligner()
        chunks = [TranscriptChunk("hello", 1.0, 1.2)]
        # The containing segment is too short to trust; the long one is far away
        segments = [seg("A", 0.9, 1.3, 0.99), seg("B", 5.0, 8.0, 0.9)]
        aligned = aligner.align(chunks, segments)
        assert aligned[0].speaker == "B"
        assert aligned[0].rule is AlignmentRule.MIDPOINT

    def test_every_chunk_gets_exactly_one_label(self):
        aligner = DiarizationAligner()
        chunks = [TranscriptChunk(w, i * 0.5, i * 0.5 + 0.4) for i, w in enumerate("a b c d e f".split())]
        aligned = aligner.align(chunks, [seg("A", 0.0, 1.0), seg("B", 1.5, 3.0)])
        assert len(aligned) == len(chunks)
        assert all(a.speaker in {"A", "B"} for a in aligned)

    def test_from_settings(self, settings):
        settings.UNLABELED_SPEAKER = "Someone"
        aligner = DiarizationAligner.from_settings(settings)
        assert aligner.align([TranscriptChunk("x", 0.0, 1.0)], [])[0].speaker == "Someone"
