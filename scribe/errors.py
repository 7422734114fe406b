"""Exception taxonomy for the transcription pipeline."""
from __future__ import annotations


class ScribeError(Exception):
    """Base error for the pipeline."""


class CaptureError(ScribeError):
    """Audio device unavailable or permission denied. Fatal to starting a session."""


class ModelLoadError(ScribeError):
    """ASR or diarization model could not be loaded."""


class RecognitionError(ScribeError):
    """Streaming recognition of one block failed. The block is discarded."""


class FinalPassError(ScribeError):
    """Full-session ASR pass failed. The live transcript is used instead."""


class DiarizationError(ScribeError):
    """Diarization failed. The transcript is returned without speaker labels."""


class SessionStateError(ScribeError):
    """Operation not valid in the session's current status."""
