"""Speaker-attributed live transcription: streaming ASR, final pass, diarization alignment."""
from scribe.schemas import MergedSegment, TranscriptResult
from scribe.session import RecordingSession, SessionStatus

__version__ = "0.1.0"

__all__ = ["MergedSegment", "RecordingSession", "SessionStatus", "TranscriptResult", "__version__"]
