"""ASR: streaming and final-pass recognizer capabilities."""
from .base import (
    BlockFinal,
    FinalPassRecognizer,
    RecognitionEvent,
    StreamingRecognizer,
    TokenUpdate,
    TranscriptChunk,
)
from .local_whisper import LocalWhisperEngine, load_whisper_model

__all__ = [
    "BlockFinal",
    "FinalPassRecognizer",
    "LocalWhisperEngine",
    "RecognitionEvent",
    "StreamingRecognizer",
    "TokenUpdate",
    "TranscriptChunk",
    "load_whisper_model",
]
