"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    """Pipeline settings. Override via environment variables."""

    # Audio: float32 mono, 16kHz
    SAMPLE_RATE: int = 16000

    # Frame: 20ms @ 16kHz = 320 samples
    FRAME_MS: int = 20

    # Streaming dispatch: drain the rolling buffer every N ms (single-flight)
    DISPATCH_INTERVAL_MS: int = 1000
    TICK_INTERVAL_MS: int = 50  # how often the session loop checks the dispatcher and throttle
    PARTIAL_THROTTLE_MS: int = 200  # min gap between UI-facing partial updates

    LANGUAGE_HINT: str = "en"
    STREAMING_MAX_NEW_TOKENS: int = 64  # per dispatched block

    # Local Whisper (faster-whisper); model loaded lazily, once, on first use
    LOCAL_WHISPER_MODEL: str = "base"  # base | small | medium | large-v3
    LOCAL_WHISPER_DEVICE: Literal["cpu", "cuda", "auto"] = "cpu"
    LOCAL_WHISPER_COMPUTE_TYPE: Literal["int8", "float16", "float32", "auto"] = "int8"
    # Partial (faster): lower beam. Final (stable): higher beam.
    LOCAL_WHISPER_BEAM_SIZE_PARTIAL: int = 1
    LOCAL_WHISPER_BEAM_SIZE_FINAL: int = 5
    LOCAL_WHISPER_WORD_TIMESTAMPS: bool = True  # final pass: word chunks (else phrase chunks)
    LOCAL_WHISPER_WARMUP: bool = True  # decode one silent second right after loading

    # Diarization (pyannote)
    DIARIZATION_ENABLED: bool = True
    DIARIZATION_MODEL: str = "pyannote/speaker-diarization-3.1"
    HF_TOKEN: str = ""
    DIARIZATION_MIN_SPEAKERS: Optional[int] = None
    DIARIZATION_MAX_SPEAKERS: Optional[int] = None

    # Alignment: segments shorter / less confident than this are dropped before alignment
    DIARIZATION_MIN_DURATION_SEC: float = 0.5
    DIARIZATION_MIN_CONFIDENCE: float = 0.8
    ALIGN_MIN_OVERLAP_RATIO: float = 0.35
    UNLABELED_SPEAKER: str = "Speaker"

    # Assembly: same-speaker chunks closer than this are merged into one paragraph
    MERGE_MAX_GAP_SEC: float = 1.5

    # Capture: sounddevice input device index or name; empty = system default
    CAPTURE_DEVICE: Optional[str] = None

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path = also log to file (empty = console only)
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
