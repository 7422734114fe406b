"""Audio pipeline: capture, session buffering, streaming dispatch."""
from .frames import AudioFrame, pcm_bytes_to_float32
from .capture import AudioFrameSource, MicrophoneSource
from .receiver import PushFrameSource
from .session_buffer import SessionBuffer
from .dispatcher import ChunkDispatcher, DispatchState

__all__ = [
    "AudioFrame",
    "AudioFrameSource",
    "ChunkDispatcher",
    "DispatchState",
    "MicrophoneSource",
    "PushFrameSource",
    "SessionBuffer",
    "pcm_bytes_to_float32",
]
