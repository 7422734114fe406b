"""
PushFrameSource: frames pushed in from outside (e.g. a WebSocket client).

- Accepts raw PCM 16-bit mono bytes of any length.
- Emits fixed-size frames (e.g. 20ms = 640 bytes); any remainder is kept for the next feed.
"""
from __future__ import annotations

from scribe.audio.capture import AudioFrameSource, FrameCallback
from scribe.audio.frames import AudioFrame
from scribe.config import get_settings
from scribe.errors import CaptureError


class PushFrameSource(AudioFrameSource):
    def __init__(self, sample_rate: int | None = None, frame_ms: int | None = None) -> None:
        settings = get_settings()
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        frame_ms = frame_ms or settings.FRAME_MS
        self._frame_bytes = int(self._sample_rate * frame_ms / 1000) * 2
        self._buffer = bytearray()
        self._on_frame: FrameCallback | None = None
        self._stopped = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def frame_bytes(self) -> int:
        return self._frame_bytes

    def start(self, on_frame: FrameCallback) -> None:
        if self._stopped:
            raise CaptureError("Audio source already closed")
        self._on_frame = on_frame

    def stop(self) -> None:
        self._stopped = True
        self._on_frame = None
        self._buffer.clear()

    def feed(self, data: bytes) -> int:
        """Append raw PCM bytes; deliver every complete frame. Returns frames delivered."""
        if self._on_frame is None:
            return 0
        self._buffer.extend(data)
        delivered = 0
        while len(self._buffer) >= self._frame_bytes and self._on_frame is not None:
            chunk = bytes(self._buffer[: self._frame_bytes])
            del self._buffer[: self._frame_bytes]
            self._on_frame(AudioFrame.from_pcm16(chunk, self._sample_rate))
            delivered += 1
        return delivered

    def push(self, frame: AudioFrame) -> None:
        """Deliver an already-decoded frame."""
        if self._on_frame is not None:
            self._on_frame(frame)

    def remaining_bytes(self) -> int:
        """Bytes left in buffer (incomplete frame)."""
        return len(self._buffer)
