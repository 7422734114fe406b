"""
AudioFrameSource: push-callback delivery of fixed-size mono float32 frames.

MicrophoneSource reads the local input device through sounddevice. The device
callback runs on PortAudio's thread; frames are handed to the event loop with
call_soon_threadsafe so the session only ever sees them on its own loop.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np

from scribe.audio.frames import AudioFrame
from scribe.config import get_settings
from scribe.errors import CaptureError

logger = logging.getLogger(__name__)

FrameCallback = Callable[[AudioFrame], None]


class AudioFrameSource(ABC):
    """Delivers AudioFrames to on_frame until stopped. Must tolerate silent blocks."""

    @abstractmethod
    def start(self, on_frame: FrameCallback) -> None:
        """Begin delivery. Raise CaptureError if the device cannot be opened."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop delivery and release the device. Safe to call twice."""
        ...

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        ...


def _parse_device(value: str | None) -> int | str | None:
    if value is None or not str(value).strip():
        return None
    value = str(value).strip()
    return int(value) if value.isdigit() else value


class MicrophoneSource(AudioFrameSource):
    """Live input device via sounddevice.InputStream (float32, mono)."""

    def __init__(
        self,
        sample_rate: int | None = None,
        frame_ms: int | None = None,
        device: int | str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        settings = get_settings()
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        self._frame_ms = frame_ms or settings.FRAME_MS
        self._blocksize = int(self._sample_rate * self._frame_ms / 1000)
        self._device = device if device is not None else _parse_device(settings.CAPTURE_DEVICE)
        self._loop = loop
        self._stream: Any = None
        self._on_frame: FrameCallback | None = None
        self.status_errors = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def _callback(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        if status:
            self.status_errors += 1
            logger.warning("Audio stream status: %s", status)
        on_frame = self._on_frame
        if on_frame is None or self._loop is None:
            return
        frame = AudioFrame(indata[:, 0], self._sample_rate)
        try:
            self._loop.call_soon_threadsafe(on_frame, frame)
        except RuntimeError:
            # Loop closed while the device was still delivering.
            self._on_frame = None

    def start(self, on_frame: FrameCallback) -> None:
        if self._stream is not None:
            logger.warning("Microphone capture already running")
            return
        try:
            import sounddevice as sd
        except (ImportError, OSError) as err:
            raise CaptureError(f"Audio capture unavailable: {err}") from err

        self._loop = self._loop or asyncio.get_running_loop()
        self._on_frame = on_frame
        try:
            stream = sd.InputStream(
                device=self._device,
                channels=1,
                samplerate=self._sample_rate,
                blocksize=self._blocksize,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except Exception as err:
            self._on_frame = None
            raise CaptureError(f"Could not open microphone: {err}") from err
        self._stream = stream
        logger.info("Microphone capture started: %dHz, %dms frames", self._sample_rate, self._frame_ms)

    def stop(self) -> None:
        self._on_frame = None
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as err:
            logger.warning("Error while closing microphone stream: %s", err)
        logger.info("Microphone capture stopped")
