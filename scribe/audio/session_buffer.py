"""
SessionBuffer: keeps every captured frame for the final pass, plus a short-lived
rolling buffer of frames awaiting streaming dispatch.

The capture device delivers small frames (e.g. 20ms) often; the recognizer wants
one larger block about once a second. The rolling buffer bridges the two cadences
and is cleared on every drain. Session audio is append-only and lives until the
final pass has consumed it.

All-zero frames are still kept in session audio (timestamps stay aligned with
wall time) but never enter the rolling buffer, so muted input costs no recognizer calls.
"""
from __future__ import annotations

import logging

import numpy as np

from scribe.audio.frames import AudioFrame

logger = logging.getLogger(__name__)


class SessionBuffer:
    def __init__(self, sample_rate: int) -> None:
        self._sample_rate = sample_rate
        self._rolling: list[AudioFrame] = []
        self._session: list[np.ndarray] = []
        self._session_samples = 0
        self._silent_frames = 0
        self._released = False

    def on_frame(self, frame: AudioFrame) -> None:
        """Append to session audio always; to the rolling buffer only if not silent."""
        if self._released:
            return
        if frame.sample_rate != self._sample_rate:
            raise ValueError(
                f"Frame sample rate {frame.sample_rate} does not match session rate {self._sample_rate}"
            )
        self._session.append(frame.samples)
        self._session_samples += len(frame)
        if frame.is_silent():
            self._silent_frames += 1
            return
        self._rolling.append(frame)

    def drain(self) -> np.ndarray | None:
        """Concatenate and clear the rolling buffer. None when nothing is pending."""
        if not self._rolling:
            return None
        frames, self._rolling = self._rolling, []
        return np.concatenate([f.samples for f in frames])

    def discard_pending(self) -> int:
        """Drop undispatched rolling audio (session stop). Returns frames dropped."""
        dropped = len(self._rolling)
        self._rolling = []
        if dropped:
            logger.debug("Discarded %d undispatched frames", dropped)
        return dropped

    def session_audio(self) -> np.ndarray:
        """Full session audio as one float32 array."""
        if not self._session:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self._session)

    def release(self) -> None:
        """Destroy session audio once the final pass is done."""
        self._session = []
        self._rolling = []
        self._session_samples = 0
        self._released = True

    @property
    def has_pending(self) -> bool:
        return bool(self._rolling)

    @property
    def silent_frames(self) -> int:
        return self._silent_frames

    @property
    def duration(self) -> float:
        """Seconds of session audio captured so far."""
        return self._session_samples / float(self._sample_rate)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate
