"""AudioFrame: one fixed-size block of mono float32 samples from the capture device."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def pcm_bytes_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """Convert PCM 16-bit mono bytes to float32 [-1.0, 1.0]."""
    samples = np.frombuffer(pcm_bytes, dtype=np.int16)
    return samples.astype(np.float32) / 32768.0


@dataclass(frozen=True)
class AudioFrame:
    """
    Immutable once captured. samples is a read-only float32 array;
    sample_rate in Hz (16000 in this pipeline).
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float32).reshape(-1)
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @classmethod
    def from_pcm16(cls, pcm_bytes: bytes, sample_rate: int) -> "AudioFrame":
        return cls(pcm_bytes_to_float32(pcm_bytes), sample_rate)

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        """Seconds of audio in this frame."""
        return len(self) / float(self.sample_rate)

    def is_silent(self) -> bool:
        """True when every sample is exactly zero (muted or idle device)."""
        return not np.any(self.samples)
