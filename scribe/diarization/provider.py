"""
DiarizationProvider: full-session audio in, speaker turns out.

PyannoteDiarizationProvider wraps pyannote's speaker-diarization pipeline. The pipeline
is loaded lazily once per provider and reused read-only; inference runs in an executor.

pyannote reports turns without a score. Confidence here is the share of a turn not
covered by any other speaker's turn: clean single-speaker turns score 1.0, turns
buried in crosstalk score low and get filtered before alignment.
"""
from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Iterable

import numpy as np

from scribe.config import Settings, get_settings
from scribe.diarization.models import DiarizationSegment
from scribe.errors import DiarizationError, ModelLoadError
from scribe.lazy import LazyResource

logger = logging.getLogger(__name__)


class DiarizationProvider(ABC):
    @abstractmethod
    async def diarize(self, audio: np.ndarray, sample_rate: int) -> list[DiarizationSegment]:
        """Speaker segments ordered by start time. Raise DiarizationError on failure."""
        ...


class NullDiarizationProvider(DiarizationProvider):
    """Diarization disabled: no segments, so every chunk gets the unlabeled tag."""

    async def diarize(self, audio: np.ndarray, sample_rate: int) -> list[DiarizationSegment]:
        return []


def overlap_confidence(turns: Iterable[tuple[float, float, str]]) -> list[DiarizationSegment]:
    """
    Build segments from (start, end, speaker) turns, scoring each by the fraction
    of it that no other speaker's turn overlaps.
    """
    turns = sorted(turns, key=lambda t: (t[0], t[1]))
    segments: list[DiarizationSegment] = []
    for i, (start, end, speaker) in enumerate(turns):
        duration = end - start
        if duration <= 0:
            segments.append(DiarizationSegment(speaker, start, max(start, end), 0.0))
            continue
        # Union of other speakers' coverage inside [start, end]
        spans = sorted(
            (max(start, s), min(end, e))
            for j, (s, e, other) in enumerate(turns)
            if j != i and other != speaker and s < end and e > start
        )
        covered = 0.0
        cur_s = cur_e = None
        for s, e in spans:
            if cur_e is None or s > cur_e:
                if cur_e is not None:
                    covered += cur_e - cur_s
                cur_s, cur_e = s, e
            else:
                cur_e = max(cur_e, e)
        if cur_e is not None:
            covered += cur_e - cur_s
        confidence = min(1.0, max(0.0, 1.0 - covered / duration))
        segments.append(DiarizationSegment(speaker, start, end, round(confidence, 4)))
    return segments


def load_pyannote_pipeline(settings: Settings | None = None) -> Any:
    """Blocking load of the pyannote pipeline."""
    settings = settings or get_settings()
    try:
        from pyannote.audio import Pipeline
    except ImportError as err:
        raise ModelLoadError(
            "pyannote.audio is required for diarization. Install with: pip install pyannote.audio"
        ) from err
    if settings.HF_TOKEN:
        os.environ["HF_TOKEN"] = settings.HF_TOKEN
    pipeline = Pipeline.from_pretrained(settings.DIARIZATION_MODEL)
    if pipeline is None:
        raise ModelLoadError(f"Could not load {settings.DIARIZATION_MODEL} (gated model? set HF_TOKEN)")
    return pipeline


def _iter_turns(output: Any) -> Iterable[tuple[float, float, str]]:
    # pyannote 3.x returns an Annotation; 4.x wraps it in DiarizeOutput
    annotation = getattr(output, "speaker_diarization", output)
    for turn, _, speaker in annotation.itertracks(yield_label=True):
        yield (round(float(turn.start), 3), round(float(turn.end), 3), str(speaker))


class PyannoteDiarizationProvider(DiarizationProvider):
    def __init__(self, pipeline: Any = None, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._pipeline = LazyResource(
            f"pyannote pipeline '{self._settings.DIARIZATION_MODEL}'",
            lambda: load_pyannote_pipeline(self._settings),
        )
        if pipeline is not None:
            self._pipeline.set(pipeline)

    def _diarize_sync(self, pipeline: Any, audio: np.ndarray, sample_rate: int) -> list[DiarizationSegment]:
        import torch

        waveform = torch.from_numpy(np.ascontiguousarray(audio, dtype=np.float32)).unsqueeze(0)
        kwargs: dict = {}
        if self._settings.DIARIZATION_MIN_SPEAKERS is not None:
            kwargs["min_speakers"] = self._settings.DIARIZATION_MIN_SPEAKERS
        if self._settings.DIARIZATION_MAX_SPEAKERS is not None:
            kwargs["max_speakers"] = self._settings.DIARIZATION_MAX_SPEAKERS
        if kwargs:
            logger.info("Diarization speaker hints: %s", kwargs)
        output = pipeline({"waveform": waveform, "sample_rate": sample_rate}, **kwargs)
        return overlap_confidence(_iter_turns(output))

    async def diarize(self, audio: np.ndarray, sample_rate: int) -> list[DiarizationSegment]:
        if len(audio) < sample_rate:
            # pyannote needs at least a second of audio to embed anything
            return []
        try:
            pipeline = await self._pipeline.get()
        except ModelLoadError as err:
            raise DiarizationError(str(err)) from err
        loop = asyncio.get_running_loop()
        try:
            segments = await loop.run_in_executor(None, self._diarize_sync, pipeline, audio, sample_rate)
        except Exception as err:
            raise DiarizationError(f"Diarization failed: {err}") from err
        logger.info("Diarization complete: %d turns", len(segments))
        return segments


def create_diarization_provider(settings: Settings | None = None) -> DiarizationProvider:
    """Pyannote provider when DIARIZATION_ENABLED is true; else no-op."""
    settings = settings or get_settings()
    if not settings.DIARIZATION_ENABLED:
        return NullDiarizationProvider()
    return PyannoteDiarizationProvider(settings=settings)
