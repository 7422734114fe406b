"""
FinalPassProcessor: turns the whole session's audio into the authoritative result.

Final ASR and diarization start together as independent tasks and are joined by a
barrier; a failure in one never cancels the other. Outcomes:

- both succeed         -> aligned, speaker-labelled transcript
- diarization failed   -> same transcript, every paragraph under the unlabeled tag
- final ASR failed     -> live accumulated transcript as one unlabeled paragraph (non-fatal alert)
"""
from __future__ import annotations

import asyncio
import logging

import numpy as np

from scribe.alerts import AlertSink, LoggingAlertSink
from scribe.asr.base import FinalPassRecognizer
from scribe.diarization.aligner import DiarizationAligner
from scribe.diarization.models import DiarizationSegment
from scribe.diarization.provider import DiarizationProvider
from scribe.schemas import MergedSegment, TranscriptResult
from scribe.transcript.assembler import TranscriptAssembler, raw_data, render

logger = logging.getLogger(__name__)


class FinalPassProcessor:
    def __init__(
        self,
        recognizer: FinalPassRecognizer,
        diarizer: DiarizationProvider,
        aligner: DiarizationAligner | None = None,
        assembler: TranscriptAssembler | None = None,
        alerts: AlertSink | None = None,
        language: str | None = None,
    ) -> None:
        self._recognizer = recognizer
        self._diarizer = diarizer
        self._aligner = aligner or DiarizationAligner()
        self._assembler = assembler or TranscriptAssembler()
        self._alerts = alerts or LoggingAlertSink()
        self._language = language

    async def process(self, audio: np.ndarray, sample_rate: int, live_text: str = "") -> TranscriptResult:
        if len(audio) == 0:
            logger.info("Final pass skipped: no session audio")
            return self.fallback(live_text, duration=0.0)

        duration = len(audio) / float(sample_rate)
        logger.info("Final pass started: %.1fs of audio", duration)
        asr_task = asyncio.create_task(self._recognizer.transcribe(audio, self._language))
        diar_task = asyncio.create_task(self._diarizer.diarize(audio, sample_rate))
        chunks, segments = await asyncio.gather(asr_task, diar_task, return_exceptions=True)

        if isinstance(chunks, BaseException):
            if isinstance(chunks, asyncio.CancelledError):
                raise chunks
            logger.error("Final transcription failed, using live transcript: %s", chunks)
            self._alerts.error(
                "Transcription error",
                f"Could not finish the accurate transcript; showing the live transcript instead. ({chunks})",
            )
            return self.fallback(live_text, duration, _as_segments(segments))

        diarization: list[DiarizationSegment] | None
        if isinstance(segments, BaseException):
            if isinstance(segments, asyncio.CancelledError):
                raise segments
            logger.warning("Diarization failed, transcript will be unlabelled: %s", segments)
            self._alerts.warning(
                "Speaker detection error",
                f"Speakers could not be told apart for this recording. ({segments})",
            )
            diarization = None
        else:
            diarization = list(segments)

        aligned = self._aligner.align(chunks, diarization or [])
        result = self._assembler.assemble(aligned, chunks=chunks, diarization=diarization)
        logger.info(
            "Final pass complete: %d chunks, %s speaker turns, %d paragraphs",
            len(chunks),
            "no" if diarization is None else len(diarization),
            len(result.segments),
        )
        return result

    def fallback(
        self,
        live_text: str,
        duration: float,
        diarization: list[DiarizationSegment] | None = None,
    ) -> TranscriptResult:
        """Live accumulated transcript as one paragraph under the unlabeled tag."""
        text = " ".join((live_text or "").split())
        segments = []
        if text:
            segments.append(
                MergedSegment(speaker_label=self._aligner.unlabeled, text=text, start=0.0, end=duration)
            )
        return TranscriptResult(
            formatted_text=render(segments),
            segments=segments,
            raw_data=raw_data(None, diarization),
        )


def _as_segments(value: object) -> list[DiarizationSegment] | None:
    if isinstance(value, BaseException):
        return None
    return list(value)  # type: ignore[arg-type]
