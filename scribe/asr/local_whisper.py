"""
LocalWhisperEngine: streaming and final-pass ASR using faster-whisper.

- One WhisperModel per engine, loaded lazily on first use and reused read-only.
- STREAMING: low beam, no timestamps, token cap per block; segments are surfaced
  as they decode so the UI sees text before the block finishes.
- FINAL: higher beam, VAD filter, word timestamps (or segment timestamps) for alignment.
- Decoding runs in the default executor so the event loop (and capture) never blocks.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncIterator

import numpy as np

from scribe.asr.base import (
    BlockFinal,
    FinalPassRecognizer,
    RecognitionEvent,
    StreamingRecognizer,
    TokenUpdate,
    TranscriptChunk,
)
from scribe.config import Settings, get_settings
from scribe.errors import FinalPassError, ModelLoadError, RecognitionError
from scribe.lazy import LazyResource

logger = logging.getLogger(__name__)

# Type for shared WhisperModel
WhisperModelT = Any

_DONE = object()


def load_whisper_model(settings: Settings | None = None) -> WhisperModelT:
    """Blocking load of the faster-whisper model, plus optional warm-up decode."""
    settings = settings or get_settings()
    try:
        from faster_whisper import WhisperModel
    except ImportError as err:
        raise ModelLoadError(
            "faster-whisper is required for local ASR. Install with: pip install faster-whisper"
        ) from err
    model = WhisperModel(
        settings.LOCAL_WHISPER_MODEL,
        device=settings.LOCAL_WHISPER_DEVICE,
        compute_type=settings.LOCAL_WHISPER_COMPUTE_TYPE,
    )
    if settings.LOCAL_WHISPER_WARMUP:
        # First decode pays for kernel/graph setup; do it now rather than on the first live block.
        segments, _ = model.transcribe(
            np.zeros(settings.SAMPLE_RATE, dtype=np.float32),
            beam_size=1,
            without_timestamps=True,
            max_new_tokens=1,
        )
        for _ in segments:
            pass
        logger.info("Whisper model warmed up")
    return model


class LocalWhisperEngine(StreamingRecognizer, FinalPassRecognizer):
    def __init__(self, model: WhisperModelT | None = None, settings: Settings | None = None) -> None:
        """
        model: preloaded WhisperModel. If None, loaded on first recognize/transcribe.
        """
        self._settings = settings or get_settings()
        self._model = LazyResource(
            f"faster-whisper model '{self._settings.LOCAL_WHISPER_MODEL}'",
            lambda: load_whisper_model(self._settings),
        )
        if model is not None:
            self._model.set(model)

    @property
    def sample_rate(self) -> int:
        return self._settings.SAMPLE_RATE

    def _stream_sync(self, model: WhisperModelT, audio: np.ndarray, language: str | None, emit) -> None:
        settings = self._settings
        segments, _ = model.transcribe(
            audio,
            language=language,
            beam_size=settings.LOCAL_WHISPER_BEAM_SIZE_PARTIAL,
            condition_on_previous_text=False,
            without_timestamps=True,
            max_new_tokens=settings.STREAMING_MAX_NEW_TOKENS,
        )
        for seg in segments:
            emit(seg)

    async def recognize(self, audio: np.ndarray, language: str | None = None) -> AsyncIterator[RecognitionEvent]:
        model = await self._model.get()
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def emit(item: Any) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, item)

        def worker() -> None:
            try:
                self._stream_sync(model, audio, language, emit)
            except Exception as err:
                emit(err)
            finally:
                emit(_DONE)

        started = time.perf_counter()
        future = loop.run_in_executor(None, worker)
        parts: list[str] = []
        num_tokens = 0
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                if isinstance(item, Exception):
                    raise RecognitionError(f"Streaming decode failed: {item}") from item
                text = (item.text or "").strip()
                num_tokens += len(getattr(item, "tokens", None) or ())
                # Rate covers the whole decode so far, from submission of the block
                elapsed = time.perf_counter() - started
                tps = num_tokens / elapsed if elapsed > 0 else None
                if text:
                    parts.append(text)
                yield TokenUpdate(text=" ".join(parts), num_tokens=num_tokens, tokens_per_second=tps)
        finally:
            # Worker always posts _DONE; wait so no decode outlives this block.
            await future
        yield BlockFinal(text=" ".join(parts).strip())

    def _transcribe_sync(self, model: WhisperModelT, audio: np.ndarray, language: str | None) -> list[TranscriptChunk]:
        settings = self._settings
        word_timestamps = settings.LOCAL_WHISPER_WORD_TIMESTAMPS
        segments, _ = model.transcribe(
            audio,
            language=language,
            beam_size=settings.LOCAL_WHISPER_BEAM_SIZE_FINAL,
            vad_filter=True,
            vad_parameters=dict(min_silence_duration_ms=300, speech_pad_ms=100),
            condition_on_previous_text=True,
            word_timestamps=word_timestamps,
        )
        chunks: list[TranscriptChunk] = []
        for seg in segments:
            words = getattr(seg, "words", None) if word_timestamps else None
            if words:
                for w in words:
                    chunk = _make_chunk(w.word, w.start, w.end)
                    if chunk is not None:
                        chunks.append(chunk)
            else:
                chunk = _make_chunk(seg.text, seg.start, seg.end)
                if chunk is not None:
                    chunks.append(chunk)
        chunks.sort(key=lambda c: c.start)
        return chunks

    async def transcribe(self, audio: np.ndarray, language: str | None = None) -> list[TranscriptChunk]:
        """Run _transcribe_sync in executor so event loop is not blocked."""
        model = await self._model.get()
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._transcribe_sync, model, audio, language)
        except Exception as err:
            raise FinalPassError(f"Final transcription failed: {err}") from err


def _make_chunk(text: str | None, start: float | None, end: float | None) -> TranscriptChunk | None:
    text = (text or "").strip()
    if not text or start is None or end is None:
        return None
    start = max(0.0, float(start))
    return TranscriptChunk(text=text, start=start, end=max(start, float(end)))
