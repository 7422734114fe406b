"""
RecordingSession: one recording, from first captured frame to final transcript.

Live path (repeats while recording):
    capture -> SessionBuffer -> ChunkDispatcher -> StreamingRecognizer -> PartialResultAccumulator
Stop path (once):
    SessionBuffer -> FinalPassProcessor (final ASR || diarization) -> align -> assemble

Capture only ever appends to buffers; recognition runs as background tasks, so a slow
recognizer never stalls capture. Engines are injected per session; nothing is global.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
import uuid
from typing import Callable

import numpy as np

from scribe.alerts import AlertSink, LoggingAlertSink
from scribe.asr.base import BlockFinal, FinalPassRecognizer, StreamingRecognizer, TokenUpdate
from scribe.audio.capture import AudioFrameSource
from scribe.audio.dispatcher import ChunkDispatcher
from scribe.audio.frames import AudioFrame
from scribe.audio.session_buffer import SessionBuffer
from scribe.config import Settings, get_settings
from scribe.diarization.aligner import DiarizationAligner
from scribe.diarization.provider import DiarizationProvider
from scribe.errors import CaptureError, SessionStateError
from scribe.schemas import TranscriptResult
from scribe.transcript.accumulator import PartialResultAccumulator, ThrottledChannel
from scribe.transcript.assembler import TranscriptAssembler
from scribe.transcript.final_pass import FinalPassProcessor

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"  # capture stopped, final pass running
    STOPPED = "stopped"


class RecordingSession:
    def __init__(
        self,
        streaming: StreamingRecognizer,
        final: FinalPassRecognizer,
        diarizer: DiarizationProvider,
        on_partial: Callable[[str], None] | None = None,
        alerts: AlertSink | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        session_id: str | None = None,
    ) -> None:
        """
        on_partial: receives the live transcript (accumulated + partial), throttled.
        clock: monotonic seconds; shared by dispatch cadence and partial throttling.
        """
        settings = settings or get_settings()
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._settings = settings
        self._streaming = streaming
        self._alerts = alerts or LoggingAlertSink()
        self._on_partial = on_partial
        self._language = settings.LANGUAGE_HINT or None
        self._status = SessionStatus.IDLE
        self._source: AudioFrameSource | None = None
        self._tick_task: asyncio.Task | None = None
        self.result: TranscriptResult | None = None

        self._buffer = SessionBuffer(settings.SAMPLE_RATE)
        self._channel: ThrottledChannel[str] = ThrottledChannel(
            self._emit_partial, settings.PARTIAL_THROTTLE_MS, clock
        )
        self.accumulator = PartialResultAccumulator(self._channel)
        self.dispatcher = ChunkDispatcher(
            self._buffer,
            self._recognize_block,
            interval_ms=settings.DISPATCH_INTERVAL_MS,
            clock=clock,
            alerts=self._alerts,
        )
        self._final_pass = FinalPassProcessor(
            final,
            diarizer,
            aligner=DiarizationAligner.from_settings(settings),
            assembler=TranscriptAssembler(settings.MERGE_MAX_GAP_SEC),
            alerts=self._alerts,
            language=self._language,
        )

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def live_text(self) -> str:
        return self.accumulator.live_text

    @property
    def duration(self) -> float:
        return self._buffer.duration

    @property
    def buffer(self) -> SessionBuffer:
        return self._buffer

    def _emit_partial(self, text: str) -> None:
        if self._on_partial is None:
            return
        try:
            self._on_partial(text)
        except Exception:
            logger.exception("Partial transcript callback failed")

    async def start(self, source: AudioFrameSource) -> None:
        """Open capture and begin live recognition. CaptureError is alerted and re-raised."""
        if self._status is not SessionStatus.IDLE:
            raise SessionStateError(f"Cannot start session in status {self._status.value}")
        if source.sample_rate != self._settings.SAMPLE_RATE:
            raise CaptureError(
                f"Source delivers {source.sample_rate}Hz, session expects {self._settings.SAMPLE_RATE}Hz"
            )
        try:
            source.start(self.on_frame)
        except CaptureError as err:
            self._status = SessionStatus.STOPPED
            self._buffer.release()
            self._alerts.error("Microphone error", str(err))
            raise
        self._source = source
        self._status = SessionStatus.RECORDING
        self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info("Session %s recording", self.session_id)

    def on_frame(self, frame: AudioFrame) -> None:
        if self._status is not SessionStatus.RECORDING:
            return
        self._buffer.on_frame(frame)

    def tick(self) -> asyncio.Task | None:
        """One scheduling step: maybe dispatch a block, maybe flush a throttled partial."""
        task = self.dispatcher.tick()
        self._channel.poll()
        return task

    async def _tick_loop(self) -> None:
        interval = self._settings.TICK_INTERVAL_MS / 1000.0
        while self._status is SessionStatus.RECORDING:
            self.tick()
            await asyncio.sleep(interval)

    async def _recognize_block(self, block: np.ndarray) -> None:
        try:
            async for event in self._streaming.recognize(block, self._language):
                if self._status is not SessionStatus.RECORDING:
                    # Stopped mid-decode: let the call finish, drop what it says.
                    continue
                if isinstance(event, TokenUpdate):
                    self.accumulator.on_update(event)
                elif isinstance(event, BlockFinal):
                    self.accumulator.on_block_complete(event.text)
        except Exception as err:
            self.accumulator.discard_partial()
            if self._status is not SessionStatus.RECORDING:
                # Block was already abandoned by stop(); nothing to report.
                logger.debug("In-flight block failed after stop: %s", err)
                return
            raise

    async def stop(self) -> TranscriptResult:
        """Stop capture, run the final pass, return the session's TranscriptResult."""
        if self._status is not SessionStatus.RECORDING:
            raise SessionStateError(f"Cannot stop session in status {self._status.value}")
        self._status = SessionStatus.PROCESSING
        if self._source is not None:
            self._source.stop()
        if self._tick_task is not None:
            self._tick_task.cancel()
            await asyncio.gather(self._tick_task, return_exceptions=True)
            self._tick_task = None
        self.dispatcher.close()
        self._buffer.discard_pending()
        self.accumulator.discard_partial()
        await self.dispatcher.wait_idle()

        live_text = self.accumulator.accumulated_text
        audio = self._buffer.session_audio()
        logger.info("Session %s stopped after %.1fs; running final pass", self.session_id, self._buffer.duration)
        try:
            self.result = await self._final_pass.process(audio, self._settings.SAMPLE_RATE, live_text)
        finally:
            self._buffer.release()
            self._status = SessionStatus.STOPPED
        return self.result
