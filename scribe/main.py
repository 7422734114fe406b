"""
FastAPI host: WebSocket endpoint that runs one RecordingSession per connection.

Client sends binary PCM 16-bit mono 16kHz. Server responds with JSON:
{ "type": "session", "session_id": "..." }                      once, on connect
{ "type": "partial", "text": "..." }                            live transcript, throttled
{ "type": "alert", "level": "...", "title": "...", "message": "..." }
{ "type": "result", "result": TranscriptResult }                once, after stop
Client ends the recording with a text message { "type": "stop" } (or by disconnecting).
"""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from scribe.alerts import Alert, LoggingAlertSink
from scribe.asr.base import FinalPassRecognizer, StreamingRecognizer
from scribe.asr.local_whisper import LocalWhisperEngine
from scribe.audio.receiver import PushFrameSource
from scribe.config import Settings, get_settings
from scribe.diarization.provider import DiarizationProvider, create_diarization_provider
from scribe.errors import CaptureError
from scribe.logging_setup import configure_logging
from scribe.session import RecordingSession

logger = logging.getLogger(__name__)

_STOP = object()


class _QueueAlertSink(LoggingAlertSink):
    """Logs alerts and forwards them to the connected client."""

    def __init__(self, outbox: asyncio.Queue) -> None:
        self._outbox = outbox

    def alert(self, alert: Alert) -> None:
        super().alert(alert)
        self._outbox.put_nowait(
            {"type": "alert", "level": alert.level, "title": alert.title, "message": alert.message}
        )


async def _sender(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Drain outbox to the socket until _STOP. A dead socket just ends sending."""
    while True:
        item = await outbox.get()
        if item is _STOP:
            return
        try:
            await websocket.send_text(json.dumps(item))
        except Exception:
            logger.debug("Client gone; dropping outgoing messages")
            return


def create_app(
    streaming: StreamingRecognizer | None = None,
    final: FinalPassRecognizer | None = None,
    diarizer: DiarizationProvider | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the app. Engines default to local Whisper + pyannote, loaded lazily on first use."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        s = settings or get_settings()
        configure_logging(s)
        engine = None
        if streaming is None or final is None:
            engine = LocalWhisperEngine(settings=s)
        app.state.settings = s
        app.state.streaming = streaming or engine
        app.state.final = final or engine
        app.state.diarizer = diarizer or create_diarization_provider(s)
        yield
        app.state.streaming = None
        app.state.final = None
        app.state.diarizer = None

    app = FastAPI(
        title="Speaker-attributed live transcription",
        description="Streaming ASR with a final speaker-labelled pass",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.websocket("/ws/transcribe")
    async def websocket_transcribe(websocket: WebSocket) -> None:
        await websocket.accept()
        state = websocket.app.state
        outbox: asyncio.Queue[Any] = asyncio.Queue()
        sender = asyncio.create_task(_sender(websocket, outbox))
        session = RecordingSession(
            state.streaming,
            state.final,
            state.diarizer,
            on_partial=lambda text: outbox.put_nowait({"type": "partial", "text": text}),
            alerts=_QueueAlertSink(outbox),
            settings=state.settings,
        )
        source = PushFrameSource(sample_rate=state.settings.SAMPLE_RATE, frame_ms=state.settings.FRAME_MS)
        outbox.put_nowait({"type": "session", "session_id": session.session_id})
        try:
            await session.start(source)
        except CaptureError:
            outbox.put_nowait(_STOP)
            await sender
            await websocket.close()
            return

        connected = True
        try:
            while True:
                msg = await websocket.receive()
                if msg.get("type") == "websocket.disconnect":
                    connected = False
                    break
                data = msg.get("bytes")
                if data is not None:
                    source.feed(data)
                    continue
                text = msg.get("text")
                if text:
                    try:
                        payload = json.loads(text)
                    except json.JSONDecodeError:
                        continue
                    if isinstance(payload, dict) and payload.get("type") == "stop":
                        break
        except WebSocketDisconnect:
            connected = False
        finally:
            result = await session.stop()
            if connected:
                outbox.put_nowait({"type": "result", "result": result.model_dump()})
            outbox.put_nowait(_STOP)
            await sender
        if connected:
            try:
                await websocket.close()
            except RuntimeError:
                pass

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
