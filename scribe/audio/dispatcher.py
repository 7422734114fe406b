"""
ChunkDispatcher: drains the rolling buffer on a fixed cadence and submits one
contiguous block to the streaming recognizer.

State machine: IDLE -> DISPATCHING -> IDLE. While DISPATCHING no new block is
issued; frames keep accumulating in the rolling buffer and go out with the next
dispatch. At most one streaming recognition call is outstanding per session.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Awaitable, Callable

import numpy as np

from scribe.alerts import AlertSink, LoggingAlertSink
from scribe.audio.session_buffer import SessionBuffer

logger = logging.getLogger(__name__)

SubmitFn = Callable[[np.ndarray], Awaitable[None]]


class DispatchState(str, enum.Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"


class ChunkDispatcher:
    def __init__(
        self,
        buffer: SessionBuffer,
        submit: SubmitFn,
        interval_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        alerts: AlertSink | None = None,
    ) -> None:
        """
        submit: coroutine fed one float32 block per dispatch.
        clock: seconds, monotonic; injected so tests control time.
        """
        self._buffer = buffer
        self._submit = submit
        self._interval = interval_ms / 1000.0
        self._clock = clock
        self._alerts = alerts or LoggingAlertSink()

        self._state = DispatchState.IDLE
        self._last_dispatch = clock()
        self._task: asyncio.Task | None = None
        self._closed = False

        self.dispatched_blocks = 0
        self.failed_blocks = 0
        self.skipped_ticks = 0  # ticks that were due but found a dispatch in flight

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def in_flight(self) -> asyncio.Task | None:
        return self._task

    def tick(self, now: float | None = None) -> asyncio.Task | None:
        """
        Dispatch if due: IDLE, interval elapsed, rolling buffer non-empty.
        Returns the submission task, or None when nothing was dispatched.
        """
        if self._closed:
            return None
        now = self._clock() if now is None else now
        if now - self._last_dispatch < self._interval:
            return None
        if self._state is DispatchState.DISPATCHING:
            self.skipped_ticks += 1
            return None
        block = self._buffer.drain()
        if block is None:
            return None

        self._state = DispatchState.DISPATCHING
        self._last_dispatch = now
        self.dispatched_blocks += 1
        logger.debug(
            "Dispatching block #%d: %.2fs of audio",
            self.dispatched_blocks,
            len(block) / float(self._buffer.sample_rate),
        )
        self._task = asyncio.create_task(self._run(block))
        return self._task

    async def _run(self, block: np.ndarray) -> None:
        try:
            await self._submit(block)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Block is lost; capture keeps going and the next block is dispatched normally.
            self.failed_blocks += 1
            logger.warning("Streaming recognition failed for block #%d: %s", self.dispatched_blocks, e)
            self._alerts.warning("Recognition error", f"Live transcription skipped a moment of audio: {e}")
        finally:
            self._state = DispatchState.IDLE
            self._task = None

    async def wait_idle(self) -> None:
        """Wait for the in-flight dispatch, if any, to finish."""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def close(self) -> None:
        """Stop issuing dispatches. An in-flight block is left to complete."""
        self._closed = True
