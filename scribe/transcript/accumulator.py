"""
PartialResultAccumulator: live transcript from streaming recognition.

- PARTIAL: in-progress decode of the current block; republished as
  accumulated + partial, at most once per throttle interval.
- FINAL (per block): appended to the accumulated transcript, which is the
  canonical live transcript until the final pass replaces it.

Only one block is ever in flight (single-flight dispatch), so there is exactly
one partial state.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, Generic, TypeVar

from scribe.asr.base import TokenUpdate

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Whisper-family non-speech annotations: [BLANK_AUDIO], [ Silence ], (music), [NOISE], ...
_MARKER_RE = re.compile(
    r"[\[\(]\s*(?:blank[_ ]audio|silence|music|noise|inaudible|no speech|sound|static|applause|laughter)\s*[\]\)]",
    re.IGNORECASE,
)


def strip_markers(text: str) -> str:
    """Remove recognizer non-speech markers and collapse whitespace."""
    if not text:
        return ""
    text = _MARKER_RE.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


class ThrottledChannel(Generic[T]):
    """
    Rate-limited delivery to a sink: at most one item per min_interval.

    offer() delivers at once when the gate is open, otherwise holds the item as
    pending (newer offers replace it). poll() delivers a pending item once the
    gate reopens. publish_now() bypasses the gate and clears anything pending.
    """

    def __init__(
        self,
        sink: Callable[[T], None],
        min_interval_ms: int = 200,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._interval = min_interval_ms / 1000.0
        self._clock = clock
        self._last_sent: float | None = None
        self._pending: T | None = None
        self._has_pending = False
        self.delivered = 0

    def _due(self, now: float) -> bool:
        return self._last_sent is None or now - self._last_sent >= self._interval

    def _deliver(self, item: T, now: float) -> None:
        self._last_sent = now
        self._pending = None
        self._has_pending = False
        self.delivered += 1
        self._sink(item)

    def offer(self, item: T) -> bool:
        now = self._clock()
        if self._due(now):
            self._deliver(item, now)
            return True
        self._pending = item
        self._has_pending = True
        return False

    def poll(self) -> bool:
        if not self._has_pending:
            return False
        now = self._clock()
        if not self._due(now):
            return False
        self._deliver(self._pending, now)  # type: ignore[arg-type]
        return True

    def publish_now(self, item: T) -> None:
        self._deliver(item, self._clock())

    def discard_pending(self) -> None:
        self._pending = None
        self._has_pending = False

    @property
    def has_pending(self) -> bool:
        return self._has_pending


class PartialResultAccumulator:
    def __init__(self, channel: ThrottledChannel[str]) -> None:
        self._channel = channel
        self._accumulated = ""
        self._partial = ""
        self.last_num_tokens = 0
        self.last_tokens_per_second: float | None = None
        self.blocks_completed = 0

    @property
    def accumulated_text(self) -> str:
        return self._accumulated

    @property
    def partial_text(self) -> str:
        return self._partial

    @property
    def live_text(self) -> str:
        """What the UI should currently show."""
        return self._accumulated + self._partial

    def on_update(self, update: TokenUpdate) -> None:
        self.last_num_tokens = update.num_tokens
        if update.tokens_per_second is not None:
            self.last_tokens_per_second = update.tokens_per_second
        text = strip_markers(update.text)
        if not text:
            return
        self._partial = text
        self._channel.offer(self.live_text)

    def on_block_complete(self, text: str) -> None:
        text = strip_markers(text)
        if text:
            self._accumulated += text + " "
        self._partial = ""
        self.blocks_completed += 1
        if self.last_tokens_per_second is not None:
            logger.debug(
                "Block %d done: %d tokens, %.1f tok/s",
                self.blocks_completed,
                self.last_num_tokens,
                self.last_tokens_per_second,
            )
        self._channel.publish_now(self._accumulated)

    def discard_partial(self) -> None:
        """Forget the in-flight partial (block failed or session stopped)."""
        self._partial = ""
        self._channel.discard_pending()
