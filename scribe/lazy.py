"""
LazyResource: load a heavy model once, on first use, off the event loop.

Concurrent callers await the same load instead of triggering another one.
A failed load is not cached; the next caller tries again.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

from scribe.errors import ModelLoadError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyResource(Generic[T]):
    def __init__(self, name: str, factory: Callable[[], T]) -> None:
        """factory: blocking loader, run in the default executor."""
        self._name = name
        self._factory = factory
        self._value: T | None = None
        self._loaded = False
        self._lock: asyncio.Lock | None = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    def set(self, value: T) -> None:
        """Inject an already-loaded instance (startup preload, tests)."""
        self._value = value
        self._loaded = True

    async def get(self) -> T:
        if self._loaded:
            return self._value  # type: ignore[return-value]
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._loaded:
                return self._value  # type: ignore[return-value]
            logger.info("Loading %s", self._name)
            loop = asyncio.get_running_loop()
            try:
                value = await loop.run_in_executor(None, self._factory)
            except ModelLoadError:
                raise
            except Exception as err:
                raise ModelLoadError(f"Failed to load {self._name}: {err}") from err
            self._value = value
            self._loaded = True
            logger.info("%s loaded", self._name)
            return value
