"""Logging setup driven by LOG_LEVEL / LOG_FILE settings.

Modules only ever call logging.getLogger(__name__); the host application calls
configure_logging() once at startup.
"""
from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from scribe.config import Settings, get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Marker attribute so repeated calls replace our handlers instead of stacking them
_HANDLER_TAG = "_scribe_handler"


def _resolve_level(name: str) -> int:
    level = logging.getLevelName((name or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    """Install console (and optional rotating file) handlers on the 'scribe' logger."""
    settings = settings or get_settings()
    level = _resolve_level(settings.LOG_LEVEL)
    root = logging.getLogger("scribe")
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    log_file = (settings.LOG_FILE or "").strip()
    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            handlers.append(RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5))
        except OSError as e:
            root.warning("Log file %s not usable, console only: %s", log_file, e)

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_TAG, True)
        root.addHandler(handler)

    return root
