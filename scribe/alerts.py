"""
Alerts: human-readable notices for the surrounding application.

Capture and final-pass failures are reported here; the UI decides how to show them.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

AlertLevel = Literal["info", "warning", "error"]


@dataclass(frozen=True)
class Alert:
    level: AlertLevel
    title: str
    message: str


class AlertSink(ABC):
    """Receives alerts from the pipeline. Must not raise."""

    @abstractmethod
    def alert(self, alert: Alert) -> None:
        ...

    def error(self, title: str, message: str) -> None:
        self.alert(Alert(level="error", title=title, message=message))

    def warning(self, title: str, message: str) -> None:
        self.alert(Alert(level="warning", title=title, message=message))


class LoggingAlertSink(AlertSink):
    """Default sink: alerts go to the log only."""

    def alert(self, alert: Alert) -> None:
        level = {"info": logging.INFO, "warning": logging.WARNING}.get(alert.level, logging.ERROR)
        logger.log(level, "%s: %s", alert.title, alert.message)


class CollectingAlertSink(LoggingAlertSink):
    """Logs and keeps alerts in memory so the host can forward them."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def alert(self, alert: Alert) -> None:
        super().alert(alert)
        self.alerts.append(alert)

    def drain(self) -> list[Alert]:
        out, self.alerts = self.alerts, []
        return out
