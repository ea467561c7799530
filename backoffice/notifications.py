"""Notification sinks: where success and failure outcomes are reported."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal, Protocol

from . import get_logger

logger = get_logger(__name__)

Level = Literal["success", "error", "info"]


@dataclass(frozen=True)
class Notification:
    level: Level
    title: str
    message: str

    def __str__(self) -> str:
        return f"{self.title}: {self.message}"


class NotificationSink(Protocol):
    def notify(self, notification: Notification) -> None: ...


def notify_success(sink: NotificationSink, title: str, message: str) -> None:
    sink.notify(Notification("success", title, message))


def notify_error(sink: NotificationSink, title: str, message: str) -> None:
    sink.notify(Notification("error", title, message))


class QueueSink:
    """Buffers notifications until a renderer drains them."""

    def __init__(self, maxlen: int = 20):
        self._pending: deque[Notification] = deque(maxlen=maxlen)

    def notify(self, notification: Notification) -> None:
        self._pending.append(notification)

    def drain(self) -> list[Notification]:
        drained = list(self._pending)
        self._pending.clear()
        return drained

    def __len__(self) -> int:
        return len(self._pending)


class LoggingSink:
    def notify(self, notification: Notification) -> None:
        if notification.level == "error":
            logger.error("%s", notification)
        else:
            logger.info("%s", notification)
