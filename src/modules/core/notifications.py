"""Notification sink.

The engine reports user-facing outcomes (checkout succeeded, stock ran
out, ...) through ``INotifier.report``.  The default sink writes them to
the structured log; the HTTP layer additionally echoes the message in its
response.
"""

from __future__ import annotations

import enum
from typing import List, Protocol, Tuple

import structlog

logger = structlog.get_logger(__name__)


class NotificationKind(str, enum.Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class INotifier(Protocol):
    def report(self, message: str, kind: NotificationKind) -> None: ...


class LogNotifier:
    """Sends notifications to structlog at a level matching their kind."""

    _LEVELS = {
        NotificationKind.SUCCESS: "info",
        NotificationKind.INFO: "info",
        NotificationKind.WARNING: "warning",
        NotificationKind.ERROR: "error",
    }

    def report(self, message: str, kind: NotificationKind) -> None:
        level = self._LEVELS.get(kind, "info")
        getattr(logger, level)("notification.reported", kind=kind.value, message=message)


class CollectingNotifier:
    """Keeps notifications in memory, e.g. to echo them in an API response."""

    def __init__(self) -> None:
        self.messages: List[Tuple[NotificationKind, str]] = []

    def report(self, message: str, kind: NotificationKind) -> None:
        self.messages.append((kind, message))

    @property
    def last(self) -> Tuple[NotificationKind, str] | None:
        return self.messages[-1] if self.messages else None
