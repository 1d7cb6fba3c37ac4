"""structlog setup and the diagnostic event bus the dashboard subscribes to."""

import sys
from collections import deque
from collections.abc import Callable
from typing import TextIO

import structlog
from pydantic import BaseModel

_NAME_TO_LEVEL = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "warn": 30,
    "error": 40,
    "critical": 50,
}

BACKLOG_SIZE = 200


class DiagnosticEvent(BaseModel):
    timestamp: str = ""
    severity: str = "info"
    event: str
    context: dict = {}

    @property
    def message(self) -> str:
        parts = [self.event]
        parts.extend(f"{key}={value}" for key, value in self.context.items())
        return " ".join(parts)

    @classmethod
    def from_event_dict(cls, event_dict: dict) -> "DiagnosticEvent":
        data = dict(event_dict)
        exc_info = data.pop("exc_info", None)
        if exc_info:
            if isinstance(exc_info, BaseException):
                exc = exc_info
            elif isinstance(exc_info, tuple):
                exc = exc_info[1]
            else:
                exc = sys.exc_info()[1]
            if exc is not None:
                data["error"] = f"{type(exc).__name__}: {exc}"
        return cls(
            timestamp=str(data.pop("timestamp", "")),
            severity=str(data.pop("level", "info")),
            event=str(data.pop("event", "")),
            context=data,
        )


class DiagnosticBus:
    """structlog processor that fans events out to subscribers instead of stdout.

    Used as the last processor in the chain while the full-screen dashboard
    owns the terminal; every event is published and then dropped.
    """

    def __init__(self, backlog: int = BACKLOG_SIZE):
        self._subscribers: list[Callable[[DiagnosticEvent], None]] = []
        self._backlog: deque[DiagnosticEvent] = deque(maxlen=backlog)

    def subscribe(self, callback: Callable[[DiagnosticEvent], None]) -> None:
        self._subscribers.append(callback)
        for event in self._backlog:
            callback(event)

    def unsubscribe(self, callback: Callable[[DiagnosticEvent], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, event: DiagnosticEvent) -> None:
        self._backlog.append(event)
        for callback in list(self._subscribers):
            callback(event)

    def __call__(self, logger, method_name: str, event_dict: dict):
        self.publish(DiagnosticEvent.from_event_dict(event_dict))
        raise structlog.DropEvent


def configure_logging(
    level: str = "info",
    sink: DiagnosticBus | None = None,
    file: TextIO | None = None,
) -> None:
    """Configure structlog: JSON lines to ``file`` (stdout by default), or route into ``sink``."""
    processors = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if sink is not None:
        processors.append(sink)
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _NAME_TO_LEVEL.get(level.lower(), 20)
        ),
        logger_factory=structlog.PrintLoggerFactory(file),
    )
