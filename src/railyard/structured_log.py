"""Structured logging sinks.

A sink receives an event name and a flat mapping of context fields. The
library only ever talks to the ``StructuredLogger`` protocol; the concrete
sink is injected by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Final, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

# Context keys emitted by DeadEnd
STATUS: Final[str] = "status"
DURATION_MS: Final[str] = "duration_ms"
INPUT: Final[str] = "input"
OUTPUT: Final[str] = "output"
ERROR: Final[str] = "error"

STATUS_SUCCESS: Final[str] = "success"
STATUS_FAILURE: Final[str] = "failure"

DEFAULT_EVENT_LOGGER: Final[str] = "railyard.events"


@runtime_checkable
class StructuredLogger(Protocol):
    """Duck-typed protocol for structured logging sinks."""

    def log(self, event_name: str, context: Mapping[str, Any]) -> None: ...  # noqa: D102


def format_context(context: Mapping[str, Any]) -> str:
    """Render a context mapping as ``key=value`` pairs in insertion order."""
    return " ".join(f"{key}={value!r}" for key, value in context.items())


@dataclass(frozen=True, slots=True)
class LoggingStructuredLogger:
    """Sink that forwards events to a stdlib ``logging`` logger.

    The message reads ``event=<name> key=value ...``; the raw mapping is also
    attached as ``record.event`` and ``record.context`` for handlers that
    render JSON.
    """

    name: str = DEFAULT_EVENT_LOGGER
    level: int = logging.INFO
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_logger", logging.getLogger(self.name))

    def log(self, event_name: str, context: Mapping[str, Any]) -> None:
        if not self._logger.isEnabledFor(self.level):
            return
        self._logger.log(
            self.level,
            "event=%s %s",
            event_name,
            format_context(context),
            extra={"event": event_name, "context": dict(context)},
        )


@dataclass(frozen=True, slots=True)
class NullStructuredLogger:
    """Sink that discards every event."""

    def log(self, event_name: str, context: Mapping[str, Any]) -> None:  # noqa: ARG002
        return None


NULL_LOGGER: Final = NullStructuredLogger()

__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "NULL_LOGGER",
    "LoggingStructuredLogger",
    "NullStructuredLogger",
    "StructuredLogger",
    "format_context",
]
