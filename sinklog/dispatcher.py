"""dispatcher.py - Fan-out of one event to every eligible sink.

``Dispatcher.dispatch()`` is the centre of sinklog: it converts an
``EventRecord`` into a ``logging.LogRecord`` once, then offers that record to
each sink in the order the sinks were enabled. A sink receives the record only
if the event's severity is in its allow-set; the sink's handler then renders
and writes it.

Failure isolation:
    A sink that fails (closed file, unreachable collector, malformed error
    payload) has the failure routed to its own ``Handler.handleError()``. The
    remaining sinks are still offered the record and nothing propagates back
    to the code that logged.

Thread-safety:
    The dispatcher holds no mutable state of its own. ``Handler.handle()``
    takes the handler's lock around each write, which keeps every sink's
    stream in call order.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from .severity import Severity, is_allowed
from .sinks import SinkDescriptor, close_sinks


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class EventRecord:
    """One log call, as handed to the dispatcher.

    Attributes:
        severity: The severity method that was called.
        tag: Caller identifier from the facade's ``CallerIdentity``.
        label: Service name from the configuration, or ``""``.
        message: Primary human-readable text; may be empty.
        data: Structured payload; an empty mapping when none was given.
        timestamp: Capture time, timezone-aware UTC.
        error: JSON text of the value passed to ``error()``; ``None`` for
            the other severities.
    """

    severity: Severity
    tag: str = ""
    label: str = ""
    message: str = ""
    data: Any = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    error: Optional[str] = None

    def to_log_record(self, name: str = "sinklog") -> logging.LogRecord:
        """Build the ``LogRecord`` the sink handlers format."""
        record = logging.LogRecord(
            name=name,
            level=self.severity.levelno,
            pathname="",
            lineno=0,
            msg=self.message,
            args=(),
            exc_info=None,
        )
        record.levelname = self.severity.label.upper()
        record.created = self.timestamp.timestamp()
        record.msecs = (record.created - int(record.created)) * 1000
        record.severity = self.severity
        record.tag = self.tag
        record.label = self.label
        record.data = self.data
        if self.error is not None:
            record.err = self.error
        return record


class Dispatcher:
    """Routes events to the sinks whose allow-set contains their severity."""

    def __init__(self, sinks: Sequence[SinkDescriptor]) -> None:
        self._sinks: List[SinkDescriptor] = list(sinks)

    @property
    def sinks(self) -> List[SinkDescriptor]:
        return list(self._sinks)

    def __len__(self) -> int:
        return len(self._sinks)

    def eligible(self, severity: Severity) -> List[SinkDescriptor]:
        """Return the sinks that would receive an event of ``severity``, in order."""
        return [
            sink
            for sink in self._sinks
            if severity.levelno >= sink.level.levelno and is_allowed(severity, sink.levels)
        ]

    def dispatch(self, event: EventRecord) -> None:
        """Offer ``event`` to every eligible sink.

        A no-op when no sink accepts the event's severity.
        """
        sinks = self.eligible(event.severity)
        if not sinks:
            return
        record = event.to_log_record()
        for sink in sinks:
            try:
                sink.handler.handle(record)
            except Exception:
                sink.handler.handleError(record)

    def close(self) -> None:
        """Release every sink resource."""
        close_sinks(self._sinks)
