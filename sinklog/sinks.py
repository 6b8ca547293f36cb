"""sinks.py - Sink construction, transports and shutdown.

A *sink* is one configured destination. ``SinkFactory.build()`` turns the
enabled transports of a ``LoggerConfig`` into ``SinkDescriptor`` objects, in a
fixed order: console, file, network, error-tracking.

Every sink is driven by a ``logging.Handler``, so rendering and per-sink
failure isolation come from the standard logging machinery:

    console         logging.StreamHandler(sys.stdout)  + ConsoleFormatter
    file            logging.FileHandler(path, "a")     + FileFormatter
    network         NetworkHandler(Udp/TcpConnection)  + FileFormatter (or NetworkFormatter)
    error-tracking  ErrorTrackingHandler(bugsnag.Client) + EnvelopeFormatter

Handlers that own an OS resource (file, socket) are recorded as the
descriptor's ``resource`` and are released by ``close_sinks()``.
"""

import logging
import socket
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

import bugsnag

from .config import (
    ConsoleTransport,
    ErrorTrackingTransport,
    FileTransport,
    LoggerConfig,
    NetworkTransport,
)
from .errors import SinkWriteFailure
from .formatters import ConsoleFormatter, EnvelopeFormatter, FileFormatter, NetworkFormatter
from .normalizer import ReportedError, normalize
from .severity import MIN_SEVERITY, Severity

_log = logging.getLogger(__name__)


class SinkKind(Enum):
    CONSOLE = "console"
    FILE = "file"
    NETWORK = "network"
    ERROR_TRACKING = "error-tracking"


@dataclass(frozen=True)
class SinkDescriptor:
    """Runtime state of one active sink.

    Attributes:
        kind: Which destination this is.
        handler: Renders a record and writes it to the destination.
        levels: Severities the sink accepts (set membership, no threshold).
        stream: The handler's output stream, ``None`` for error-tracking.
        level: Minimum severity watermark. Always the lowest severity, so it
            never filters on its own.
        resource: Closable handle released on shutdown, or ``None``.
        needs_metadata: True when the sink needs the full event envelope
            (tag, data, serialized error) rather than a rendered line.
    """

    kind: SinkKind
    handler: logging.Handler
    levels: FrozenSet[Severity]
    stream: Any = None
    level: Severity = MIN_SEVERITY
    resource: Any = None
    needs_metadata: bool = False


# ---------------------------------------------------------------------------
# Network transports
# ---------------------------------------------------------------------------


class UdpConnection:
    """Write-only datagram stream: every ``write()`` sends one datagram."""

    def __init__(self, host: str, port: int, encoding: str = "utf-8") -> None:
        self.address = (host, port)
        self.encoding = encoding
        self._sock: Optional[socket.socket] = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def write(self, text: str) -> None:
        if self._sock is None:
            raise SinkWriteFailure(f"UDP connection to {self.address} is closed")
        try:
            self._sock.sendto(text.encode(self.encoding), self.address)
        except OSError as exc:
            raise SinkWriteFailure(f"UDP send to {self.address} failed: {exc}") from exc

    def open(self) -> None:
        """Datagram sockets need no connect; the socket already exists."""

    def flush(self) -> None:
        pass

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None


class TcpConnection:
    """Write-only stream over a TCP connection.

    ``open()`` is called when the sink is built. After a failed connect or
    send, no new connect is attempted for ``retry_interval`` seconds; lines
    written inside that window are dropped and counted in ``dropped``. A line
    whose send fails is never retried.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 0.5,
        retry_interval: float = 5.0,
        encoding: str = "utf-8",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.address = (host, port)
        self.timeout = timeout
        self.retry_interval = retry_interval
        self.encoding = encoding
        self.dropped = 0
        self._clock = clock
        self._sock: Optional[socket.socket] = None
        self._failed_at: Optional[float] = None
        self._closed = False

    def _backing_off(self) -> bool:
        return self._failed_at is not None and self._clock() - self._failed_at < self.retry_interval

    def open(self) -> None:
        """Connect unless already connected, closed, or inside the retry window.

        Raises:
            SinkWriteFailure: If the connect attempt fails. The retry window
                starts at that moment.
        """
        if self._closed or self._sock is not None or self._backing_off():
            return
        try:
            self._sock = socket.create_connection(self.address, timeout=self.timeout)
        except OSError as exc:
            self._failed_at = self._clock()
            raise SinkWriteFailure(f"TCP connect to {self.address} failed: {exc}") from exc
        self._failed_at = None

    def write(self, text: str) -> None:
        if self._closed:
            raise SinkWriteFailure(f"TCP connection to {self.address} is closed")
        self.open()
        if self._sock is None:
            self.dropped += 1
            return
        try:
            self._sock.sendall(text.encode(self.encoding))
        except OSError as exc:
            self._failed_at = self._clock()
            self._drop()
            raise SinkWriteFailure(f"TCP send to {self.address} failed: {exc}") from exc

    def flush(self) -> None:
        pass

    def _drop(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        self._closed = True
        self._drop()


class NetworkHandler(logging.StreamHandler):
    """A StreamHandler over a socket connection that closes it on ``close()``."""

    def __init__(self, connection) -> None:
        super().__init__(connection)
        self.connection = connection

    def close(self) -> None:
        self.acquire()
        try:
            self.connection.close()
        finally:
            self.release()
            super().close()


# ---------------------------------------------------------------------------
# Error tracking
# ---------------------------------------------------------------------------


class ErrorTrackingHandler(logging.Handler):
    """Reports records to an error-tracking client such as ``bugsnag.Client``.

    The record is serialised with ``EnvelopeFormatter`` and normalised back
    into an exception plus context, which is handed to ``client.notify()``.
    Plain-string errors are wrapped in ``ReportedError`` because the client
    reports exceptions only.
    """

    def __init__(self, client, metadata_tab: str = "custom") -> None:
        super().__init__()
        self.client = client
        self.metadata_tab = metadata_tab
        self.setFormatter(EnvelopeFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            error, context = normalize(self.format(record))
            self.notify(error, context)
        except Exception:
            self.handleError(record)

    def notify(self, error, context: Dict[str, Any]) -> None:
        if isinstance(error, str):
            error = ReportedError(error)
        self.client.notify(error, metadata={self.metadata_tab: context})


def bugsnag_client(api_key: str, app_version: str, release_stage: str):
    """Create a Bugsnag client that does not hook ``sys.excepthook``."""
    return bugsnag.Client(
        api_key=api_key,
        app_version=app_version,
        release_stage=release_stage,
        install_sys_hook=False,
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class SinkFactory:
    """Builds one ``SinkDescriptor`` per enabled transport.

    Attributes:
        _stdout: Stream for the console sink. ``None`` means ``sys.stdout`` at
            build time.
        _client_factory: ``(api_key, app_version, release_stage) -> client``
            for the error-tracking sink.
        _connections: ``"udp"``/``"tcp"`` -> ``(host, port) -> connection``;
            connections provide ``open``, ``write``, ``flush`` and ``close``.
        _use_color: Passed to ``ConsoleFormatter``.
        _theme: Console colour theme; ``None`` uses ``DEFAULT_THEME``.
    """

    def __init__(
        self,
        stdout=None,
        client_factory: Optional[Callable[[str, str, str], Any]] = None,
        connections: Optional[Dict[str, Callable[[str, int], Any]]] = None,
        use_color: bool = True,
        theme=None,
    ) -> None:
        self._stdout = stdout
        self._client_factory = client_factory or bugsnag_client
        self._connections = {"udp": UdpConnection, "tcp": TcpConnection}
        if connections:
            self._connections.update(connections)
        self._use_color = use_color
        self._theme = theme

    def build(self, config: LoggerConfig) -> List[SinkDescriptor]:
        """Return the descriptors for every enabled transport, in enable order."""
        transports = config.transports
        sinks: List[SinkDescriptor] = []
        try:
            if transports.console:
                sinks.append(self.create_console(transports.console, config))
            if transports.file:
                sinks.append(self.create_file(transports.file, config))
            if transports.network:
                sinks.append(self.create_network(transports.network, config))
            if transports.error_tracking:
                sinks.append(self.create_error_tracking(transports.error_tracking, config))
        except Exception:
            # Release what was already opened before the failing sink.
            close_sinks(sinks)
            raise
        for sink in sinks:
            _log.debug("enabled %s sink for %s", sink.kind.value, sorted(s.label for s in sink.levels))
        return sinks

    def create_console(self, transport: ConsoleTransport, config: LoggerConfig) -> SinkDescriptor:
        stream = self._stdout or sys.stdout
        handler = logging.StreamHandler(stream)
        handler.setFormatter(
            ConsoleFormatter(config.version, config.env, theme=self._theme, use_color=self._use_color)
        )
        return self._describe(SinkKind.CONSOLE, handler, transport, stream=stream)

    def create_file(self, transport: FileTransport, config: LoggerConfig) -> SinkDescriptor:
        handler = logging.FileHandler(transport.filepath, mode="a", encoding="utf-8")
        handler.setFormatter(FileFormatter(config.version, config.env))
        return self._describe(SinkKind.FILE, handler, transport, stream=handler.stream, resource=handler)

    def create_network(self, transport: NetworkTransport, config: LoggerConfig) -> SinkDescriptor:
        connection = self._connections[transport.type](transport.host, transport.port)
        try:
            connection.open()
        except SinkWriteFailure as exc:
            # The sink stays usable; the connection retries after its backoff.
            _log.warning("network sink not connected yet: %s", exc)
        handler = NetworkHandler(connection)
        if transport.format == "structured":
            handler.setFormatter(NetworkFormatter(config.version, config.env))
        else:
            handler.setFormatter(FileFormatter(config.version, config.env))
        return self._describe(SinkKind.NETWORK, handler, transport, stream=connection, resource=handler)

    def create_error_tracking(
        self, transport: ErrorTrackingTransport, config: LoggerConfig
    ) -> SinkDescriptor:
        client = self._client_factory(transport.api_key, config.version, config.env)
        handler = ErrorTrackingHandler(client)
        return self._describe(SinkKind.ERROR_TRACKING, handler, transport, needs_metadata=True)

    @staticmethod
    def _describe(kind: SinkKind, handler: logging.Handler, transport, **kwargs) -> SinkDescriptor:
        handler.setLevel(MIN_SEVERITY.levelno)
        return SinkDescriptor(kind=kind, handler=handler, levels=transport.level, **kwargs)


def build_sinks(config: LoggerConfig, factory: Optional[SinkFactory] = None) -> List[SinkDescriptor]:
    """Build the descriptors for ``config`` with ``factory`` (default: a plain ``SinkFactory``)."""
    return (factory or SinkFactory()).build(config)


def close_sinks(sinks: Iterable[SinkDescriptor]) -> None:
    """Release every sink resource once.

    Sinks without a resource are skipped. A failure closing one sink is logged
    and does not stop the others from being closed.
    """
    for sink in sinks:
        if sink.resource is None:
            continue
        try:
            sink.resource.close()
        except Exception:
            _log.exception("failed to close %s sink", sink.kind.value)
        else:
            _log.debug("closed %s sink", sink.kind.value)
