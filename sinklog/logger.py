"""logger.py - The SinkLogger facade.

SinkLogger validates its configuration, builds every configured sink up front
and exposes one method per severity. Each call is stamped with a caller tag
and the service label, packed into an ``EventRecord`` and handed to the
``Dispatcher``.

Typical usage::

    from sinklog import SinkLogger

    logger = SinkLogger({
        "transports": {
            "console": {"level": ["info", "warn", "error"]},
            "file": {"level": "error", "filepath": "./logs/app.log"},
        },
        "version": "1.4.0",
        "app_name": "billing",
        "env": "production",
    })

    logger.info("invoice created", {"invoice_id": 42})
    try:
        charge()
    except PaymentError as exc:
        logger.error(exc, {"invoice_id": 42})
    logger.close()
"""

from typing import Any, Optional

from .config import LoggerConfig, load_config
from .dispatcher import Dispatcher, EventRecord
from .normalizer import error_message, serialize_error
from .severity import Severity
from .sinks import SinkFactory, build_sinks
from .tagging import CallerIdentity, StackTagDeriver, StaticIdentity


class SinkLogger:
    """Structured logger that fans each event out to its configured sinks.

    Attributes:
        config (LoggerConfig): The validated configuration.
        _identity (CallerIdentity): Supplies the tag for each call.
        _dispatcher (Dispatcher): Owns the sinks built at construction time.

    Example:
        >>> logger = SinkLogger(config, tag="billing.invoices")
        >>> logger.warn("slow response", {"ms": 1200})
    """

    def __init__(
        self,
        config: Any,
        *,
        tag: Optional[str] = None,
        identity: Optional[CallerIdentity] = None,
        factory: Optional[SinkFactory] = None,
    ) -> None:
        """Validate ``config`` and build every enabled sink.

        Args:
            config: Configuration mapping (see ``sinklog.config``) or a
                ``LoggerConfig``.
            tag: Fixed tag for every event. When neither ``tag`` nor
                ``identity`` is given, the tag is derived from the call stack.
            identity: Custom ``CallerIdentity``; takes precedence over ``tag``.
            factory: ``SinkFactory`` used to build the sinks.

        Raises:
            ConfigurationInvalid: If the configuration fails validation. No
                sink is created in that case.
        """
        self.config: LoggerConfig = load_config(config)
        if identity is None:
            identity = StaticIdentity(tag) if tag is not None else StackTagDeriver()
        self._identity = identity
        self._dispatcher = Dispatcher(build_sinks(self.config, factory))

    @property
    def label(self) -> str:
        """The service label stamped on every event: the app name, or ``""``."""
        return self.config.app_name or ""

    @property
    def sinks(self):
        return self._dispatcher.sinks

    # ---------------------------------------------------------------------- #
    # Severity methods
    #
    # Each one calls _log() directly. StackTagDeriver reads fixed frame
    # offsets, so no extra layer may be added between these methods and the
    # identity lookup in _log().
    # ---------------------------------------------------------------------- #

    def error(self, err: Any = "", data: Any = None) -> None:
        """Log an error.

        Args:
            err: An exception, a message string, or a mapping with a
                ``message`` key. It is serialized so the error-tracking sink
                can rebuild it.
            data: Structured context for the event.
        """
        self._log(Severity.ERROR, error_message(err), data, serialize_error(err))

    def warn(self, message: str = "", data: Any = None) -> None:
        self._log(Severity.WARN, message, data)

    warning = warn

    def info(self, message: str = "", data: Any = None) -> None:
        self._log(Severity.INFO, message, data)

    def debug(self, message: str = "", data: Any = None) -> None:
        self._log(Severity.DEBUG, message, data)

    def trace(self, message: str = "", data: Any = None) -> None:
        self._log(Severity.TRACE, message, data)

    def close(self) -> None:
        """Release every sink resource (files, sockets). The console has none."""
        self._dispatcher.close()

    def __enter__(self) -> "SinkLogger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------------------------------------------------------------------- #
    # Private helpers
    # ---------------------------------------------------------------------- #

    def _log(self, severity: Severity, message: Any, data: Any, error: Optional[str] = None) -> None:
        # Skip stack inspection entirely when no sink wants this severity.
        if not self._dispatcher.eligible(severity):
            return
        event = EventRecord(
            severity=severity,
            tag=self._identity.tag(),
            label=self.label,
            message="" if message is None else str(message),
            data={} if data is None else data,
            error=error,
        )
        self._dispatcher.dispatch(event)
