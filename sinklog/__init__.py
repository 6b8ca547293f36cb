"""sinklog/__init__.py - Public API for the sinklog package.

sinklog is a structured logging facade that fans each event out to several
independently configured sinks (console, file, network socket, Bugsnag),
each filtered by its own set of allowed severities. Every event is stamped
with a caller-derived tag and the service label.

Quick start:
    from sinklog import SinkLogger

    logger = SinkLogger({
        "transports": {
            "console": {"level": ["debug", "info", "warn", "error"]},
            "file": {"level": ["warn", "error"], "filepath": "./logs/app.log"},
            "logstash": {"level": "info", "host": "127.0.0.1", "port": 28888, "type": "udp"},
            "bugsnag": {"level": "error", "api_key": "<key>"},
        },
        "version": "5",
        "app_name": "app-logger",
        "env": "test",
    })

    logger.info("some message", {"key": "value"})
    logger.error(ValueError("User is undefined"), {"user_id": 7})
    logger.close()

Exported names:
    SinkLogger:        The facade: error/warn/info/debug/trace and close.
    Severity:          Recognised severities (trace, debug, info, warn, error).
    is_allowed:        Per-sink allow-set predicate.
    load_config:       Validate a configuration mapping into a LoggerConfig.
    StaticIdentity:    Explicit caller tag.
    StackTagDeriver:   Caller tag inferred from the call stack.
    normalize:         Error-payload normalisation used by the Bugsnag sink.
    ConfigurationInvalid, MalformedPayload, SinkWriteFailure: error types.
"""

from .config import LoggerConfig, load_config
from .dispatcher import Dispatcher, EventRecord
from .errors import ConfigurationInvalid, MalformedPayload, SinkLogError, SinkWriteFailure
from .logger import SinkLogger
from .normalizer import ReportedError, normalize
from .severity import Severity, is_allowed
from .sinks import SinkDescriptor, SinkFactory, SinkKind
from .tagging import CallerIdentity, StackTagDeriver, StaticIdentity

__all__ = [
    "SinkLogger",
    "LoggerConfig",
    "load_config",
    "Dispatcher",
    "EventRecord",
    "Severity",
    "is_allowed",
    "SinkDescriptor",
    "SinkFactory",
    "SinkKind",
    "CallerIdentity",
    "StackTagDeriver",
    "StaticIdentity",
    "ReportedError",
    "normalize",
    "SinkLogError",
    "ConfigurationInvalid",
    "MalformedPayload",
    "SinkWriteFailure",
]
__version__ = "0.1.0"
