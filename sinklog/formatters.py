"""formatters.py - Per-sink rendering of log records.

Each sink kind renders the same event differently:

    ConsoleFormatter   ``warn: billing / api.orders "retrying", {"attempt":2}``
                       with the severity label coloured for terminals.
    FileFormatter      ``2018-11-26 10:57:19 WARN billing / api.orders "retrying", {...}``
    NetworkFormatter   a JSON document with the raw fields plus ``timeString``.
    EnvelopeFormatter  the JSON envelope the error-tracking sink normalises.

All of them are ``logging.Formatter`` subclasses and read the extra attributes
``Dispatcher`` puts on every ``LogRecord``: ``severity``, ``tag``, ``label``,
``data`` and, for ``error()`` calls, ``err``. None of them raise on a missing
attribute: missing ``data`` renders as ``{}``, a missing message as ``""``.
"""

import json
import logging
import os
import socket
from datetime import datetime, timezone
from collections.abc import Mapping
from typing import Any, Dict, Optional

from .severity import Severity

RESET = "\x1b[0m"

# Severity label -> ANSI colour used by ConsoleFormatter.
DEFAULT_THEME: Mapping[str, str] = {
    "trace": "\x1b[90m",
    "debug": "\x1b[34m",
    "info": "\x1b[32m",
    "warn": "\x1b[33m",
    "error": "\x1b[31m",
}


def dumps(value: Any) -> str:
    """Compact JSON, matching what log consumers of these sinks expect."""
    return json.dumps(value, separators=(",", ":"), default=str)


def format_date(date: datetime) -> str:
    """Render ``date`` as ``YYYY-MM-DD HH:MM:SS`` in UTC.

    Naive datetimes are taken to be UTC already.

    Example:
        >>> format_date(datetime(2018, 11, 26, 10, 57, 19, 277000, tzinfo=timezone.utc))
        '2018-11-26 10:57:19'
    """
    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc)
    return date.isoformat()[:19].replace("T", " ")


def record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def record_severity(record: logging.LogRecord) -> Severity:
    severity = getattr(record, "severity", None)
    if isinstance(severity, Severity):
        return severity
    for candidate in Severity:
        if candidate.levelno == record.levelno:
            return candidate
    return Severity.INFO


def project_fields(
    record: logging.LogRecord,
    version: Optional[str] = None,
    env: Optional[str] = None,
) -> Dict[str, Any]:
    """Project a record onto the ``{msg, tag, label, data}`` fields every sink shares.

    ``data`` is the record's data with ``version`` and ``env`` merged in (only
    the ones that are set). An empty mapping still gets the stamp; missing
    ``data`` (or an empty string) renders as an empty mapping.

    Example:
        >>> # data={"key": "value"}, version="5", env="test"
        >>> # -> {"key": "value", "version": "5", "env": "test"}
    """
    data = getattr(record, "data", None)
    if isinstance(data, Mapping) or data:
        # A bare string is kept under "message", as the error tracker does.
        data = dict(data) if isinstance(data, Mapping) else {"message": str(data)}
        data.update({k: v for k, v in (("version", version), ("env", env)) if v is not None})
    else:
        data = {}
    msg = record.getMessage() if record.msg is not None else ""
    return {
        "msg": msg,
        "tag": getattr(record, "tag", ""),
        "label": getattr(record, "label", ""),
        "data": data,
    }


class SinkFormatter(logging.Formatter):
    """Base class for sink formatters; carries the service version and environment."""

    def __init__(self, version: Optional[str] = None, env: Optional[str] = None) -> None:
        super().__init__()
        self.version = version
        self.env = env

    def fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        return project_fields(record, self.version, self.env)


class ConsoleFormatter(SinkFormatter):
    """Human-readable line with a coloured severity label.

    Attributes:
        theme: Severity label -> ANSI colour sequence. Labels missing from the
            theme are rendered uncoloured.
        use_color: Set False for streams that do not understand ANSI codes.
    """

    def __init__(
        self,
        version: Optional[str] = None,
        env: Optional[str] = None,
        theme: Optional[Mapping[str, str]] = None,
        use_color: bool = True,
    ) -> None:
        super().__init__(version, env)
        self.theme = dict(DEFAULT_THEME if theme is None else theme)
        self.use_color = use_color

    def colored_level(self, label: str) -> str:
        color = self.theme.get(label)
        if not self.use_color or not color:
            return label
        return f"{color}{label}{RESET}"

    def format(self, record: logging.LogRecord) -> str:
        data = self.fields(record)
        level = self.colored_level(record_severity(record).label)
        return f'{level}: {data["label"]} / {data["tag"]} "{data["msg"]}", {dumps(data["data"])}'


class FileFormatter(SinkFormatter):
    """Timestamped plain-text line, one per event."""

    def format(self, record: logging.LogRecord) -> str:
        data = self.fields(record)
        return (
            f"{format_date(record_time(record))} {record_severity(record).label.upper()} "
            f'{data["label"]} / {data["tag"]} "{data["msg"]}", {dumps(data["data"])}'
        )


class NetworkFormatter(SinkFormatter):
    """Structured JSON document for log collectors such as Logstash.

    The raw record fields are merged with the projected fields, a
    human-readable ``timeString`` and the severity label as ``level``.
    """

    def raw_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        raw: Dict[str, Any] = {
            "level": record.levelno,
            "time": int(record.created * 1000),
            "pid": record.process if record.process is not None else os.getpid(),
            "hostname": socket.gethostname(),
        }
        err = getattr(record, "err", None)
        if err is not None:
            raw["err"] = err
        return raw

    def format(self, record: logging.LogRecord) -> str:
        output = self.raw_fields(record)
        output.update(self.fields(record))
        output.update(
            {
                "timeString": record_time(record).astimezone().strftime("%a %b %d %Y %H:%M:%S GMT%z (%Z)"),
                "level": record_severity(record).label,
            }
        )
        return dumps(output)


class EnvelopeFormatter(logging.Formatter):
    """Serialises a record into the envelope ``normalizer.normalize`` reads.

    ``data`` is passed through untouched: the error tracker receives exactly
    what the caller logged, without version or environment.
    """

    def format(self, record: logging.LogRecord) -> str:
        envelope: Dict[str, Any] = {
            "level": record.levelno,
            "time": int(record.created * 1000),
            "msg": record.getMessage() if record.msg is not None else "",
            "data": getattr(record, "data", None) or {},
            "tag": getattr(record, "tag", ""),
            "label": getattr(record, "label", ""),
        }
        err = getattr(record, "err", None)
        if err is not None:
            envelope["err"] = err
        return json.dumps(envelope, default=str)
