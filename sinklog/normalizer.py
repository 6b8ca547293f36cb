"""normalizer.py - Error payload normalisation for the error-tracking sink.

The facade serialises whatever was passed to ``SinkLogger.error()`` into the
``err`` field of the event envelope. The error-tracking sink receives that
envelope as JSON text and has to turn it back into something a remote error
tracker can report: an exception object (or a plain message) plus a flat
context mapping.

Envelope shape (as produced by ``EnvelopeFormatter``)::

    {"msg": "...", "err": "<json>", "data": {...} | "...", "tag": "...", ...}
"""

import json
import traceback
from collections.abc import Mapping
from typing import Any, Dict, Tuple, Union

from .errors import MalformedPayload


class ReportedError(Exception):
    """An error rebuilt from its serialized form.

    Every field of the serialized value is copied onto the instance as an
    attribute; ``message`` also becomes the exception's text.
    """

    def __init__(self, message: str = "", **fields: Any) -> None:
        super().__init__(message)
        self.message = message
        for key, value in fields.items():
            setattr(self, key, value)

    @classmethod
    def from_value(cls, value: Any) -> "ReportedError":
        if not isinstance(value, Mapping):
            return cls()
        fields = dict(value)
        message = fields.pop("message", "")
        error = cls("" if message is None else str(message))
        for key, val in fields.items():
            try:
                setattr(error, key, val)
            except (AttributeError, TypeError):
                # Read-only exception attributes keep their own value.
                continue
        return error


ErrorValue = Union[str, ReportedError]


def json_or_string(text: Any) -> Any:
    """Parse ``text`` as JSON, returning it unchanged if it is not valid JSON."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return text


def context_data(data: Any, tag: Any) -> Dict[str, Any]:
    """Build the context mapping sent along with a reported error.

    ``tag`` is always present, even when it is ``None``. A non-empty string
    ``data`` is stored under ``message``; a mapping is merged on top, so its
    keys win over ``tag`` on collision.
    """
    output: Dict[str, Any] = {"tag": tag}
    if isinstance(data, str) and data:
        output["message"] = data
    elif isinstance(data, Mapping):
        output.update(data)
    return output


def normalize(payload: Union[str, bytes]) -> Tuple[ErrorValue, Dict[str, Any]]:
    """Turn a serialized event envelope into ``(error_value, context_data)``.

    Args:
        payload: JSON text of the envelope.

    Returns:
        ``error_value`` is the parsed ``err`` field when present (falling back
        to its raw text when it is not JSON), otherwise ``msg``. Anything that
        is not a string is materialised as a ``ReportedError``.

    Raises:
        MalformedPayload: If ``payload`` is not a JSON object. A malformed
            ``err`` field is not an error; it is used as plain text.

    Example:
        >>> normalize('{"msg": "test", "data": {}, "tag": "tag"}')
        ('test', {'tag': 'tag'})
    """
    try:
        envelope = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(f"error payload is not valid JSON: {exc}") from exc
    if not isinstance(envelope, dict):
        raise MalformedPayload(f"error payload must be a JSON object, got {type(envelope).__name__}")

    err = envelope.get("err")
    error = json_or_string(err) if err else envelope.get("msg")
    if not isinstance(error, str):
        error = ReportedError.from_value(error)
    return error, context_data(envelope.get("data"), envelope.get("tag"))


# ---------------------------------------------------------------------------
# Facade side: what goes into the envelope's "err" field
# ---------------------------------------------------------------------------


def _exception_fields(exc: BaseException) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "name": type(exc).__name__,
        "message": str(exc),
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    for key, value in vars(exc).items():
        if not key.startswith("_"):
            fields.setdefault(key, value)
    return fields


def serialize_error(err: Any) -> str:
    """Serialise the argument of ``SinkLogger.error()`` to JSON text.

    Exceptions keep their class name, message, formatted stack and public
    attributes. Strings and mappings are encoded as they are; anything that
    JSON cannot represent falls back to ``str()``.
    """
    if err is None:
        err = ""
    if isinstance(err, BaseException):
        err = _exception_fields(err)
    elif isinstance(err, Mapping):
        err = dict(err)
    return json.dumps(err, default=str)


def error_message(err: Any) -> str:
    """Return the human-readable message for the argument of ``error()``."""
    if err is None:
        return ""
    if isinstance(err, BaseException):
        return str(err)
    if isinstance(err, Mapping):
        message = err.get("message")
        return str(message) if message else json.dumps(dict(err), default=str)
    return str(err)
