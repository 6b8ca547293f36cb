"""Configuration models and validation.

This module is responsible for:

- Describing the logger configuration as strongly-typed, frozen Pydantic models.
- Normalising every transport's ``level`` (a single severity or a list) into a
  ``frozenset[Severity]`` once, at validation time.
- Turning validation failures into ``ConfigurationInvalid`` carrying the first
  error message.

Example configuration::

    {
        "transports": {
            "console": {"level": ["info", "warn", "error"]},
            "file": {"level": "error", "filepath": "./logs/app.log"},
            "logstash": {"level": "info", "host": "logs.local", "port": 28888, "type": "udp"},
            "bugsnag": {"level": ["error"], "api_key": "..."},
        },
        "version": "5",
        "app_name": "billing",
        "env": "production",
    }
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, FrozenSet, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationInvalid
from .severity import Severity, normalize_levels


class TransportConfig(BaseModel):
    """Fields shared by every transport."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    level: FrozenSet[Severity] = Field(..., description="Severities this sink accepts")

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: Any) -> FrozenSet[Severity]:
        """Accept a single severity name or a list of them."""
        if isinstance(v, (str, Severity)):
            return normalize_levels(v)
        if isinstance(v, (list, tuple, set, frozenset)):
            return normalize_levels(v)
        raise ValueError("level must be a severity name or a list of severity names")


class ConsoleTransport(TransportConfig):
    """Colourised lines on standard output."""


class FileTransport(TransportConfig):
    """Plain-text lines appended to a file."""

    filepath: str = Field(..., min_length=1, description="Path of the log file")


class NetworkTransport(TransportConfig):
    """Lines sent to a log collector (Logstash-style) over UDP or TCP."""

    host: str = Field(..., description="Collector host name or address")
    port: int = Field(..., ge=1, le=65535, description="Collector port")
    type: Literal["udp", "tcp"] = Field(..., description="Socket transport")
    format: Literal["pretty", "structured"] = Field(
        default="pretty",
        description="'pretty' sends the file-style line, 'structured' sends JSON",
    )

    @field_validator("port", mode="before")
    @classmethod
    def validate_port(cls, v: Any) -> Any:
        """Reject booleans and floats that pydantic would otherwise coerce."""
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("port must be an integer")
        return v


class ErrorTrackingTransport(TransportConfig):
    """Errors reported to a remote error-tracking service (Bugsnag)."""

    api_key: str = Field(..., description="Error-tracking project API key")


class Transports(BaseModel):
    """The set of enabled transports. A missing or falsy entry is disabled."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    console: Optional[ConsoleTransport] = None
    file: Optional[FileTransport] = None
    network: Optional[NetworkTransport] = Field(default=None, alias="logstash")
    error_tracking: Optional[ErrorTrackingTransport] = Field(default=None, alias="bugsnag")

    @field_validator("console", "file", "network", "error_tracking", mode="before")
    @classmethod
    def disable_falsy(cls, v: Any) -> Any:
        """Treat ``None``, ``False``, ``0`` and ``""`` as a disabled transport."""
        if v is None or v is False or v == 0 or v == "":
            return None
        return v


class LoggerConfig(BaseModel):
    """Top-level logger configuration."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    transports: Transports
    version: str
    app_name: str
    env: str


def _first_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid configuration")
    return f"{location}: {message}" if location else message


def load_config(config: Any) -> LoggerConfig:
    """Validate ``config`` and return it as a ``LoggerConfig``.

    Args:
        config: A mapping in the shape shown in the module docstring, or an
            already validated ``LoggerConfig`` (returned unchanged).

    Raises:
        ConfigurationInvalid: If ``config`` is not a mapping or fails
            validation; the message is the first validation error.
    """
    if isinstance(config, LoggerConfig):
        return config
    if not isinstance(config, Mapping):
        raise ConfigurationInvalid(
            f"configuration must be a mapping, got {type(config).__name__}"
        )
    try:
        return LoggerConfig.model_validate(dict(config))
    except ValidationError as exc:
        raise ConfigurationInvalid(_first_message(exc)) from exc
