"""severity.py - Recognised severities and the per-sink allow-set predicate.

Severities are ordered by declaration only. Whether a sink receives an event is
decided purely by set membership: a sink configured for ``["error"]`` never
sees ``info`` events, and there is no "warn and above" threshold.

Each member carries the stdlib ``logging`` level number it maps to, so events
can travel through ``logging.Handler`` machinery unchanged.
"""

import logging
from enum import Enum
from typing import FrozenSet, Iterable, Union

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")


class Severity(Enum):
    """A log severity. The value is the stdlib ``logging`` level number."""

    TRACE = TRACE_LEVEL
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR

    @property
    def label(self) -> str:
        """Lowercase name used in configuration and rendered output."""
        return self.name.lower()

    @property
    def levelno(self) -> int:
        return self.value

    @classmethod
    def parse(cls, name: Union[str, "Severity"]) -> "Severity":
        """Return the severity for ``name``.

        Args:
            name: A severity label such as ``"warn"`` (case-insensitive), or a
                ``Severity`` which is returned unchanged. ``"warning"`` is
                accepted as an alias of ``"warn"``.

        Raises:
            ValueError: If ``name`` is not a recognised severity.
        """
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            raise ValueError(f"severity must be a string, got {name!r}")
        key = name.strip().upper()
        if key == "WARNING":
            key = "WARN"
        try:
            return cls[key]
        except KeyError:
            allowed = ", ".join(s.label for s in cls)
            raise ValueError(f"unknown severity {name!r} (expected one of: {allowed})") from None


LevelSpec = Union[str, Severity, Iterable[Union[str, Severity]]]

# Every sink is created with this watermark; it admits every recognised
# severity, so filtering is left entirely to the allow-set.
MIN_SEVERITY = Severity.TRACE


def normalize_levels(levels: LevelSpec) -> FrozenSet[Severity]:
    """Normalise a single severity or a collection of them into a frozenset.

    Example:
        >>> normalize_levels("error") == normalize_levels(["error"])
        True
    """
    if isinstance(levels, (str, Severity)):
        levels = [levels]
    return frozenset(Severity.parse(level) for level in levels)


def is_allowed(level: Union[str, Severity], allowed_levels: LevelSpec) -> bool:
    """Return True if ``level`` is a member of ``allowed_levels``.

    This predicate is the sole gate deciding whether a sink receives an event.

    Args:
        level: The event's severity.
        allowed_levels: A single severity or a collection of severities. A
            scalar is treated as a one-element set. Unknown names in the
            collection simply never match.
    """
    level = Severity.parse(level)
    if isinstance(allowed_levels, (frozenset, set)) and all(
        isinstance(item, Severity) for item in allowed_levels
    ):
        return level in allowed_levels
    if isinstance(allowed_levels, (str, Severity)):
        allowed_levels = [allowed_levels]
    for candidate in allowed_levels:
        try:
            if Severity.parse(candidate) is level:
                return True
        except ValueError:
            continue
    return False
