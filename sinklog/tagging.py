"""tagging.py - Caller identity for log events.

Every event carries a *tag*: a short, dotted identifier for where in the
caller's code the log call came from. The facade obtains it through the
``CallerIdentity`` interface, which has two implementations:

    StaticIdentity   - an explicit tag chosen when the logger is constructed.
    StackTagDeriver  - infers the tag from the textual call stack.

Stack inference compares the file path of the facade's public method with the
file path of the code that called it, and keeps the part of the caller's path
that differs, with slashes turned into dots::

    facade  /srv/app/sinklog/logger.py
    caller  /srv/app/billing/invoices.py      ->  tag "billing.invoices"

It is a heuristic, not a module resolver. The frame offsets it reads are tied
to the facade's call depth; if ``SinkLogger`` gains or loses a layer of
indirection, the defaults below have to move with it.
"""

import re
import sys
import traceback
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

# A path is taken from just after a "/" or "(" (or the character before it),
# or from after the last space on the line, up to the final extension.
PATH_PATTERN = re.compile(r"(.([/|(])|([ ](?!.*[ ])))(.*)\..*")

STACK_HEADER = "Traceback (most recent call first):"

# Line offsets in the captured stack text (line 0 is STACK_HEADER):
#   1 StackTagDeriver.extract_paths
#   2 StackTagDeriver.tag
#   3 SinkLogger._log
#   4 SinkLogger.<severity method>   <- facade frame
#   5 the caller of the facade        <- caller frame
FACADE_FRAME = 4
CALLER_FRAME = 5


class CallerIdentity(ABC):
    """Supplies the tag stamped on every event the facade emits."""

    @abstractmethod
    def tag(self) -> str:
        """Return the tag for the log call currently in progress."""


class StaticIdentity(CallerIdentity):
    """A fixed, explicitly chosen tag.

    Example:
        >>> StaticIdentity("billing.invoices").tag()
        'billing.invoices'
    """

    def __init__(self, tag: str = "") -> None:
        self._tag = tag

    def tag(self) -> str:
        return self._tag


def capture_stack() -> str:
    """Return the current call stack as text, newest frame first.

    The frame of ``capture_stack`` itself is left out, so the first frame
    after the header line is the function that called it. Each frame is a
    single ``File "<path>", line N, in <name>`` line. Source lines are not
    looked up, so no file is read.
    """
    lines = [STACK_HEADER]
    for frame, lineno in traceback.walk_stack(sys._getframe(1)):
        code = frame.f_code
        lines.append(f'  File "{code.co_filename}", line {lineno}, in {code.co_name}')
    return "\n".join(lines)


def extract_path(line: str) -> str:
    """Return the path-like part of one stack line, or ``""`` when there is none.

    Example:
        >>> extract_path(" at startup (/home/bootstrap_node.js:188:16)")
        '/home/bootstrap_node'
    """
    match = PATH_PATTERN.search(line)
    return match.group(4) if match else ""


def common_prefix_length(first: str, second: str) -> int:
    """Return the length of the longest common character prefix."""
    i = 0
    while i < len(first) and i < len(second) and first[i] == second[i]:
        i += 1
    return i


def derive_tag(facade_path: str, caller_path: str) -> str:
    """Strip the prefix shared with ``facade_path`` from ``caller_path``.

    Example:
        >>> derive_tag("/node_modules/mocha/lib/runnable",
        ...            "/node_modules/mocha/lib/bootstrap_node/other")
        'bootstrap_node.other'
    """
    i = common_prefix_length(facade_path, caller_path)
    return caller_path[i:].replace("/", ".")


class StackTagDeriver(CallerIdentity):
    """Derives the tag from the textual call stack at the time of the log call.

    Attributes:
        _capture: Zero-argument callable returning the stack text. Defaults to
            ``capture_stack``; tests replace it with a canned stack.
        _facade_frame: Line index of the facade's public method frame.
        _caller_frame: Line index of the frame that called the facade.
    """

    def __init__(
        self,
        capture: Optional[Callable[[], str]] = None,
        facade_frame: int = FACADE_FRAME,
        caller_frame: int = CALLER_FRAME,
    ) -> None:
        self._capture = capture or capture_stack
        self._facade_frame = facade_frame
        self._caller_frame = caller_frame

    def extract_paths(self) -> Dict[str, str]:
        """Return the facade and caller paths found in the captured stack.

        Returns:
            ``{"logger": <facade path>, "script": <caller path>}``; either is
            ``""`` when its line is missing or holds no path.
        """
        lines = self._capture().split("\n")
        return {
            "logger": self._path_at(lines, self._facade_frame),
            "script": self._path_at(lines, self._caller_frame),
        }

    def tag(self) -> str:
        paths = self.extract_paths()
        return derive_tag(paths["logger"], paths["script"])

    @staticmethod
    def _path_at(lines, index: int) -> str:
        if index >= len(lines):
            return ""
        return extract_path(lines[index])
