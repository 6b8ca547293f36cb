"""errors.py - Exception taxonomy for sinklog.

Only configuration errors ever reach the code that calls the logger. Every
per-event failure (a malformed error payload, a dropped socket) is raised
inside a sink's handler and routed to ``logging.Handler.handleError`` so that
logging never destabilises the host application.
"""


class SinkLogError(Exception):
    """Base class for all sinklog errors."""


class ConfigurationInvalid(SinkLogError, ValueError):
    """The logger configuration failed validation.

    Raised from ``SinkLogger.__init__`` before any sink is created. The
    message is the first validation error reported.
    """


class MalformedPayload(SinkLogError, ValueError):
    """The serialized envelope handed to the error-tracking sink is not a JSON object."""


class SinkWriteFailure(SinkLogError, OSError):
    """A sink's underlying transport could not deliver a rendered line."""
