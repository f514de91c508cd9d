"""
Error taxonomy for remotecmd.

Every error carries an ErrorKind so callers can tell "fix your input" from
"resource unavailable" from "gave up waiting" without matching on messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Category of a remotecmd failure."""

    VALIDATION = "validation"
    RESOURCE = "resource"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    CONFIGURATION = "configuration"


class RemoteCommandError(Exception):
    """
    Base class for all remotecmd errors.

    Attributes:
        message: Human-readable description.
        kind: The error category.
    """

    kind: ErrorKind = ErrorKind.RESOURCE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ValidationError(RemoteCommandError):
    """A required argument is missing or malformed."""

    kind = ErrorKind.VALIDATION


class ResourceError(RemoteCommandError):
    """
    A file or resource is missing, or an external process exited nonzero.

    Attributes:
        output: Captured diagnostic output (stderr followed by stdout), if any.
    """

    kind = ErrorKind.RESOURCE

    def __init__(self, message: str, output: str | None = None) -> None:
        super().__init__(message)
        self.output = output


class LockTimeoutError(RemoteCommandError, TimeoutError):
    """Lock acquisition exceeded its maximum wait."""

    kind = ErrorKind.TIMEOUT


class ProtocolError(RemoteCommandError):
    """Malformed wire text, an unregistered result subtype, or a transport failure."""

    kind = ErrorKind.PROTOCOL


class ConfigurationError(RemoteCommandError):
    """A setting required by a command is not configured."""

    kind = ErrorKind.CONFIGURATION
