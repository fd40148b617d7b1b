"""Centralized internal error hierarchy.

These exceptions provide semantic categories for the run loop and the
reconnect policy. Only raise these inside session/config/dispatch boundaries;
raw ``OSError`` / pydantic errors are wrapped before they reach callers.

Classes:
  InternalError            – Base for all internal errors.
  LineEncodingError        – An outbound line would break wire framing.
  ConnectionFailure        – The transport could not be opened.
  ServerUnreachableError   – Host/port did not yield a usable handle.
  SessionError             – Base for steady-state session failures.
  SessionDisconnectedError – Operation attempted on a closed stream.
  SessionIOError           – Read/write failure on an otherwise live handle.
  ConfigMissingError       – A required configuration value is absent.
  ConfigInvalidError       – A configuration value fails validation.
  HandlerFailureError      – A dispatched handler raised or overran.

Each class sets the ``fatal`` flag telling the run loop whether the error
ends the current run or can be recovered from (e.g. by reconnecting).
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.
        fatal: Whether the error terminates the current run.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    fatal: bool = False
    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class LineEncodingError(InternalError, ValueError):
    """Raised when an argument would inject terminator bytes or break params."""


class ConnectionFailure(InternalError):
    """Base for failures to open the transport. Unrecoverable for the run."""

    fatal = True


class ServerUnreachableError(ConnectionFailure):
    """The underlying open call did not yield a usable handle.

    Args:
        address: Remote host.
        port: Remote port.
        reason: Optional short description of the underlying failure.
    """

    def __init__(self, address: str, port: int, reason: str | None = None) -> None:
        message = f"Server {address}:{port} is unreachable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, data={"address": address, "port": port})
        self.address = address
        self.port = port


class SessionError(InternalError):
    """Base for steady-state session failures (recoverable)."""


class SessionDisconnectedError(SessionError):
    """Operation attempted while the stream is closed or at end-of-stream."""

    def __init__(self, message: str = "Not connected to server") -> None:
        super().__init__(message)


class SessionIOError(SessionError):
    """Write or read failure on an otherwise live handle."""


class ConfigMissingError(InternalError, KeyError):
    """A required configuration value is absent."""

    fatal = True

    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Required configuration value '{key}' is missing",
            data={"key": key},
        )
        self.key = key

    def __str__(self) -> str:  # KeyError would otherwise repr() the message
        return str(self.args[0])


class ConfigInvalidError(ConfigMissingError):
    """A required configuration value is present but fails validation."""


class HandlerFailureError(InternalError):
    """A dispatched handler raised an exception or exceeded its time budget.

    Recorded on the log channel only; never affects the session.
    """

    def __init__(self, pattern: str, sender: str | None, reason: str) -> None:
        super().__init__(
            f"Handler for '{pattern}' failed: {reason}",
            data={"pattern": pattern, "sender": sender},
        )
        self.pattern = pattern


__all__ = [
    "InternalError",
    "LineEncodingError",
    "ConnectionFailure",
    "ServerUnreachableError",
    "SessionError",
    "SessionDisconnectedError",
    "SessionIOError",
    "ConfigMissingError",
    "ConfigInvalidError",
    "HandlerFailureError",
]
