"""Error hierarchy and error logging helpers."""

from .handling import classify_error, log_error  # noqa: F401
from .internal import (  # noqa: F401
    ConfigInvalidError,
    ConfigMissingError,
    ConnectionFailure,
    HandlerFailureError,
    InternalError,
    LineEncodingError,
    ServerUnreachableError,
    SessionDisconnectedError,
    SessionError,
    SessionIOError,
)

__all__ = [
    "classify_error",
    "log_error",
    "ConfigInvalidError",
    "ConfigMissingError",
    "ConnectionFailure",
    "HandlerFailureError",
    "InternalError",
    "LineEncodingError",
    "ServerUnreachableError",
    "SessionDisconnectedError",
    "SessionError",
    "SessionIOError",
]
