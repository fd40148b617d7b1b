from __future__ import annotations

import logging

from ..logging_config import log_structured_error
from .internal import (
    ConfigMissingError,
    ConnectionFailure,
    HandlerFailureError,
    InternalError,
    SessionError,
)


def classify_error(error: BaseException) -> str:
    """Map an exception onto the error category used for aggregation."""
    if isinstance(error, ConnectionFailure | OSError | ConnectionError):
        return "network"
    if isinstance(error, SessionError):
        return "session"
    if isinstance(error, ConfigMissingError):
        return "config"
    if isinstance(error, HandlerFailureError):
        return "handler"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(
    message: str,
    error: BaseException,
    context: dict | None = None,
    level: int = logging.ERROR,
) -> None:
    """Logs an error message with the associated exception details.

    The exception is categorized (network, session, config, handler,
    internal) and forwarded to structured logging so repeated failures are
    aggregated for the shutdown summary.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
        level: Logging level, ERROR unless the caller downgrades it.
    """
    merged: dict = {}
    if isinstance(error, InternalError) and error.data:
        merged.update(error.data)
    if context:
        merged.update(context)
    log_structured_error(
        error_type=classify_error(error),
        message=f"{message}: {error}",
        exception=error,
        context=merged or None,
        level=level,
    )
