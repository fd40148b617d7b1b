"""
Configuration constants for the IRC bot core

Tunables used by the session, dispatcher and run loop. Each constant can be
overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Wire framing
MAX_LINE_BYTES = _get_env_int(
    "MAX_LINE_BYTES", 1024
)  # Upper bound for one inbound chunk
NUL_LF_TERMINATOR = b"\0\n"
CRLF_TERMINATOR = b"\r\n"
LINE_TERMINATORS = {"nul": NUL_LF_TERMINATOR, "crlf": CRLF_TERMINATOR}
LINE_ENCODING = "utf-8"

# Connection
CONNECT_TIMEOUT_SECONDS = _get_env_float(
    "CONNECT_TIMEOUT_SECONDS", 15.0
)  # Upper bound for opening the transport
QUIT_MESSAGE = "Bye Bye!"
DEFAULT_KICK_REASON = "Bye!"

# Dispatch
HANDLER_TIMEOUT_SECONDS = _get_env_float(
    "HANDLER_TIMEOUT_SECONDS", 30.0
)  # Handler overrun counts as a handler failure

# Reconnect policy
RECONNECT_MAX_ATTEMPTS = _get_env_int(
    "RECONNECT_MAX_ATTEMPTS", 10
)  # Maximum reconnection attempts
INITIAL_BACKOFF_SECONDS = _get_env_int(
    "INITIAL_BACKOFF_SECONDS", 1
)  # Initial backoff time in seconds
MAX_BACKOFF_SECONDS = _get_env_int(
    "MAX_BACKOFF_SECONDS", 60
)  # Maximum backoff time in seconds

# Config
DEFAULT_CONFIG_FILE = "ircbot.conf"

# Activity log
ACTIVITY_MEMORY_LIMIT = _get_env_int(
    "ACTIVITY_MEMORY_LIMIT", 1000
)  # Entries kept by the in-memory activity sink

# Well-known service accounts
NICKSERV = "NickServ"
CHANSERV = "ChanServ"
