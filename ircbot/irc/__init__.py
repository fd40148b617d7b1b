"""IRC subsystem package.

Contains the line codec, session, command facade, handler registry and
trigger dispatcher.
"""

from .codec import LineType, OutboundLine, ReceivedLine, build_line, decode_line  # noqa: F401
from .commands import CommandFacade  # noqa: F401
from .dispatcher import DispatchOutcome, Trigger, TriggerDispatcher  # noqa: F401
from .models import ActivityEntry, ConnectionState  # noqa: F401
from .registry import HandlerRegistry, MatchStatus  # noqa: F401
from .session import Session  # noqa: F401

__all__ = [
    "ActivityEntry",
    "CommandFacade",
    "ConnectionState",
    "DispatchOutcome",
    "HandlerRegistry",
    "LineType",
    "MatchStatus",
    "OutboundLine",
    "ReceivedLine",
    "Session",
    "Trigger",
    "TriggerDispatcher",
    "build_line",
    "decode_line",
]
