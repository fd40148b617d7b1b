"""Shared IRC data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from .codec import LineType


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    REGISTERING = auto()
    READY = auto()


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    """One channel-directed action as handed to the activity log sink."""

    type: LineType
    nickname: str
    ident: str
    channel: str
    message: str
    timestamp: int

    def as_tuple(self) -> tuple[str, str, str, str, str, int]:
        return (
            self.type.value,
            self.nickname,
            self.ident,
            self.channel,
            self.message,
            self.timestamp,
        )
