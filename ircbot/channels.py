"""Channel and membership bookkeeping."""

from __future__ import annotations

import logging
import threading

from .logs.logger import logger


def _key(name: str) -> str:
    return name.lower()


class ChannelRegistry:
    """Membership sets keyed by channel name (case-insensitive)."""

    def __init__(self) -> None:
        self._members: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add(self, channel: str) -> None:
        with self._lock:
            self._members.setdefault(_key(channel), set())

    def remove(self, channel: str) -> bool:
        """Forget a channel. Returns False when it was not tracked."""
        with self._lock:
            removed = self._members.pop(_key(channel), None) is not None
        logger.log_event(
            "channels", "removed" if removed else "remove_unknown",
            level=logging.DEBUG, channel=channel,
        )
        return removed

    def add_user(self, channel: str, nick: str) -> None:
        with self._lock:
            self._members.setdefault(_key(channel), set()).add(nick)

    def remove_user(self, channel: str, nick: str) -> None:
        with self._lock:
            members = self._members.get(_key(channel))
            if members is not None:
                members.discard(nick)

    def forget_user(self, nick: str) -> None:
        """Drop a nick from every channel (QUIT)."""
        with self._lock:
            for members in self._members.values():
                members.discard(nick)

    def rename_user(self, old: str, new: str) -> None:
        with self._lock:
            for members in self._members.values():
                if old in members:
                    members.discard(old)
                    members.add(new)

    def users(self, channel: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._members.get(_key(channel), ()))

    @property
    def channels(self) -> list[str]:
        with self._lock:
            return sorted(self._members)

    def clear(self) -> None:
        with self._lock:
            self._members.clear()

    def __contains__(self, channel: object) -> bool:
        return isinstance(channel, str) and _key(channel) in self._members

    def __len__(self) -> int:
        return len(self._members)
