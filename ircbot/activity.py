"""Sinks receiving channel activity records."""

from __future__ import annotations

import asyncio
import json
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol, runtime_checkable

from .constants import ACTIVITY_MEMORY_LIMIT
from .errors.handling import log_error
from .irc.models import ActivityEntry


@runtime_checkable
class ActivityLog(Protocol):
    def record(self, entry: ActivityEntry) -> None: ...  # noqa: D401,E701


class InMemoryActivityLog:
    """Keeps the most recent entries in a bounded deque."""

    def __init__(self, limit: int = ACTIVITY_MEMORY_LIMIT) -> None:
        self.entries: deque[ActivityEntry] = deque(maxlen=limit)

    def record(self, entry: ActivityEntry) -> None:
        self.entries.append(entry)

    def for_channel(self, channel: str) -> list[ActivityEntry]:
        return [e for e in self.entries if e.channel.lower() == channel.lower()]


class JsonLinesActivityLog:
    """Appends one JSON object per entry to a file.

    Inside a running event loop the append is handed to a single worker
    thread, so entries land in the order they were recorded and the loop
    never waits on the disk. ``flush`` awaits the writes still in flight.
    Outside a loop the append happens inline.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[asyncio.Future[None]] = set()

    @staticmethod
    def _serialize(entry: ActivityEntry) -> str:
        return json.dumps(
            {
                "type": entry.type.value,
                "nickname": entry.nickname,
                "ident": entry.ident,
                "channel": entry.channel,
                "message": entry.message,
                "time": entry.timestamp,
            },
            ensure_ascii=False,
        )

    def _append(self, line: str) -> None:
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def record(self, entry: ActivityEntry) -> None:
        line = self._serialize(entry)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._append(line)
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="activity-log")
        future = loop.run_in_executor(self._executor, self._append, line)
        self._pending.add(future)
        future.add_done_callback(self._on_written)

    def _on_written(self, future: asyncio.Future[None]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log_error("Activity log write failed", exc, context={"path": str(self.path)})

    async def flush(self) -> None:
        """Wait until every recorded entry has reached the file."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None


__all__ = ["ActivityLog", "InMemoryActivityLog", "JsonLinesActivityLog"]
