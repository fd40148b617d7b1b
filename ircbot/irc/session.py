"""Session: owner of the single duplex connection to the server."""

from __future__ import annotations

import asyncio
import logging

from ..constants import (
    CONNECT_TIMEOUT_SECONDS,
    MAX_LINE_BYTES,
    NICKSERV,
    NUL_LF_TERMINATOR,
    QUIT_MESSAGE,
)
from ..errors.internal import (
    ServerUnreachableError,
    SessionDisconnectedError,
    SessionIOError,
)
from ..logs.logger import logger
from .codec import OutboundLine, ReceivedLine, build_line, decode_line
from .models import ConnectionState


class Session:  # pylint: disable=too-many-instance-attributes
    """Opens, reads, writes and closes one connection.

    All writes are serialized on an internal lock so concurrent handler tasks
    cannot interleave partial lines. Reads are expected from a single reader
    coroutine at a time.
    """

    def __init__(
        self,
        terminator: bytes = NUL_LF_TERMINATOR,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        max_line_bytes: int = MAX_LINE_BYTES,
    ) -> None:
        self.terminator = terminator
        self.connect_timeout = connect_timeout
        self.max_line_bytes = max_line_bytes
        self.address: str | None = None
        self.port: int | None = None
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.state = ConnectionState.DISCONNECTED
        self._buffer = bytearray()
        self._write_lock = asyncio.Lock()

    def _set_state(self, new_state: ConnectionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "session",
                "state_change",
                level=logging.DEBUG,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    async def connect(self, address: str, port: int) -> None:
        """Open the transport.

        Raises:
            ServerUnreachableError: The open call failed or timed out.
        """
        if self.writer is not None:
            await self.disconnect()
        self.address = address
        self.port = port
        self._set_state(ConnectionState.CONNECTING)
        logger.log_event("session", "connect_start", server=address, port=port)
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=self.connect_timeout,
            )
        except TimeoutError as e:
            self._set_state(ConnectionState.DISCONNECTED)
            raise ServerUnreachableError(
                address, port, f"timed out after {self.connect_timeout}s"
            ) from e
        except OSError as e:
            self._set_state(ConnectionState.DISCONNECTED)
            raise ServerUnreachableError(address, port, str(e)) from e
        self._buffer.clear()
        self._set_state(ConnectionState.CONNECTED)
        logger.log_event("session", "connect_success", server=address, port=port)

    def attach(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Adopt an already open stream pair (e.g. a TLS wrapped connection)."""
        self.reader, self.writer = reader, writer
        self._buffer.clear()
        self._set_state(ConnectionState.CONNECTED)

    def connected(self) -> bool:
        """True while a handle exists and end-of-stream has not been reached."""
        if self.reader is None or self.writer is None:
            return False
        return bool(self._buffer) or not self.reader.at_eof()

    async def identify(self, nickname: str, username: str, real_name: str) -> None:
        logger.log_event("session", "identify", user=nickname)
        await self.send_raw(build_line("NICK", nickname))
        await self.send_raw(build_line("USER", username, "0", "*", trailing=real_name))
        self._set_state(ConnectionState.REGISTERING)

    async def identify_with_nickserv(self, password: str) -> None:
        logger.log_event("session", "nickserv_identify", service=NICKSERV)
        await self.send_raw(
            build_line("PRIVMSG", NICKSERV, trailing=f"IDENTIFY {password}"),
            log_line=False,
        )

    def mark_registered(self) -> None:
        if self.connected():
            self._set_state(ConnectionState.READY)

    async def send_raw(self, line: OutboundLine, *, log_line: bool = True) -> None:
        """Write one line.

        Raises:
            SessionDisconnectedError: No live handle.
            SessionIOError: The transport rejected the write.
        """
        if self.writer is None:
            raise SessionDisconnectedError(f"Cannot send {line.command}: not connected")
        if log_line:
            logger.log_event("session", "send", level=logging.DEBUG, line=line.render())
        async with self._write_lock:
            writer = self.writer
            if writer is None:
                raise SessionDisconnectedError(f"Cannot send {line.command}: not connected")
            try:
                writer.write(line.encode(self.terminator))
                await writer.drain()
            except (OSError, RuntimeError) as e:
                raise SessionIOError(
                    f"Write of {line.command} failed: {e}",
                    data={"command": line.command},
                ) from e

    async def receive_line(self) -> ReceivedLine:
        """Block until one line is available and decode it.

        The liveness check runs before any read so a closed stream is
        reported as ``SessionDisconnectedError`` without touching the reader.
        """
        logger.log_event("session", "receive_wait", level=logging.DEBUG)
        if not self.connected():
            logger.log_event("session", "not_connected", level=logging.ERROR)
            raise SessionDisconnectedError()
        chunk = await self._read_chunk()
        if not chunk:
            logger.log_event("session", "end_of_stream", level=logging.WARNING)
            raise SessionDisconnectedError("Server closed the connection")
        line = decode_line(chunk)
        logger.log_event("session", "receive", level=logging.DEBUG, raw=line.raw)
        return line

    async def _read_chunk(self) -> bytes:
        """Read up to and including the next LF, capped at ``max_line_bytes``."""
        reader = self.reader
        if reader is None:
            raise SessionDisconnectedError()
        while b"\n" not in self._buffer and len(self._buffer) < self.max_line_bytes:
            try:
                data = await reader.read(self.max_line_bytes - len(self._buffer))
            except (OSError, RuntimeError) as e:
                raise SessionIOError(f"Read failed: {e}") from e
            if not data:
                break
            self._buffer.extend(data)
        end = self._buffer.find(b"\n")
        cut = end + 1 if end != -1 else min(len(self._buffer), self.max_line_bytes)
        chunk = bytes(self._buffer[:cut])
        del self._buffer[:cut]
        return chunk

    async def quit(self, message: str = QUIT_MESSAGE) -> None:
        """Send QUIT then release the transport even if that send fails."""
        try:
            if self.writer is not None:
                await self.send_raw(build_line("QUIT", trailing=message))
        finally:
            await self.disconnect()
            logger.log_event("session", "quit")

    async def disconnect(self) -> None:
        writer = self.writer
        self.writer = None
        self.reader = None
        self._buffer.clear()
        if writer is not None:
            try:
                writer.close()
                await writer.wait_closed()
            except (OSError, RuntimeError) as e:
                logger.log_event(
                    "session", "close_error", level=logging.WARNING, error=str(e)
                )
            logger.log_event("session", "disconnected", level=logging.WARNING)
        self._set_state(ConnectionState.DISCONNECTED)


__all__ = ["Session"]
