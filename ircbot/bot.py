"""Run loop tying the session, facade and dispatcher together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .activity import ActivityLog, InMemoryActivityLog, JsonLinesActivityLog
from .auth import Authorizer, NickAuthorizer
from .channels import ChannelRegistry
from .config.store import ConfigStore
from .constants import INITIAL_BACKOFF_SECONDS, LINE_TERMINATORS, MAX_BACKOFF_SECONDS
from .errors.handling import log_error
from .errors.internal import (
    ConnectionFailure,
    InternalError,
    ServerUnreachableError,
    SessionError,
)
from .irc.codec import LineType, ReceivedLine
from .irc.commands import CommandFacade
from .irc.dispatcher import Trigger, TriggerDispatcher
from .irc.registry import HandlerRegistry
from .irc.session import Session
from .logs.logger import logger

RPL_WELCOME = "001"
RPL_WHOISREGNICK = "307"
RPL_WHOISACCOUNT = "330"
RPL_ENDOFWHOIS = "318"
RPL_NAMREPLY = "353"
_NAME_PREFIXES = "~&@%+"


class IRCBot:  # pylint: disable=too-many-instance-attributes
    """Connects, registers, then reads lines until stopped.

    Each trigger is dispatched on its own task so a slow handler never
    delays reading the next line. Steady-state session errors trigger the
    reconnect policy; connection failures end ``run`` with the error.
    """

    def __init__(
        self,
        config: ConfigStore,
        registry: HandlerRegistry | None = None,
        *,
        session: Session | None = None,
        activity_log: ActivityLog | None = None,
        authorizer: Authorizer | None = None,
    ) -> None:
        settings = config.settings
        self.config = config
        self.registry = registry or HandlerRegistry()
        self.session = session or Session(terminator=LINE_TERMINATORS[settings.line_terminator])
        self.channels = ChannelRegistry()
        if activity_log is None:
            activity_log = (
                JsonLinesActivityLog(settings.activity_log_file)
                if settings.activity_log_file
                else InMemoryActivityLog()
            )
        self.activity_log = activity_log
        self.authorizer = authorizer or NickAuthorizer(
            admins_source=lambda: self.config.settings.admins
        )
        self.commands = CommandFacade(self.session, config, self.channels, activity_log)
        self.dispatcher = TriggerDispatcher(
            self.registry, self.commands, self.authorizer, config
        )
        self.running = False
        self.registered = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._pending_identify: set[str] = set()
        self.registry.command(
            "identify", self._identify_handler, prefix=settings.command_character
        )

    @property
    def nickname(self) -> str:
        return self.config.get_required("nickname")

    async def open(self) -> None:
        """Connect and send registration. Joins happen once the server welcomes us."""
        address = self.config.get_required("serverAddress")
        port = self.config.get_required("serverPort")
        self.registered = False
        await self.session.connect(address, port)
        await self.session.identify(
            self.nickname,
            self.config.get_required("username"),
            self.config.get_required("realName"),
        )

    async def run(self) -> None:
        """Run until ``stop`` is called.

        Raises:
            ConnectionFailure: The server could not be reached, initially or
                after the reconnect attempts were exhausted.
        """
        self.running = True
        try:
            await self.open()
            while self.running:
                try:
                    await self._read_loop()
                except SessionError as e:
                    if not self.running:
                        break
                    log_error("Session lost", e, level=logging.WARNING)
                    await self._reconnect()
        finally:
            self.running = False
            await self._shutdown()

    async def stop(self) -> None:
        """Send QUIT and close; the read loop ends on the resulting EOF."""
        if not self.running:
            return
        self.running = False
        logger.log_event("bot", "stopping", user=self.nickname)
        try:
            await self.session.quit()
        except SessionError as e:
            log_error("Quit failed", e, level=logging.WARNING)

    async def _read_loop(self) -> None:
        while self.running:
            line = await self.session.receive_line()
            try:
                await self.handle_line(line)
            except SessionError:
                raise
            except InternalError as e:
                if e.fatal:
                    raise
                log_error("Skipped line", e, context={"raw": line.raw}, level=logging.WARNING)

    async def _reconnect(self) -> None:
        attempts = int(self.config.get("reconnectAttempts", 0))
        await self.session.disconnect()
        self.channels.clear()
        if attempts <= 0:
            raise ServerUnreachableError(
                self.session.address or "?", self.session.port or 0, "reconnect disabled"
            )

        def _before_sleep(retry_state) -> None:  # type: ignore[no-untyped-def]
            logger.log_event(
                "bot",
                "reconnect_retry",
                level=logging.WARNING,
                attempt=retry_state.attempt_number,
                error=str(retry_state.outcome.exception()),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=INITIAL_BACKOFF_SECONDS, max=MAX_BACKOFF_SECONDS),
            retry=retry_if_exception_type((ConnectionFailure, SessionError)),
            before_sleep=_before_sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if not self.running:
                        return
                    await self.open()
        except SessionError as e:
            raise ServerUnreachableError(
                self.session.address or "?", self.session.port or 0, str(e)
            ) from e
        logger.log_event("bot", "reconnected", user=self.nickname)

    async def handle_line(self, line: ReceivedLine) -> None:
        if line.type is LineType.PING:
            await self.commands.pong(line.message or (self.session.address or ""))
        elif line.type is LineType.SERVER_NUMERIC:
            await self._handle_numeric(line)
        elif line.type in (LineType.CHANNEL_MESSAGE, LineType.PRIVATE_MESSAGE):
            if line.sender_nick is None or line.sender_nick.lower() == self.nickname.lower():
                return
            if line.is_ctcp_action:
                return
            self._spawn(self.dispatcher.execute(Trigger.from_line(line)))
        elif line.type is LineType.OTHER:
            self._track_membership(line)

    async def _handle_numeric(self, line: ReceivedLine) -> None:
        if line.command == RPL_WELCOME:
            self.registered = True
            self.session.mark_registered()
            logger.log_event("bot", "registered", user=self.nickname)
            password = self.config.get("nickservPassword")
            if password:
                await self.session.identify_with_nickserv(password)
            for channel in self.config.get("channels", []):
                await self.commands.join(channel)
        elif line.command == RPL_NAMREPLY and line.channel:
            for name in line.message.split():
                self.channels.add_user(line.channel, name.lstrip(_NAME_PREFIXES))
        elif line.command in (RPL_WHOISACCOUNT, RPL_WHOISREGNICK):
            nick = line.params[1] if len(line.params) > 1 else None
            if nick and nick.lower() in self._pending_identify:
                self._pending_identify.discard(nick.lower())
                if isinstance(self.authorizer, NickAuthorizer):
                    self.authorizer.grant(nick)
                logger.log_event("bot", "identified", user=nick)
                await self.commands.notify(nick, "You are now identified.")
        elif line.command == RPL_ENDOFWHOIS:
            nick = line.params[1] if len(line.params) > 1 else None
            if nick and nick.lower() in self._pending_identify:
                self._pending_identify.discard(nick.lower())
                await self.commands.notify(
                    nick, "You are not identified with NickServ."
                )

    def _track_membership(self, line: ReceivedLine) -> None:
        nick = line.sender_nick
        if nick is None:
            return
        is_self = nick.lower() == self.nickname.lower()
        if line.command == "JOIN" and line.channel:
            if is_self:
                self.channels.add(line.channel)
            self.channels.add_user(line.channel, nick)
        elif line.command == "PART" and line.channel:
            if is_self:
                if line.channel in self.channels:
                    self.channels.remove(line.channel)
            else:
                self.channels.remove_user(line.channel, nick)
        elif line.command == "KICK" and line.channel and len(line.params) > 1:
            kicked = line.params[1]
            if kicked.lower() == self.nickname.lower():
                self.channels.remove(line.channel)
            else:
                self.channels.remove_user(line.channel, kicked)
        elif line.command == "QUIT":
            self.channels.forget_user(nick)
            if isinstance(self.authorizer, NickAuthorizer):
                self.authorizer.revoke(nick)
        elif line.command == "NICK":
            new = line.message or (line.params[0] if line.params else "")
            if new:
                self.channels.rename_user(nick, new)
                if isinstance(self.authorizer, NickAuthorizer):
                    self.authorizer.rename(nick, new)

    async def _identify_handler(self, message: str, sender: str | None, channel: str | None) -> None:
        if not sender:
            return
        self._pending_identify.add(sender.lower())
        await self.commands.whois(sender)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_error("Dispatch task failed", exc)

    async def drain(self) -> None:
        """Wait for in-flight dispatch tasks."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
        if isinstance(self.activity_log, JsonLinesActivityLog):
            await self.activity_log.close()
        await self.session.disconnect()
        logger.log_event("bot", "shutdown")
