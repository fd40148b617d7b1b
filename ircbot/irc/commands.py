"""Semantic IRC operations built on top of ``Session``.

Every operation is fire-and-forget: it writes one or more lines and returns
without waiting for a server reply. Messages, notices and actions sent to a
channel are also handed to the activity log.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from ..constants import CHANSERV, DEFAULT_KICK_REASON
from ..errors.handling import log_error
from ..logs.logger import logger
from .codec import LineType, OutboundLine, build_line, ctcp
from .models import ActivityEntry

if TYPE_CHECKING:  # pragma: no cover
    from ..activity import ActivityLog
    from ..channels import ChannelRegistry
    from ..config.store import ConfigStore
    from .session import Session


def is_channel(target: str) -> bool:
    return target.startswith("#")


class CommandFacade:
    def __init__(
        self,
        session: Session,
        config: ConfigStore,
        channels: ChannelRegistry,
        activity_log: ActivityLog | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.channels = channels
        self.activity_log = activity_log

    async def _send(self, line: OutboundLine) -> None:
        await self.session.send_raw(line)

    def _record_activity(self, channel: str, text: str) -> None:
        if self.activity_log is None:
            return
        entry = ActivityEntry(
            type=LineType.CHANNEL_MESSAGE,
            nickname=self.config.get_required("nickname"),
            ident=self.config.get_required("username"),
            channel=channel,
            message=text,
            timestamp=int(time.time()),
        )
        try:
            self.activity_log.record(entry)
        except Exception as e:  # noqa: BLE001
            # The line is already on the wire; a sink failure must not undo that.
            log_error("Activity log write failed", e, context={"channel": channel})

    async def _say(self, command: str, target: str, payload: str, logged_text: str) -> None:
        await self._send(build_line(command, target, trailing=payload))
        if is_channel(target):
            self._record_activity(target, logged_text)

    async def join(self, channel: str) -> None:
        logger.log_event("irc", "join", channel=channel)
        await self._send(build_line("JOIN", channel))
        self.channels.add(channel)

    async def part(self, channel: str) -> None:
        try:
            await self._send(build_line("PART", channel))
            logger.log_event("irc", "part", channel=channel)
        finally:
            self.channels.remove(channel)

    async def message(self, target: str, text: str) -> None:
        logger.log_event(
            "irc", "message", level=logging.DEBUG, target=target, text=text
        )
        await self._say("PRIVMSG", target, text, text)

    async def notice(self, target: str, text: str) -> None:
        logger.log_event("irc", "notice", level=logging.DEBUG, target=target, text=text)
        await self._say("NOTICE", target, text, text)

    async def notify(self, target: str, text: str) -> None:
        """Message or notice ``target`` depending on ``notificationType``."""
        logger.log_event("irc", "notify", level=logging.DEBUG, target=target)
        if self.config.get_required("notificationType") == "pm":
            await self.message(target, text)
        else:
            await self.notice(target, text)

    async def act(self, target: str, text: str) -> None:
        logger.log_event("irc", "act", level=logging.DEBUG, target=target, text=text)
        await self._say("PRIVMSG", target, ctcp("ACTION", text), f"ACTION {text}")

    async def pong(self, target: str) -> None:
        logger.log_event("irc", "pong", level=logging.DEBUG, target=target)
        await self._send(build_line("PONG", trailing=target))

    async def whois(self, nickname: str) -> None:
        logger.log_event("irc", "whois", level=logging.DEBUG, nick=nickname)
        await self._send(build_line("WHOIS", nickname))

    async def topic(
        self, channel: str, text: str | None = None, via_service: bool = False
    ) -> None:
        """Query, set, or set through ChanServ the topic of ``channel``."""
        if not text:
            logger.log_event("irc", "topic_query", level=logging.DEBUG, channel=channel)
            await self._send(build_line("TOPIC", channel))
        elif via_service:
            logger.log_event(
                "irc", "topic_set_service", level=logging.DEBUG, channel=channel, topic=text
            )
            await self.message(CHANSERV, f"TOPIC {channel} {text}")
        else:
            logger.log_event(
                "irc", "topic_set", level=logging.DEBUG, channel=channel, topic=text
            )
            await self._send(build_line("TOPIC", channel, trailing=text))

    async def channel_invite(self, nick: str, channel: str) -> None:
        logger.log_event("irc", "invite", level=logging.DEBUG, nick=nick, channel=channel)
        await self._send(build_line("INVITE", nick, channel))

    async def channel_mode(
        self, channel: str, mode: str, enable: bool, *args: str
    ) -> None:
        sign = "+" if enable else "-"
        logger.log_event(
            "irc", "mode", level=logging.DEBUG, channel=channel, mode=f"{sign}{mode}",
            args=" ".join(args),
        )
        await self._send(build_line("MODE", channel, f"{sign}{mode}", *args))

    async def kick(self, channel: str, nick: str, reason: str = DEFAULT_KICK_REASON) -> None:
        logger.log_event(
            "irc", "kick", level=logging.DEBUG, channel=channel, nick=nick, reason=reason
        )
        await self._send(build_line("KICK", channel, nick, trailing=reason))

    async def ban(self, channel: str, nick: str) -> None:
        logger.log_event("irc", "ban", level=logging.DEBUG, channel=channel, nick=nick)
        await self.channel_mode(channel, "b", True, f"{nick}!*@*")

    async def kickban(self, channel: str, nick: str) -> None:
        await self.ban(channel, nick)
        await self.kick(channel, nick)

    async def op(self, channel: str, nick: str) -> None:
        await self.channel_mode(channel, "o", True, nick)

    async def de_op(self, channel: str, nick: str) -> None:
        await self.channel_mode(channel, "o", False, nick)

    async def half_op(self, channel: str, nick: str) -> None:
        await self.channel_mode(channel, "h", True, nick)

    async def de_half_op(self, channel: str, nick: str) -> None:
        await self.channel_mode(channel, "h", False, nick)
