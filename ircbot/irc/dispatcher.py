"""Trigger dispatch: match, authorize, then run a handler."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from ..constants import HANDLER_TIMEOUT_SECONDS, NICKSERV
from ..errors.handling import log_error
from ..errors.internal import HandlerFailureError
from ..logs.logger import logger
from .registry import MatchStatus

if TYPE_CHECKING:  # pragma: no cover
    from ..auth import Authorizer
    from ..config.store import ConfigStore
    from .codec import ReceivedLine
    from .commands import CommandFacade
    from .registry import HandlerRegistry, Registration


@dataclass(frozen=True)
class Trigger:
    full_message: str
    sender_nick: str | None
    channel: str | None = None

    @classmethod
    def from_line(cls, line: ReceivedLine) -> Trigger:
        return cls(line.message, line.sender_nick, line.channel)


class DispatchOutcome(Enum):
    NO_MATCH = auto()
    EXECUTED = auto()
    DENIED = auto()
    FAILED = auto()


def permission_denied_text(command_character: str) -> str:
    return (
        "You do not have permission to use this command. Please identify via "
        f"{NICKSERV} if you have privileges, then type {command_character}identify"
    )


class TriggerDispatcher:
    """Runs at most one handler per trigger.

    Handler errors and timeouts are logged as ``HandlerFailureError`` and
    reported through the outcome; they never propagate to the caller.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        commands: CommandFacade,
        authorizer: Authorizer,
        config: ConfigStore,
        handler_timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.commands = commands
        self.authorizer = authorizer
        self.config = config
        self.handler_timeout = handler_timeout

    def _timeout(self) -> float:
        if self.handler_timeout is not None:
            return self.handler_timeout
        return float(self.config.get("handlerTimeout", HANDLER_TIMEOUT_SECONDS))

    async def execute(self, trigger: Trigger) -> DispatchOutcome:
        result = self.registry.match(trigger.full_message, trigger.sender_nick, self.authorizer)
        if result.status is MatchStatus.NO_MATCH or result.registration is None:
            return DispatchOutcome.NO_MATCH

        registration = result.registration
        if result.status is MatchStatus.UNAUTHORIZED:
            logger.log_event(
                "dispatch",
                "denied",
                level=logging.WARNING,
                user=trigger.sender_nick,
                channel=trigger.channel,
                command=registration.label,
            )
            if trigger.sender_nick:
                await self.commands.notify(
                    trigger.sender_nick,
                    permission_denied_text(self.config.get_required("commandCharacter")),
                )
            return DispatchOutcome.DENIED

        logger.log_event(
            "dispatch",
            "execute",
            level=logging.DEBUG,
            user=trigger.sender_nick,
            channel=trigger.channel,
            command=registration.label,
        )
        return await self._invoke(registration, trigger)

    async def _invoke(self, registration: Registration, trigger: Trigger) -> DispatchOutcome:
        handler = registration.handler
        args = (trigger.full_message, trigger.sender_nick, trigger.channel)
        try:
            if inspect.iscoroutinefunction(handler):
                await asyncio.wait_for(handler(*args), timeout=self._timeout())
            else:
                # Sync handlers run on a worker thread so they cannot stall the reader.
                maybe = await asyncio.wait_for(
                    asyncio.to_thread(handler, *args), timeout=self._timeout()
                )
                if inspect.isawaitable(maybe):
                    await asyncio.wait_for(maybe, timeout=self._timeout())
        except asyncio.CancelledError:
            raise
        except TimeoutError:
            self._report(registration, trigger, f"timed out after {self._timeout()}s")
            return DispatchOutcome.FAILED
        except Exception as e:  # noqa: BLE001
            self._report(registration, trigger, f"{type(e).__name__}: {e}")
            return DispatchOutcome.FAILED
        return DispatchOutcome.EXECUTED

    @staticmethod
    def _report(registration: Registration, trigger: Trigger, reason: str) -> None:
        failure = HandlerFailureError(registration.label, trigger.sender_nick, reason)
        logger.log_event(
            "dispatch",
            "handler_error",
            level=logging.ERROR,
            user=trigger.sender_nick,
            channel=trigger.channel,
            command=registration.label,
            error=reason,
        )
        log_error("Handler failed", failure, context={"channel": trigger.channel})
