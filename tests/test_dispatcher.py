import asyncio
import time
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from ircbot.auth import NickAuthorizer
from ircbot.irc.codec import decode_line
from ircbot.irc.dispatcher import (
    DispatchOutcome,
    Trigger,
    TriggerDispatcher,
    permission_denied_text,
)
from ircbot.irc.registry import HandlerRegistry


def _dispatcher(registry, config_store, authorizer, commands=None, timeout=None):
    commands = commands or Mock(notify=AsyncMock(), ban=AsyncMock())
    return TriggerDispatcher(registry, commands, authorizer, config_store, handler_timeout=timeout), commands


@pytest.mark.asyncio
async def test_unauthorized_sender_gets_one_notification(config_store):
    registry = HandlerRegistry()
    handler = AsyncMock()
    registry.command("ban", handler, prefix="!", requires_auth=True)
    dispatcher, commands = _dispatcher(registry, config_store, NickAuthorizer())

    outcome = await dispatcher.execute(Trigger("!ban bob", "alice", "#x"))

    assert outcome is DispatchOutcome.DENIED
    commands.notify.assert_awaited_once()
    target, text = commands.notify.await_args.args
    assert target == "alice"
    assert "!identify" in text
    handler.assert_not_awaited()
    commands.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_authorized_sender_runs_handler(config_store):
    registry = HandlerRegistry()
    calls: list[tuple[Any, ...]] = []

    async def ban_handler(message, sender, channel):
        calls.append((message, sender, channel))

    registry.command("ban", ban_handler, prefix="!", requires_auth=True)
    dispatcher, commands = _dispatcher(registry, config_store, NickAuthorizer(["alice"]))

    outcome = await dispatcher.execute(Trigger("!ban bob", "alice", "#x"))

    assert outcome is DispatchOutcome.EXECUTED
    assert calls == [("!ban bob", "alice", "#x")]
    commands.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_match_is_silent(config_store):
    registry = HandlerRegistry()
    registry.command("ban", AsyncMock(), prefix="!")
    dispatcher, commands = _dispatcher(registry, config_store, NickAuthorizer())

    outcome = await dispatcher.execute(Trigger("just chatting", "alice", "#x"))

    assert outcome is DispatchOutcome.NO_MATCH
    commands.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_sync_handler_supported(config_store):
    registry = HandlerRegistry()
    seen: list[str] = []
    registry.register(r"hello", lambda m, s, c: seen.append(s))
    dispatcher, _ = _dispatcher(registry, config_store, NickAuthorizer())

    assert await dispatcher.execute(Trigger("hello bot", "bob")) is DispatchOutcome.EXECUTED
    assert seen == ["bob"]


@pytest.mark.asyncio
async def test_handler_exception_is_reported_not_raised(config_store, monkeypatch):
    registry = HandlerRegistry()

    async def bad_handler(message, sender, channel):  # noqa: ARG001
        raise RuntimeError("boom")

    registry.command("crash", bad_handler)
    dispatcher, commands = _dispatcher(registry, config_store, NickAuthorizer())

    from ircbot.logs.logger import logger as bot_logger

    seen: list[str] = []
    real_log_event = bot_logger.log_event

    def capture(domain: str, action: str, **kwargs: Any) -> None:
        if action == "handler_error":
            seen.append(str(kwargs.get("error")))
        real_log_event(domain, action, **kwargs)

    monkeypatch.setattr(bot_logger, "log_event", capture)

    outcome = await dispatcher.execute(Trigger("!crash", "bob", "#x"))

    assert outcome is DispatchOutcome.FAILED
    assert seen == ["RuntimeError: boom"]
    commands.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_handler_timeout_counts_as_failure(config_store):
    registry = HandlerRegistry()

    async def slow(message, sender, channel):  # noqa: ARG001
        await asyncio.sleep(5)

    registry.command("slow", slow)
    dispatcher, _ = _dispatcher(registry, config_store, NickAuthorizer(), timeout=0.01)

    assert await dispatcher.execute(Trigger("!slow", "bob")) is DispatchOutcome.FAILED


@pytest.mark.asyncio
async def test_blocking_sync_handler_overrun_counts_as_failure(config_store):
    registry = HandlerRegistry()
    registry.command("block", lambda m, s, c: time.sleep(0.5))
    dispatcher, _ = _dispatcher(registry, config_store, NickAuthorizer(), timeout=0.05)

    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            ticks += 1
            await asyncio.sleep(0.01)

    ticking = asyncio.create_task(ticker())
    try:
        outcome = await dispatcher.execute(Trigger("!block", "bob"))
    finally:
        ticking.cancel()

    assert outcome is DispatchOutcome.FAILED
    assert ticks >= 2


@pytest.mark.asyncio
async def test_sync_handler_returning_coroutine_is_awaited(config_store):
    registry = HandlerRegistry()
    done = asyncio.Event()

    async def finish():
        done.set()

    registry.register(r"later", lambda m, s, c: finish())
    dispatcher, _ = _dispatcher(registry, config_store, NickAuthorizer())

    assert await dispatcher.execute(Trigger("later", "bob")) is DispatchOutcome.EXECUTED
    assert done.is_set()


@pytest.mark.asyncio
async def test_denial_uses_configured_command_character(make_config):
    config = make_config(commandCharacter="@")
    registry = HandlerRegistry()
    registry.command("ban", AsyncMock(), prefix="@", requires_auth=True)
    dispatcher, commands = _dispatcher(registry, config, NickAuthorizer())

    await dispatcher.execute(Trigger("@ban bob", "alice", "#x"))

    commands.notify.assert_awaited_once_with("alice", permission_denied_text("@"))
    assert "@identify" in permission_denied_text("@")


@pytest.mark.asyncio
async def test_denial_reaches_the_wire_through_the_facade(facade, stream, config_store):
    _, writer = stream
    registry = HandlerRegistry()
    registry.command("ban", facade.ban, requires_auth=True)
    dispatcher = TriggerDispatcher(registry, facade, NickAuthorizer(), config_store)

    await dispatcher.execute(Trigger.from_line(decode_line(":alice!a@h PRIVMSG #x :!ban bob")))

    assert len(writer.commands) == 1
    assert writer.commands[0].startswith("NOTICE alice :You do not have permission")
    assert not any(c.startswith("MODE") for c in writer.commands)


def test_trigger_from_received_line():
    trigger = Trigger.from_line(decode_line(":alice!a@h PRIVMSG #x :!ban bob"))
    assert trigger == Trigger("!ban bob", "alice", "#x")
