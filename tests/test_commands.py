"""
Tests for the command facade
"""

from unittest.mock import Mock

import pytest

from ircbot.errors.internal import SessionIOError
from ircbot.irc.codec import LineType
from ircbot.irc.commands import CommandFacade


class TestChannelMessages:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "wire", "logged"),
        [
            ("message", "PRIVMSG #x :hello", "hello"),
            ("notice", "NOTICE #x :hello", "hello"),
            ("act", "PRIVMSG #x :\x01ACTION hello\x01", "ACTION hello"),
        ],
    )
    async def test_channel_target_records_one_entry(
        self, facade, stream, activity_log, method, wire, logged
    ):
        _, writer = stream
        await getattr(facade, method)("#x", "hello")

        assert writer.commands == [wire]
        assert len(activity_log.entries) == 1
        entry = activity_log.entries[0]
        assert entry.type is LineType.CHANNEL_MESSAGE
        assert entry.nickname == "awesomebot"
        assert entry.ident == "awesome"
        assert entry.channel == "#x"
        assert entry.message == logged
        assert entry.timestamp > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["message", "notice", "act"])
    async def test_private_target_records_nothing(self, facade, activity_log, method):
        await getattr(facade, method)("alice", "hello")
        assert len(activity_log.entries) == 0

    @pytest.mark.asyncio
    async def test_activity_sink_failure_does_not_abort_send(
        self, session, stream, config_store, channels
    ):
        _, writer = stream
        sink = Mock()
        sink.record.side_effect = OSError("disk full")
        facade = CommandFacade(session, config_store, channels, sink)

        await facade.message("#x", "still sent")

        assert writer.commands == ["PRIVMSG #x :still sent"]
        sink.record.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_sink_configured(self, session, stream, config_store, channels):
        _, writer = stream
        facade = CommandFacade(session, config_store, channels)
        await facade.message("#x", "hi")
        assert writer.commands == ["PRIVMSG #x :hi"]


class TestNotify:
    @pytest.mark.asyncio
    async def test_notify_uses_notice_by_default(self, facade, stream):
        _, writer = stream
        await facade.notify("alice", "hi")
        assert writer.commands == ["NOTICE alice :hi"]

    @pytest.mark.asyncio
    async def test_notify_uses_privmsg_when_pm_configured(
        self, session, stream, make_config, channels
    ):
        _, writer = stream
        facade = CommandFacade(session, make_config(notificationType="pm"), channels)
        await facade.notify("alice", "hi")
        assert writer.commands == ["PRIVMSG alice :hi"]


class TestSimpleCommands:
    @pytest.mark.asyncio
    async def test_join_registers_channel(self, facade, stream, channels):
        _, writer = stream
        await facade.join("#x")
        assert writer.commands == ["JOIN #x"]
        assert "#x" in channels

    @pytest.mark.asyncio
    async def test_part_removes_channel_once(self, facade, stream):
        _, writer = stream
        facade.channels = Mock()
        await facade.part("#x")
        assert writer.commands == ["PART #x"]
        facade.channels.remove.assert_called_once_with("#x")

    @pytest.mark.asyncio
    async def test_part_removes_channel_even_when_write_fails(self, facade, stream):
        _, writer = stream
        writer.fail_writes = True
        facade.channels = Mock()
        with pytest.raises(SessionIOError):
            await facade.part("#x")
        facade.channels.remove.assert_called_once_with("#x")

    @pytest.mark.asyncio
    async def test_pong_and_whois(self, facade, stream):
        _, writer = stream
        await facade.pong("irc.example.org")
        await facade.whois("bob")
        assert writer.commands == ["PONG :irc.example.org", "WHOIS bob"]

    @pytest.mark.asyncio
    async def test_channel_invite(self, facade, stream):
        _, writer = stream
        await facade.channel_invite("bob", "#x")
        assert writer.commands == ["INVITE bob #x"]


class TestTopic:
    @pytest.mark.asyncio
    async def test_topic_query(self, facade, stream):
        _, writer = stream
        await facade.topic("#x")
        assert writer.commands == ["TOPIC #x"]

    @pytest.mark.asyncio
    async def test_topic_set_directly(self, facade, stream):
        _, writer = stream
        await facade.topic("#x", "T")
        assert writer.commands == ["TOPIC #x :T"]

    @pytest.mark.asyncio
    async def test_topic_set_via_chanserv(self, facade, stream, activity_log):
        _, writer = stream
        await facade.topic("#x", "New topic here", True)
        assert writer.commands == ["PRIVMSG ChanServ :TOPIC #x New topic here"]
        assert len(activity_log.entries) == 0


class TestModes:
    @pytest.mark.asyncio
    async def test_channel_mode_enable_and_disable(self, facade, stream):
        _, writer = stream
        await facade.channel_mode("#x", "i", True)
        await facade.channel_mode("#x", "i", False)
        assert writer.commands == ["MODE #x +i", "MODE #x -i"]

    @pytest.mark.asyncio
    async def test_op_helpers(self, facade, stream):
        _, writer = stream
        await facade.op("#x", "bob")
        await facade.de_op("#x", "bob")
        await facade.half_op("#x", "bob")
        await facade.de_half_op("#x", "bob")
        assert writer.commands == [
            "MODE #x +o bob",
            "MODE #x -o bob",
            "MODE #x +h bob",
            "MODE #x -h bob",
        ]

    @pytest.mark.asyncio
    async def test_ban_uses_host_mask(self, facade, stream):
        _, writer = stream
        await facade.ban("#x", "bob")
        assert writer.commands == ["MODE #x +b bob!*@*"]

    @pytest.mark.asyncio
    async def test_kick_default_reason(self, facade, stream):
        _, writer = stream
        await facade.kick("#x", "bob")
        assert writer.commands == ["KICK #x bob :Bye!"]

    @pytest.mark.asyncio
    async def test_kickban_bans_before_kicking(self, facade, stream):
        _, writer = stream
        await facade.kickban("#x", "bob")
        assert writer.commands == ["MODE #x +b bob!*@*", "KICK #x bob :Bye!"]
