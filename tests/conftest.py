import asyncio

import pytest
import pytest_asyncio

from ircbot.activity import InMemoryActivityLog
from ircbot.channels import ChannelRegistry
from ircbot.config.store import ConfigStore
from ircbot.irc.commands import CommandFacade
from ircbot.irc.session import Session
from tests.fixtures.transport import BASE_CONFIG, FakeWriter


@pytest.fixture
def config_store() -> ConfigStore:
    return ConfigStore.from_mapping(BASE_CONFIG)


@pytest.fixture
def make_config():
    def _make(**overrides) -> ConfigStore:
        return ConfigStore.from_mapping({**BASE_CONFIG, **overrides})

    return _make


@pytest_asyncio.fixture
async def stream() -> tuple[asyncio.StreamReader, FakeWriter]:
    reader = asyncio.StreamReader()
    return reader, FakeWriter(reader)


@pytest_asyncio.fixture
async def session(stream) -> Session:
    reader, writer = stream
    s = Session()
    s.attach(reader, writer)  # type: ignore[arg-type]
    return s


@pytest.fixture
def channels() -> ChannelRegistry:
    return ChannelRegistry()


@pytest.fixture
def activity_log() -> InMemoryActivityLog:
    return InMemoryActivityLog()


@pytest_asyncio.fixture
async def facade(session, config_store, channels, activity_log) -> CommandFacade:
    return CommandFacade(session, config_store, channels, activity_log)
