"""Configuration package exports."""

from .model import BotConfig
from .repository import ConfigRepository
from .store import ConfigStore
from .watcher import ConfigWatcher

__all__ = ["BotConfig", "ConfigRepository", "ConfigStore", "ConfigWatcher"]
