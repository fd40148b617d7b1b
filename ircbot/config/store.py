"""Required-value configuration lookup backed by ``BotConfig``."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..constants import DEFAULT_CONFIG_FILE
from ..errors.internal import ConfigInvalidError, ConfigMissingError
from .model import BotConfig
from .repository import ConfigRepository


def _validate(raw: Mapping[str, Any]) -> BotConfig:
    try:
        return BotConfig.model_validate(dict(raw))
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        if first.get("type") == "missing":
            raise ConfigMissingError(key) from e
        raise ConfigInvalidError(
            key, f"Configuration value '{key}' is invalid: {first.get('msg')}"
        ) from e


class ConfigStore:
    """Holds the current ``BotConfig`` and answers key lookups.

    ``reload`` swaps the settings atomically; readers calling
    ``get_required`` always see either the old or the new snapshot.
    """

    def __init__(self, settings: BotConfig, repository: ConfigRepository | None = None):
        self._settings = settings
        self.repository = repository
        self._lock = threading.Lock()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ConfigStore:
        return cls(_validate(raw))

    @classmethod
    def from_file(cls, path: str | os.PathLike[str] | None = None) -> ConfigStore:
        """Load and validate the config file.

        Args:
            path: Config path; defaults to ``$IRCBOT_CONF_FILE`` or ``ircbot.conf``.

        Raises:
            ConfigMissingError: The file is empty/missing or lacks a required key.
            ConfigInvalidError: A value fails validation.
        """
        path = path or os.environ.get("IRCBOT_CONF_FILE", DEFAULT_CONFIG_FILE)
        repository = ConfigRepository(path)
        raw = repository.load_raw()
        if not raw:
            raise ConfigMissingError(
                "serverAddress", f"No usable configuration found in {repository.path}"
            )
        settings = _validate(raw)
        logging.info(f"✅ Configuration loaded from {repository.path}")
        return cls(settings, repository)

    @property
    def settings(self) -> BotConfig:
        return self._settings

    @property
    def path(self) -> str | None:
        return self.repository.path if self.repository else None

    def get_required(self, key: str) -> Any:
        """Return the value for ``key`` or fail.

        Raises:
            ConfigMissingError: Unknown key or the value is unset.
        """
        try:
            value = self._settings.lookup(key)
        except KeyError:
            raise ConfigMissingError(key) from None
        if value is None:
            raise ConfigMissingError(key)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self.get_required(key)
        except ConfigMissingError:
            return default

    def reload(self) -> bool:
        """Re-read the backing file; keep the old settings if it is invalid.

        Returns:
            True when new settings were applied.
        """
        if self.repository is None:
            return False
        raw = self.repository.load_raw()
        if not raw:
            logging.warning("⚠️ Config reload skipped: file empty or unreadable")
            return False
        try:
            settings = _validate(raw)
        except ConfigMissingError as e:
            logging.warning(f"⚠️ Config reload rejected: {e}")
            return False
        with self._lock:
            changed = settings != self._settings
            self._settings = settings
        if changed:
            logging.info("🔄 Configuration reloaded")
        return changed
