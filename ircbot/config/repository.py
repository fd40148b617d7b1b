from __future__ import annotations

import json
import logging
import os
from typing import Any


class ConfigRepository:
    """Reads the JSON configuration file.

    The parsed mapping is cached and only re-read when the file's mtime or
    size changes.
    """

    def __init__(self, path: str | os.PathLike[str]):
        """Initialize the ConfigRepository.

        Args:
            path: Path to the configuration file.
        """
        if not isinstance(path, str | os.PathLike):
            raise TypeError("path must be str or os.PathLike")
        self.path = str(path)
        self._file_mtime: float | None = None
        self._file_size: int | None = None
        self._cached: dict[str, Any] | None = None

    def load_raw(self) -> dict[str, Any]:
        """Load the raw configuration mapping.

        Returns:
            The top-level JSON object, or an empty dict when the file is
            missing, unreadable or not an object.
        """
        try:
            st = os.stat(self.path)
            if (
                self._cached is not None
                and self._file_mtime == st.st_mtime
                and self._file_size == st.st_size
            ):
                return self._cached
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logging.error(f"📁 Config file not found: {self.path}")
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logging.error(f"💥 Failed reading config {self.path}: {type(e).__name__}: {e}")
            return {}
        if not isinstance(data, dict):
            logging.error(f"⚠️ Config {self.path} must contain a JSON object")
            return {}
        self._cached = data
        self._file_mtime = st.st_mtime
        self._file_size = st.st_size
        return data

    def invalidate(self) -> None:
        self._cached = None
        self._file_mtime = None
        self._file_size = None
