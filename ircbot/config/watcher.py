"""
Configuration file watcher applying runtime config changes
"""

import logging
import os
import threading
from collections.abc import Callable
from typing import Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..logs.logger import logger
from .model import BotConfig
from .store import ConfigStore


class ConfigFileHandler(FileSystemEventHandler):
    """Forwards changes of one config file, debounced on mtime."""

    last_modified: float

    def __init__(self, config_file: str, watcher_instance: "ConfigWatcher"):
        super().__init__()
        self.config_file = os.path.abspath(config_file)
        self.watcher = watcher_instance
        self.last_modified = 0.0

    def _should_process(self) -> bool:
        try:
            mtime = os.path.getmtime(self.config_file)
        except FileNotFoundError:
            return False
        if mtime <= self.last_modified:
            return False
        self.last_modified = mtime
        return True

    def _handle_event(self, src_path: str) -> None:
        if os.path.abspath(src_path) != self.config_file:
            return
        if self._should_process():
            self.watcher.on_config_changed()

    def on_modified(self, event):
        self._handle_event(getattr(event, "src_path", ""))

    def on_created(self, event):
        self._handle_event(getattr(event, "src_path", ""))

    def on_moved(self, event):
        # Editors that save atomically rename a temp file onto the target.
        dest = getattr(event, "dest_path", None) or getattr(event, "src_path", "")
        self._handle_event(dest)


class ConfigWatcher:
    """Reloads a ``ConfigStore`` whenever its file changes on disk.

    Connection settings (server, nickname) only apply on the next connect;
    lookups such as notificationType or commandCharacter see the new values
    immediately.
    """

    def __init__(
        self,
        store: ConfigStore,
        on_reload: Callable[[BotConfig], Any] | None = None,
    ):
        if store.path is None:
            raise ValueError("ConfigWatcher needs a file backed ConfigStore")
        self.store = store
        self.config_file: str = store.path
        self.on_reload = on_reload
        self.observer: Any | None = None
        self.running = False
        self._lock = threading.Lock()

    def start(self) -> None:
        if self.running:
            return

        config_dir = os.path.dirname(os.path.abspath(self.config_file))
        if not os.path.exists(config_dir):
            logger.log_event(
                "config_watch", "dir_missing", level=logging.WARNING, path=config_dir
            )
            return

        observer = Observer()
        observer.schedule(ConfigFileHandler(self.config_file, self), config_dir, recursive=False)
        try:
            observer.start()
        except OSError as e:
            logger.log_event(
                "config_watch", "start_failed", level=logging.ERROR, error=str(e)
            )
            return
        self.observer = observer
        self.running = True
        logger.log_event("config_watch", "start", path=self.config_file)

    def stop(self) -> None:
        obs = self.observer
        if self.running and obs is not None:
            try:
                obs.stop()
                obs.join()
            finally:
                self.running = False
                self.observer = None
                logger.log_event("config_watch", "stopped")

    def on_config_changed(self) -> None:
        """Reload the store; runs on the watchdog observer thread."""
        with self._lock:
            if not self.store.reload():
                logger.log_event("config_watch", "unchanged", level=logging.DEBUG)
                return
            logger.log_event("config_watch", "reloaded", path=self.config_file)
            if self.on_reload is not None:
                try:
                    self.on_reload(self.store.settings)
                except Exception as e:  # noqa: BLE001
                    logger.log_event(
                        "config_watch",
                        "change_handler_error",
                        level=logging.ERROR,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
