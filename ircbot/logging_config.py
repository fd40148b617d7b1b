"""
Root logging setup for the IRC bot.

Console output goes through colorlog and is filtered by the ``verboseOutput``
category mask. Structured errors are counted per category so a summary can
be printed when the process exits.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any

import colorlog

ERROR_HISTORY_LIMIT = 1000
ALERT_RATE_PER_HOUR = 10.0
_RECENT_WINDOW_SECONDS = 3600


class VerboseCategory(IntFlag):
    """Console output categories selected by the ``verboseOutput`` bitmask."""

    ERROR = 1
    NOTICE = 2
    DEBUG = 4
    FATAL = 8

    @classmethod
    def for_level(cls, levelno: int) -> VerboseCategory:
        if levelno >= logging.CRITICAL:
            return cls.FATAL
        if levelno >= logging.WARNING:
            return cls.ERROR
        if levelno >= logging.INFO:
            return cls.NOTICE
        return cls.DEBUG


ALL_CATEGORIES = (
    VerboseCategory.ERROR
    | VerboseCategory.NOTICE
    | VerboseCategory.DEBUG
    | VerboseCategory.FATAL
)


class VerboseCategoryFilter(logging.Filter):
    """Drop console records whose category bit is not set in the mask.

    CRITICAL records always pass: a fatal condition is never silent.
    """

    def __init__(self, mask: int = int(ALL_CATEGORIES)) -> None:
        super().__init__()
        self.mask = VerboseCategory(mask & int(ALL_CATEGORIES))

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.CRITICAL:
            return True
        return bool(self.mask & VerboseCategory.for_level(record.levelno))


@dataclass
class _ErrorHistory:
    occurrences: deque[dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=ERROR_HISTORY_LIMIT)
    )
    total: int = 0


class ErrorAggregator:
    """Counts structured errors per category.

    Only the last ``ERROR_HISTORY_LIMIT`` occurrences of a category are kept;
    ``total`` keeps counting past that.
    """

    def __init__(self) -> None:
        self._history: dict[str, _ErrorHistory] = {}
        self._lock = threading.Lock()
        self.started_at = time.time()

    def record_error(
        self, error_type: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        entry = {"timestamp": time.time(), "message": message, "context": context or {}}
        with self._lock:
            history = self._history.setdefault(error_type, _ErrorHistory())
            history.occurrences.append(entry)
            history.total += 1

    def get_error_summary(self) -> dict[str, dict[str, Any]]:
        now = time.time()
        hours = max((now - self.started_at) / 3600, 1.0)
        with self._lock:
            return {
                error_type: {
                    "total_count": h.total,
                    "recent_count": sum(
                        1 for e in h.occurrences
                        if now - e["timestamp"] < _RECENT_WINDOW_SECONDS
                    ),
                    "rate_per_hour": h.total / hours,
                    "last_occurrence": h.occurrences[-1] if h.occurrences else None,
                }
                for error_type, h in self._history.items()
            }

    def should_alert(self, error_type: str, threshold_rate: float = ALERT_RATE_PER_HOUR) -> bool:
        stats = self.get_error_summary().get(error_type)
        return stats is not None and stats["rate_per_hour"] > threshold_rate

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
            self.started_at = time.time()

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.info("No errors recorded in current session")
            return
        logging.warning("🚨 Error summary")
        for error_type, stats in sorted(summary.items()):
            logging.warning(
                f"  {error_type}: {stats['total_count']} total, "
                f"{stats['recent_count']} in the last hour "
                f"({stats['rate_per_hour']:.1f}/hour)"
            )
            last = stats["last_occurrence"]
            if last:
                logging.warning(f"    last: {last['message']}")


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log ``message`` tagged with its category and record it for the summary.

    Args:
        error_type: Category such as 'network', 'session' or 'config'.
        message: Human readable description.
        exception: Exception whose type name is appended, if any.
        context: Extra key/value pairs appended to the line.
        level: Logging level (default: ERROR).
    """
    parts = [f"[{error_type.upper()}] {message}"]
    if exception is not None:
        parts.append(f"Exception: {type(exception).__name__}")
    if context:
        parts.append("Context: " + " | ".join(f"{k}={v}" for k, v in context.items()))
    logging.log(level, " | ".join(parts))

    error_aggregator.record_error(error_type, message, context)
    if error_aggregator.should_alert(error_type):
        rate = error_aggregator.get_error_summary()[error_type]["rate_per_hour"]
        logging.critical(f"🚨 High error rate: {error_type} at {rate:.1f}/hour")


class LoggerConfigurator:
    """Installs the console (and optional file) handlers on the root logger.

    The root level is DEBUG when the mask selects ``VerboseCategory.DEBUG``
    or the ``DEBUG`` environment variable is 'true', '1' or 'yes', otherwise
    INFO. Without that, debug records would be dropped before the category
    filter ever sees them.
    """

    def __init__(self, verbose_output: int = int(ALL_CATEGORIES), log_file: str | None = None):
        self.verbose_output = verbose_output
        self.log_file = log_file
        self._summary_registered = False

    @staticmethod
    def _console_formatter() -> logging.Formatter:
        return colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "magenta",
            },
            secondary_log_colors={"message": {"ERROR": "red", "CRITICAL": "magenta"}},
            reset=True,
        )

    @staticmethod
    def root_level_for(mask: int) -> int:
        if mask & VerboseCategory.DEBUG:
            return logging.DEBUG
        if os.environ.get("DEBUG", "").lower() in ("true", "1", "yes"):
            return logging.DEBUG
        return logging.INFO

    def configure(self) -> None:
        level = self.root_level_for(self.verbose_output)

        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(self._console_formatter())
        console.addFilter(VerboseCategoryFilter(self.verbose_output))
        handlers: list[logging.Handler] = [console]

        if self.log_file:
            # The mask only governs the console; the file gets every category.
            file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
            )
            handlers.append(file_handler)

        logging.basicConfig(level=level, handlers=handlers, force=True)
        logging.getLogger().setLevel(level)

        if not self._summary_registered:
            atexit.register(self._log_final_error_summary)
            self._summary_registered = True

    def set_verbose_output(self, mask: int) -> None:
        """Swap the console category mask, e.g. after a config reload."""
        self.verbose_output = mask
        root = logging.getLogger()
        root.setLevel(self.root_level_for(mask))
        for handler in root.handlers:
            for f in handler.filters:
                if isinstance(f, VerboseCategoryFilter):
                    f.mask = VerboseCategory(mask & int(ALL_CATEGORIES))

    @staticmethod
    def _log_final_error_summary() -> None:
        try:
            logging.info("📊 Error summary at shutdown:")
            error_aggregator.log_summary_report()
        except Exception as e:  # noqa: BLE001
            logging.error(f"Failed to log final error summary: {e}")
