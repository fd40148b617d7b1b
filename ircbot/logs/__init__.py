"""Project logging package.

Contains the event catalog and ``BotLogger``. Console handlers are set up by
``ircbot.logging_config``.
"""

from .event_catalog import EVENT_TEMPLATES, reload_event_templates  # noqa: F401
from .logger import BotLogger, logger  # noqa: F401

__all__ = ["BotLogger", "logger", "EVENT_TEMPLATES", "reload_event_templates"]
