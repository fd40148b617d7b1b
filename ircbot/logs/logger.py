"""Event oriented bot logger."""

from __future__ import annotations

import logging
import os

_EVENT_WIDTH = 32
_PREFIX_WIDTH = 24


def _debug_enabled() -> bool:
    return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")


def _render_template(domain: str, action: str, fields: dict[str, object]) -> tuple[str, bool]:
    """Return the human text for an event and whether it had to be derived."""
    # Imported lazily: the catalog is loaded after this module during package init.
    from .event_catalog import EVENT_TEMPLATES

    template = EVENT_TEMPLATES.get((domain, action))
    if template is None:
        return f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}", True
    try:
        return template.format(**fields), False
    except (KeyError, IndexError, ValueError):
        return template, False


def _prefix(user: object, channel: object) -> str:
    who = user if isinstance(user, str) and user else "system"
    where = channel if isinstance(channel, str) else ""
    return "[" + f"{who}{where}".ljust(_PREFIX_WIDTH)[:_PREFIX_WIDTH] + "]"


class BotLogger:
    """Emits named ``domain_action`` events through a stdlib logger.

    Handlers live on the root logger (see ``LoggerConfigurator``); this class
    only builds the message. With ``DEBUG`` set, the event name and the
    remaining keyword fields are included as well.
    """

    def __init__(self, name: str = "ircbot") -> None:
        self.logger = logging.getLogger(name)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        fields = dict(kwargs)
        if human is None:
            human, derived = _render_template(domain, action, fields)
            if derived:
                fields["derived"] = True
        prefix = _prefix(fields.pop("user", None), fields.pop("channel", None))

        if _debug_enabled():
            event = f"{domain}_{action}".lower()
            if len(event) > _EVENT_WIDTH:
                event = event[: _EVENT_WIDTH - 1] + "…"
            msg = f"{event.ljust(_EVENT_WIDTH)} {prefix} {human}"
            if fields:
                msg += " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        else:
            msg = f"{prefix} {human}"
        self.logger.log(level, msg, exc_info=exc_info)


logger = BotLogger()
