"""Event template catalog (``event_templates.json`` beside this module)."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}
_JSON_FILENAME = "event_templates.json"


def _flatten(raw: Mapping[str, Any]) -> dict[tuple[str, str], str]:
    templates: dict[tuple[str, str], str] = {}
    for domain, actions in raw.items():
        if not isinstance(domain, str) or not isinstance(actions, Mapping):
            continue
        for action, template in actions.items():
            if isinstance(action, str) and isinstance(template, str):
                templates[(domain, action)] = template
    return templates


def load_event_templates(path: Path | None = None) -> dict[tuple[str, str], str]:
    """Read ``{domain: {action: template}}`` into a flat lookup table.

    A missing or unreadable file yields a single ``app/load_error`` entry so
    the logger keeps working with derived messages.
    """
    path = path or Path(__file__).with_name(_JSON_FILENAME)
    try:
        with path.open("r", encoding="utf-8") as f:
            raw: Any = json.load(f)
    except FileNotFoundError:
        return {("app", "load_error"): "Event templates file missing"}
    except (OSError, json.JSONDecodeError) as e:
        logging.debug(f"Event template load failed: {e}")
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}
    if not isinstance(raw, Mapping):
        return {}
    return _flatten(raw)


def reload_event_templates() -> None:
    global EVENT_TEMPLATES  # noqa: PLW0603
    EVENT_TEMPLATES = load_event_templates()


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "load_event_templates", "reload_event_templates"]
