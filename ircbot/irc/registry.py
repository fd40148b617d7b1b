"""Ordered handler registry.

Registrations are tested in the order they were added; the first pattern
that matches the start of the message (``re.match``) wins. Patterns are
plain regular expressions; ``command`` builds one for the common
``<prefix><name>`` form.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from ..auth import Authorizer

Handler = Callable[[str, str | None, str | None], Any]  # sync or async


class MatchStatus(Enum):
    NO_MATCH = auto()
    AUTHORIZED = auto()
    UNAUTHORIZED = auto()


@dataclass(frozen=True)
class Registration:
    pattern: re.Pattern[str]
    handler: Handler
    requires_auth: bool = False
    name: str | None = None

    @property
    def label(self) -> str:
        return self.name or self.pattern.pattern


@dataclass(frozen=True)
class MatchResult:
    status: MatchStatus
    registration: Registration | None = None


NO_MATCH = MatchResult(MatchStatus.NO_MATCH)


class HandlerRegistry:
    def __init__(self) -> None:
        self._registrations: list[Registration] = []

    def register(
        self,
        pattern: str | re.Pattern[str],
        handler: Handler,
        *,
        requires_auth: bool = False,
        name: str | None = None,
    ) -> Registration:
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        registration = Registration(compiled, handler, requires_auth, name)
        self._registrations.append(registration)
        return registration

    def command(
        self,
        name: str,
        handler: Handler,
        *,
        prefix: str = "!",
        requires_auth: bool = False,
    ) -> Registration:
        """Register ``<prefix><name>`` followed by whitespace or end of text."""
        pattern = rf"{re.escape(prefix)}{re.escape(name)}(?:\s|$)"
        return self.register(
            pattern, handler, requires_auth=requires_auth, name=f"{prefix}{name}"
        )

    def unregister(self, registration: Registration) -> None:
        self._registrations.remove(registration)

    def find(self, text: str) -> Registration | None:
        for registration in self._registrations:
            if registration.pattern.match(text):
                return registration
        return None

    def match(self, text: str, sender: str | None, authorizer: Authorizer) -> MatchResult:
        registration = self.find(text)
        if registration is None:
            return NO_MATCH
        if registration.requires_auth and not authorizer.is_authorized(sender):
            return MatchResult(MatchStatus.UNAUTHORIZED, registration)
        return MatchResult(MatchStatus.AUTHORIZED, registration)

    def __iter__(self) -> Iterator[Registration]:
        return iter(list(self._registrations))

    def __len__(self) -> int:
        return len(self._registrations)
