"""Authorization predicates for protected handlers."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable


@runtime_checkable
class Authorizer(Protocol):
    def is_authorized(self, nickname: str | None) -> bool: ...  # noqa: D401,E701


class NickAuthorizer:
    """Authorizes configured admins plus nicks granted at runtime.

    ``admins_source`` is called on every check so a reloaded admin list
    applies without rebuilding the authorizer.
    """

    def __init__(
        self,
        admins: Iterable[str] = (),
        admins_source: Callable[[], Iterable[str]] | None = None,
    ) -> None:
        self._static = {a.lower() for a in admins}
        self._admins_source = admins_source
        self._granted: set[str] = set()

    def grant(self, nickname: str) -> None:
        self._granted.add(nickname.lower())

    def revoke(self, nickname: str) -> None:
        self._granted.discard(nickname.lower())

    def rename(self, old: str, new: str) -> None:
        if old.lower() in self._granted:
            self._granted.discard(old.lower())
            self._granted.add(new.lower())

    def is_authorized(self, nickname: str | None) -> bool:
        if not nickname:
            return False
        nick = nickname.lower()
        if nick in self._static or nick in self._granted:
            return True
        if self._admins_source is not None:
            return nick in {a.lower() for a in self._admins_source()}
        return False
