"""Pydantic model for the bot configuration file.

Keys use the camelCase names found in the JSON file (``serverAddress``,
``verboseOutput`` and so on) as aliases; attributes are snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import HANDLER_TIMEOUT_SECONDS, RECONNECT_MAX_ATTEMPTS
from ..logging_config import ALL_CATEGORIES


def _normalize_channels(channels: Any) -> list[str]:
    """Normalize channel names to lowercase with a single leading '#'.

    Empty entries are dropped and duplicates removed, keeping first-seen
    order so auto-join happens in the order the operator wrote.
    """
    if not isinstance(channels, list):
        raise ValueError("channels must be a list")
    normalized: list[str] = []
    for ch in channels:
        if not isinstance(ch, str):
            continue
        name = ch.strip().lstrip("#").lower()
        if name:
            normalized.append(f"#{name}")
    return list(dict.fromkeys(normalized))


class BotConfig(BaseModel):
    """Validated bot configuration.

    Keys are read in the camelCase form used by the config file
    (``serverAddress``) and also accepted in snake_case.

    Attributes:
        server_address: Host name of the chat server.
        server_port: TCP port of the chat server.
        nickname: Nickname registered with NICK.
        username: Username (ident) sent with USER.
        real_name: Free-text real name sent with USER.
        nickserv_password: Password for NickServ IDENTIFY, if any.
        notification_type: "pm" to notify with PRIVMSG, "notice" for NOTICE.
        command_character: Prefix users type before commands.
        verbose_output: Bitmask of console log categories.
        channels: Channels joined after registration.
        admins: Nicknames allowed to run protected commands.
        line_terminator: "nul" (NUL + LF) or "crlf".
        activity_log_file: JSON-lines file for channel activity.
        log_file: Optional log file receiving every category.
        handler_timeout: Seconds a handler may run before it is failed.
        reconnect_attempts: Reconnects tried before giving up.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    server_address: str = Field(alias="serverAddress", min_length=1)
    server_port: int = Field(alias="serverPort", ge=1, le=65535)
    nickname: str = Field(min_length=1)
    username: str = Field(min_length=1)
    real_name: str = Field(alias="realName", min_length=1)
    nickserv_password: str | None = Field(default=None, alias="nickservPassword")
    notification_type: Literal["pm", "notice"] = Field(
        default="notice", alias="notificationType"
    )
    command_character: str = Field(default="!", alias="commandCharacter")
    verbose_output: int = Field(default=int(ALL_CATEGORIES), alias="verboseOutput", ge=0)
    channels: list[str] = Field(default_factory=list)
    admins: list[str] = Field(default_factory=list)
    line_terminator: Literal["nul", "crlf"] = Field(default="nul", alias="lineTerminator")
    activity_log_file: str | None = Field(default=None, alias="activityLogFile")
    log_file: str | None = Field(default=None, alias="logFile")
    handler_timeout: float = Field(
        default=HANDLER_TIMEOUT_SECONDS, alias="handlerTimeout", gt=0
    )
    reconnect_attempts: int = Field(
        default=RECONNECT_MAX_ATTEMPTS, alias="reconnectAttempts", ge=0
    )

    @field_validator("channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> list[str]:
        return _normalize_channels(v)

    @field_validator("notification_type", mode="before")
    @classmethod
    def validate_notification_type(cls, v: Any) -> str:
        # Anything other than "pm" falls back to notices.
        return "pm" if isinstance(v, str) and v.strip().lower() == "pm" else "notice"

    @field_validator("command_character")
    @classmethod
    def validate_command_character(cls, v: str) -> str:
        if len(v) != 1 or v.isspace():
            raise ValueError("commandCharacter must be a single non-space character")
        return v

    @field_validator("nickname", "username")
    @classmethod
    def validate_token(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError("must not contain whitespace")
        return v

    def lookup(self, key: str) -> Any:
        """Return the value stored under a camelCase alias or field name."""
        for name, info in type(self).model_fields.items():
            if key in (name, info.alias):
                return getattr(self, name)
        raise KeyError(key)
