"""Line codec: outbound command builder and inbound line decoder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..constants import LINE_ENCODING, MAX_LINE_BYTES, NUL_LF_TERMINATOR
from ..errors.internal import LineEncodingError

_FORBIDDEN = ("\0", "\r", "\n")
CTCP_DELIMITER = "\x01"


class LineType(Enum):
    CHANNEL_MESSAGE = "chanmsg"
    PRIVATE_MESSAGE = "privmsg"
    NOTICE = "notice"
    SERVER_NUMERIC = "numeric"
    PING = "ping"
    OTHER = "other"


@dataclass(frozen=True)
class OutboundLine:
    """One protocol command: keyword, middle params and optional trailing text.

    Middle params are single tokens; free text containing spaces must go in
    ``trailing``, which is always sent colon-prefixed. Arguments carrying
    NUL/CR/LF are rejected so a caller can never inject a second line.
    """

    command: str
    params: tuple[str, ...] = ()
    trailing: str | None = None

    def __post_init__(self) -> None:
        if not self.command or " " in self.command:
            raise LineEncodingError(f"Invalid command keyword {self.command!r}")
        for value in (self.command, *self.params, self.trailing or ""):
            if any(ch in value for ch in _FORBIDDEN):
                raise LineEncodingError(
                    f"Terminator byte in argument of {self.command}",
                    data={"command": self.command},
                )
        for param in self.params:
            if not param or " " in param or param.startswith(":"):
                raise LineEncodingError(
                    f"Middle parameter {param!r} must be a single token; "
                    "pass free text as the trailing parameter",
                    data={"command": self.command},
                )

    def render(self) -> str:
        parts = [self.command, *self.params]
        if self.trailing is not None:
            parts.append(f":{self.trailing}")
        return " ".join(parts)

    def encode(self, terminator: bytes = NUL_LF_TERMINATOR) -> bytes:
        return self.render().encode(LINE_ENCODING) + terminator

    def __str__(self) -> str:
        return self.render()


def build_line(command: str, *params: str, trailing: str | None = None) -> OutboundLine:
    return OutboundLine(command.upper(), tuple(params), trailing)


def ctcp(tag: str, text: str) -> str:
    """Wrap ``text`` as an in-band CTCP payload (e.g. ACTION)."""
    return f"{CTCP_DELIMITER}{tag} {text}{CTCP_DELIMITER}"


@dataclass(frozen=True)
class ReceivedLine:
    raw: str
    type: LineType
    command: str | None
    sender_nick: str | None = None
    sender_ident: str | None = None
    sender_host: str | None = None
    channel: str | None = None
    target: str | None = None
    message: str = ""
    params: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_ctcp_action(self) -> bool:
        return self.message.startswith(f"{CTCP_DELIMITER}ACTION ")


def _split_prefix(prefix: str) -> tuple[str | None, str | None, str | None]:
    """Split ``nick!ident@host``; server names (no ``!``) give no nick."""
    if "!" not in prefix:
        return None, None, prefix or None
    nick, _, rest = prefix.partition("!")
    ident, _, host = rest.partition("@")
    return nick or None, ident or None, host or None


def strip_terminator(chunk: bytes | str) -> str:
    if isinstance(chunk, bytes):
        chunk = chunk[:MAX_LINE_BYTES].decode(LINE_ENCODING, errors="replace")
    return chunk.rstrip("\r\n\0")


def decode_line(chunk: bytes | str) -> ReceivedLine:
    """Classify one inbound chunk.

    Never raises on malformed input: anything that cannot be parsed is
    returned as ``LineType.OTHER`` with the raw text preserved.
    """
    raw = strip_terminator(chunk)

    if raw.startswith("PING"):
        payload = raw[4:].strip()
        if payload.startswith(":"):
            payload = payload[1:]
        return ReceivedLine(raw=raw, type=LineType.PING, command="PING", message=payload)

    rest = raw
    nick = ident = host = None
    if rest.startswith(":"):
        prefix, _, rest = rest[1:].partition(" ")
        nick, ident, host = _split_prefix(prefix)

    trailing: str | None = None
    if " :" in rest:
        rest, trailing = rest.split(" :", 1)
    elif rest.startswith(":"):
        rest, trailing = "", rest[1:]
    tokens = rest.split()
    if not tokens:
        return ReceivedLine(raw=raw, type=LineType.OTHER, command=None, sender_nick=nick,
                            sender_ident=ident, sender_host=host, message=trailing or "")

    command = tokens[0].upper()
    middle = tuple(tokens[1:])
    target = middle[0] if middle else None
    message = trailing if trailing is not None else " ".join(middle[1:])
    channel = target if target and target.startswith("#") else None

    if command == "PING":
        line_type = LineType.PING
    elif command == "PRIVMSG":
        line_type = LineType.CHANNEL_MESSAGE if channel else LineType.PRIVATE_MESSAGE
    elif command == "NOTICE":
        line_type = LineType.NOTICE
    elif command.isdigit() and len(command) == 3:
        line_type = LineType.SERVER_NUMERIC
        # Numerics address us first; the channel, when any, follows.
        channel = next((p for p in middle[1:] if p.startswith("#")), None)
    else:
        line_type = LineType.OTHER
        if channel is None and trailing and trailing.startswith("#") and " " not in trailing:
            channel = trailing  # e.g. ":nick!u@h JOIN :#chan"

    return ReceivedLine(
        raw=raw,
        type=line_type,
        command=command,
        sender_nick=nick,
        sender_ident=ident,
        sender_host=host,
        channel=channel,
        target=target,
        message=message,
        params=middle,
    )


__all__ = [
    "LineType",
    "OutboundLine",
    "ReceivedLine",
    "build_line",
    "ctcp",
    "decode_line",
    "strip_terminator",
]
