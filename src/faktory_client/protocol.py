"""Command/reply framing for the Faktory wire protocol.

Commands are single CRLF-terminated lines, a verb optionally followed by one space and a payload:

    PUSH {"jid":"...","jobtype":"echo",...}
    FETCH default
    INFO

Replies are one of:

    +OK                  status line
    +HI {"v":2}          status line with text
    -ERR Unknown worker  error line
    $12                  bulk reply: declared length, then exactly 12 bytes and CRLF
    $-1                  bulk reply with nothing available
"""

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import BinaryIO

from faktory_client.errors import ProtocolError, ServerError, TransportError

CRLF = b"\r\n"
OK = "OK"


class ReplyKind(StrEnum):
    """Shape of a decoded server reply."""

    STATUS = "status"
    BULK = "bulk"
    NIL = "nil"


@dataclass(frozen=True)
class Reply:
    """Decoded server reply."""

    kind: ReplyKind
    text: str = ""  # status text without the leading '+'
    payload: bytes = b""

    @property
    def is_ok(self) -> bool:
        """Check if this is the plain ``+OK`` status."""
        return self.kind is ReplyKind.STATUS and self.text == OK

    def describe(self) -> str:
        """Render the reply back to its wire form, for error messages."""
        match self.kind:
            case ReplyKind.STATUS:
                return f"+{self.text}"
            case ReplyKind.NIL:
                return "$-1"
            case _:
                return f"${len(self.payload)}"


def encode_command(verb: str, payload: object = None) -> bytes:
    """Serialize a command to a CRLF-terminated line.

    Args:
        verb: Command verb, e.g. ``PUSH``.
        payload: None for a bare verb, a str sent verbatim, or any JSON-serializable value.

    """
    if payload is None:
        line = verb
    elif isinstance(payload, str):
        line = f"{verb} {payload}"
    else:
        line = f"{verb} {json.dumps(payload, separators=(',', ':'))}"
    return line.encode() + CRLF


def read_reply(stream: BinaryIO) -> Reply:
    """Read exactly one reply from a buffered binary stream.

    Raises:
        TransportError: Connection closed before a full line arrived.
        ServerError: Server sent an error line.
        ProtocolError: Line or bulk body does not match the reply grammar.

    """
    line = stream.readline()
    if not line:
        raise TransportError("Connection closed by server.")
    if not line.endswith(b"\n"):
        raise TransportError("Connection closed mid-line.", raw=line.decode(errors="replace"))
    text = line.rstrip(CRLF).decode(errors="replace")

    if text.startswith("+"):
        return Reply(ReplyKind.STATUS, text=text[1:])
    if text.startswith("-"):
        raise ServerError(f"Server error: {text[1:]}", raw=text)
    if text.startswith("$"):
        return _read_bulk(stream, text)
    raise ProtocolError(f"Unexpected reply: {text!r}", raw=text)


def _read_bulk(stream: BinaryIO, header: str) -> Reply:
    """Read the body of a bulk reply whose ``$N`` header was already consumed."""
    try:
        length = int(header[1:])
    except ValueError:
        raise ProtocolError(f"Malformed bulk length: {header!r}", raw=header) from None
    if length < 0:
        return Reply(ReplyKind.NIL)

    body = stream.read(length + len(CRLF))
    if body is None or len(body) < length + len(CRLF):
        raise ProtocolError(f"Truncated bulk reply: expected {length} bytes.", raw=header)
    if not body.endswith(CRLF):
        raise ProtocolError("Bulk reply is not CRLF-terminated.", raw=header)
    return Reply(ReplyKind.BULK, payload=body[:length])


def expect_ok(reply: Reply) -> None:
    """Require the plain ``+OK`` status.

    Raises:
        ProtocolError: Any other reply.

    """
    if not reply.is_ok:
        raw = reply.describe()
        raise ProtocolError(f"Expected +OK, got {raw!r}", raw=raw)


def expect_bulk(reply: Reply) -> bytes | None:
    """Return the bulk payload, or None when the server has nothing to send.

    Raises:
        ProtocolError: Reply is a status line.

    """
    match reply.kind:
        case ReplyKind.BULK:
            return reply.payload
        case ReplyKind.NIL:
            return None
        case _:
            raw = reply.describe()
            raise ProtocolError(f"Expected bulk reply, got {raw!r}", raw=raw)
