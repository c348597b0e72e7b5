"""
AT-command protocol: request parsing and response encoding.

Requests (ASCII, one per message):
    quit
    insert+<int>+<bounds>
    AT+REG<N>
    AT+REG<N>=?
    AT+REG<N>=<int>
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final, Union

QUIT_PREFIX: Final[str] = "quit"
INSERT_PREFIX: Final[str] = "insert"
REGISTER_PREFIX: Final[str] = "AT+REG"
INSERT_SEP: Final[str] = "+"
ASSIGN_SEP: Final[str] = "="
QUERY_TOKEN: Final[str] = "?"

INT_MIN: Final[int] = -(2 ** 31)
INT_MAX: Final[int] = 2 ** 31 - 1

_ATOI_RE = re.compile(r"\s*([+-]?)0*(\d+)")


def atoi(token: str) -> int:
    """
    Lenient integer conversion: optional leading whitespace and sign, then the
    longest run of digits. Returns 0 when no digits lead the token.
    Results saturate at the 32-bit int range.
    """
    m = _ATOI_RE.match(token)
    if m is None:
        return 0
    sign, digits = m.groups()
    # more than 10 significant digits is out of range whatever they are
    value = INT_MAX + 1 if len(digits) > 10 else int(digits)
    if sign == "-":
        value = -value
    return max(INT_MIN, min(INT_MAX, value))


@dataclass(frozen=True)
class Read:
    register: str


@dataclass(frozen=True)
class ReadBounds:
    register: str


@dataclass(frozen=True)
class Write:
    register: str
    value: int


@dataclass(frozen=True)
class Insert:
    value: int
    bounds: str


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Unrecognized:
    raw: str


Command = Union[Read, ReadBounds, Write, Insert, Quit, Unrecognized]


def clean(raw: Union[str, bytes]) -> str:
    """Decode a received request and strip NUL padding and surrounding whitespace."""
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("ascii", errors="replace")
    return raw.replace("\x00", "").strip()


def _parse_insert(request: str) -> Command:
    # empty pieces are dropped, so "insert++5+0-10" reads like "insert+5+0-10"
    pieces = [p for p in request.split(INSERT_SEP) if p]
    if len(pieces) < 3:
        return Unrecognized(request)
    return Insert(value=atoi(pieces[1]), bounds=pieces[2])


def _parse_register(request: str) -> Command:
    head, _, tail = request.partition(ASSIGN_SEP)
    # "AT+REG1+x" names REG1: the id is the second "+" piece
    pieces = [p for p in head.split(INSERT_SEP) if p]
    reg_id = pieces[1] if len(pieces) > 1 else ""
    tokens = [t for t in tail.split(ASSIGN_SEP) if t]
    if not tokens:
        return Read(reg_id)
    if tokens[0] == QUERY_TOKEN:
        return ReadBounds(reg_id)
    return Write(reg_id, atoi(tokens[0]))


def parse(raw: Union[str, bytes]) -> Command:
    """
    Convert a raw request into a Command. Never raises.

    The insert bounds token is kept verbatim; a malformed one only shows up
    later as rejected writes. A non-numeric write value is read as 0.
    """
    request = clean(raw)
    if request.startswith(INSERT_PREFIX):
        return _parse_insert(request)
    if request.startswith(QUIT_PREFIX):
        return Quit()
    if request.startswith(REGISTER_PREFIX):
        return _parse_register(request)
    return Unrecognized(request)


class ErrorKind(Enum):
    """Error responses and their wire text."""
    INVALID_REGISTER = "INVALID REGISTER"
    INVALID_INPUT = "InvalidInput"
    INVALID_COMMAND = "INVALID AT-COMMAND"


TERMINATOR: Final[str] = "\n"
OK_TEXT: Final[str] = "OK"
INSERT_ACK_TEXT: Final[str] = "INSERTION COMPLETE"
QUIT_ACK_TEXT: Final[str] = "TERMINATING"


@dataclass(frozen=True)
class Value:
    value: int

    def text(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Bounds:
    bounds: str

    def text(self) -> str:
        return self.bounds


@dataclass(frozen=True)
class Ack:
    def text(self) -> str:
        return OK_TEXT


@dataclass(frozen=True)
class InsertAck:
    def text(self) -> str:
        return INSERT_ACK_TEXT


@dataclass(frozen=True)
class QuitAck:
    def text(self) -> str:
        return QUIT_ACK_TEXT


@dataclass(frozen=True)
class Error:
    kind: ErrorKind

    def text(self) -> str:
        return self.kind.value


Response = Union[Value, Bounds, Ack, InsertAck, QuitAck, Error]


def encode(response: Response) -> bytes:
    """Serialize a response to its newline-terminated ASCII wire form."""
    return (response.text() + TERMINATOR).encode("ascii", errors="replace")
