"""Fixed-layout datagram records exchanged between coordinator and workers.

Every string travels in a fixed-width, NUL-padded field. Values that would
not fit (including their terminating NUL) are rejected with
``WireFormatError`` rather than truncated.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

from .errors import WireFormatError

MAX_CMD_LEN = 1024
MAX_ADDR_LEN = 50
MAX_MESSAGE_LEN = 256

ENCODING = "utf-8"
# Bytes that are not valid UTF-8 survive a decode/encode cycle unchanged
ERRORS = "surrogateescape"

_REQUEST = struct.Struct(f"!{MAX_CMD_LEN}s{MAX_ADDR_LEN}si")
_RESULT = struct.Struct(f"!{MAX_CMD_LEN}si{MAX_MESSAGE_LEN}s")

REQUEST_SIZE = _REQUEST.size
RESULT_SIZE = _RESULT.size


class ResultKind(Enum):
    """Classification of a command's return code."""

    SUCCESS = "success"
    EXECUTION_ERROR = "execution_error"
    SYSTEM_ERROR = "system_error"


def classify(code: int) -> tuple[ResultKind, str]:
    """Map a return code to its kind and human-readable message."""
    if code < 0:
        return ResultKind.SYSTEM_ERROR, "Error: unable to execute the command"
    if code > 0:
        return ResultKind.EXECUTION_ERROR, f"Execution error (code: {code})"
    return ResultKind.SUCCESS, "Command executed successfully"


def _pack_field(name: str, value: str, width: int) -> bytes:
    try:
        raw = value.encode(ENCODING, ERRORS)
    except UnicodeEncodeError as e:
        raise WireFormatError(f"{name} cannot be encoded: {e}") from e
    if b"\0" in raw:
        raise WireFormatError(f"{name} must not contain NUL bytes")
    if len(raw) >= width:
        raise WireFormatError(f"{name} is {len(raw)} bytes, limit is {width - 1}")
    return raw


def _unpack_field(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode(ENCODING, ERRORS)


def _check_port(port: int) -> None:
    if not 0 <= port <= 65535:
        raise WireFormatError(f"Invalid port: {port}")


@dataclass(frozen=True)
class CommandRequest:
    """One command shipped to a worker, tagged with the submitter's address."""

    command: str
    originator_host: str
    originator_port: int

    def encode(self) -> bytes:
        _check_port(self.originator_port)
        return _REQUEST.pack(
            _pack_field("command", self.command, MAX_CMD_LEN),
            _pack_field("originator_host", self.originator_host, MAX_ADDR_LEN),
            self.originator_port,
        )

    @classmethod
    def decode(cls, data: bytes) -> CommandRequest:
        if len(data) != REQUEST_SIZE:
            raise WireFormatError(
                f"Request datagram is {len(data)} bytes, expected {REQUEST_SIZE}"
            )
        command, host, port = _REQUEST.unpack(data)
        _check_port(port)
        return cls(_unpack_field(command), _unpack_field(host), port)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command, sent by a worker straight to the originator."""

    command: str
    code: int
    message: str

    @classmethod
    def from_code(cls, command: str, code: int) -> CommandResult:
        _, message = classify(code)
        return cls(command, code, message)

    @property
    def kind(self) -> ResultKind:
        return classify(self.code)[0]

    def encode(self) -> bytes:
        return _RESULT.pack(
            _pack_field("command", self.command, MAX_CMD_LEN),
            self.code,
            _pack_field("message", self.message, MAX_MESSAGE_LEN),
        )

    @classmethod
    def decode(cls, data: bytes) -> CommandResult:
        if len(data) != RESULT_SIZE:
            raise WireFormatError(
                f"Result datagram is {len(data)} bytes, expected {RESULT_SIZE}"
            )
        command, code, message = _RESULT.unpack(data)
        return cls(_unpack_field(command), code, _unpack_field(message))
