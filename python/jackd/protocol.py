"""Wire-level helpers for the beanstalkd text protocol."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple


LOG = logging.getLogger("jackd.protocol")

CRLF = b"\r\n"
ENCODING = "ascii"
PAYLOAD_ENCODING = "utf-8"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 11300

DEFAULT_PRIORITY = 0
DEFAULT_DELAY = 0
DEFAULT_TTR = 60


class StatusCode(str, Enum):
    INSERTED = "INSERTED"
    BURIED = "BURIED"
    EXPECTED_CRLF = "EXPECTED_CRLF"
    JOB_TOO_BIG = "JOB_TOO_BIG"
    DRAINING = "DRAINING"
    USING = "USING"
    RESERVED = "RESERVED"
    DEADLINE_SOON = "DEADLINE_SOON"
    TIMED_OUT = "TIMED_OUT"
    DELETED = "DELETED"
    NOT_FOUND = "NOT_FOUND"
    RELEASED = "RELEASED"
    TOUCHED = "TOUCHED"
    WATCHING = "WATCHING"
    NOT_IGNORED = "NOT_IGNORED"
    FOUND = "FOUND"
    KICKED = "KICKED"
    PAUSED = "PAUSED"
    OK = "OK"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_FORMAT = "BAD_FORMAT"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"

    @classmethod
    def from_token(cls, token: str) -> Optional["StatusCode"]:
        try:
            return cls(token)
        except ValueError:
            return None


# Errors any command may answer with.
SHARED_ERRORS = frozenset(
    {
        StatusCode.OUT_OF_MEMORY,
        StatusCode.INTERNAL_ERROR,
        StatusCode.BAD_FORMAT,
        StatusCode.TIMED_OUT,
        StatusCode.UNKNOWN_COMMAND,
    }
)


class JackdError(Exception):
    """Base class for every error raised by the client."""


class TransportError(JackdError):
    """The underlying stream failed or was closed mid-exchange."""


class ValidationError(JackdError, ValueError):
    """A command argument was rejected before anything was written."""


class CommandError(JackdError):
    """The server answered with a recognised error status."""

    def __init__(self, code: StatusCode, response: str) -> None:
        self.code = code
        self.response = response
        super().__init__(response)


class UnexpectedResponseError(JackdError):
    """The server answered with a line the command does not understand."""

    def __init__(self, response: str) -> None:
        self.response = response
        super().__init__(f"unexpected response: {response!r}")


@dataclass(frozen=True)
class StatusLine:
    """First line of a response, split into its status token and arguments."""

    token: str
    args: Tuple[str, ...]
    raw: str

    @property
    def code(self) -> Optional[StatusCode]:
        return StatusCode.from_token(self.token)

    def arg(self, index: int) -> str:
        try:
            return self.args[index]
        except IndexError:
            raise UnexpectedResponseError(self.raw) from None

    def int_arg(self, index: int) -> int:
        value = self.arg(index)
        if not value.isdigit():
            raise UnexpectedResponseError(self.raw)
        return int(value)

    @classmethod
    def parse(cls, head: bytes) -> "StatusLine":
        raw = head.decode(ENCODING, errors="replace")
        parts = raw.split(" ")
        return cls(token=parts[0], args=tuple(part for part in parts[1:] if part), raw=raw)


def raise_for_status(line: StatusLine, extra: Iterable[StatusCode] = ()) -> None:
    """Fail with :class:`CommandError` if ``line`` carries a known error code.

    ``extra`` lists the errors specific to the command being decoded; the
    shared errors are always checked.
    """

    code = line.code
    if code is None:
        return
    if code in SHARED_ERRORS or code in extra:
        LOG.debug("Server rejected command: %s", line.raw)
        raise CommandError(code, line.raw)


def unexpected(line: StatusLine) -> UnexpectedResponseError:
    LOG.warning("Unexpected response: %r", line.raw)
    return UnexpectedResponseError(line.raw)


def require(value: Any, name: str) -> Any:
    """Reject missing or empty arguments."""

    if value is None or value == "" or value == b"":
        raise ValidationError(f"{name} is required")
    return value


def require_name(value: Any, name: str = "tube") -> str:
    require(value, name)
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    if not value.isascii():
        raise ValidationError(f"{name} must be ASCII: {value!r}")
    if any(char.isspace() for char in value):
        raise ValidationError(f"{name} must not contain whitespace: {value!r}")
    return value


def require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must not be negative, got {value}")
    return value


def require_id(value: Any) -> str:
    require(value, "job id")
    job_id = str(value)
    if not (job_id.isascii() and job_id.isdigit()):
        raise ValidationError(f"job id must be numeric, got {value!r}")
    return job_id


def canonical_payload(payload: Any) -> bytes:
    """Turn a payload into the exact bytes put on the wire."""

    require(payload, "payload")
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode(PAYLOAD_ENCODING)
    return json.dumps(payload, separators=(",", ":")).encode(PAYLOAD_ENCODING)


def command_line(verb: str, *args: Any) -> bytes:
    """Build one CRLF-terminated command line."""

    return " ".join([verb, *(str(arg) for arg in args)]).encode(ENCODING) + CRLF
