"""Catalog of beanstalkd commands: how each one is encoded and decoded."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .decoder import AwaitPayload, LineDecoder, Step, Terminal
from .protocol import (
    DEFAULT_DELAY,
    DEFAULT_PRIORITY,
    DEFAULT_TTR,
    CRLF,
    PAYLOAD_ENCODING,
    StatusCode,
    StatusLine,
    ValidationError,
    canonical_payload,
    command_line,
    raise_for_status,
    require,
    require_id,
    require_int,
    require_name,
    unexpected,
)


@dataclass(frozen=True)
class Job:
    id: str
    body: bytes

    @property
    def payload(self) -> str:
        return self.body.decode(PAYLOAD_ENCODING)

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass(frozen=True)
class Command:
    """A protocol verb paired with its response contract."""

    name: str
    encode: Callable[..., bytes]
    decode: LineDecoder


# Decoder building blocks


def _void(success: StatusCode, errors: Iterable[StatusCode] = ()) -> LineDecoder:
    errors = tuple(errors)

    def decode(line: StatusLine) -> Step:
        raise_for_status(line, errors)
        if line.code is success:
            return Terminal(None)
        raise unexpected(line)

    return decode


def _first_arg(success: StatusCode, errors: Iterable[StatusCode] = ()) -> LineDecoder:
    errors = tuple(errors)

    def decode(line: StatusLine) -> Step:
        raise_for_status(line, errors)
        if line.code is success:
            return Terminal(line.arg(0))
        raise unexpected(line)

    return decode


def _job(success: StatusCode, errors: Iterable[StatusCode] = ()) -> LineDecoder:
    errors = tuple(errors)

    def decode(line: StatusLine) -> Step:
        raise_for_status(line, errors)
        if line.code is success:
            job_id = line.arg(0)
            return AwaitPayload(line.int_arg(1), lambda body: Job(id=job_id, body=body))
        raise unexpected(line)

    return decode


def _raw_line(line: StatusLine) -> Step:
    raise_for_status(line)
    return Terminal(line.raw)


def _raw_payload(line: StatusLine) -> Step:
    # Any two-phase reply ends with the byte count: RESERVED/FOUND/OK.
    raise_for_status(line, (StatusCode.NOT_FOUND, StatusCode.DEADLINE_SOON))
    if not line.args:
        raise unexpected(line)
    return AwaitPayload(line.int_arg(len(line.args) - 1), lambda body: body)


# Encoders


def encode_put(
    payload: Any,
    priority: Optional[int] = None,
    delay: Optional[int] = None,
    ttr: Optional[int] = None,
) -> bytes:
    body = canonical_payload(payload)
    header = command_line(
        "put",
        require_int(DEFAULT_PRIORITY if priority is None else priority, "priority"),
        require_int(DEFAULT_DELAY if delay is None else delay, "delay"),
        require_int(DEFAULT_TTR if ttr is None else ttr, "ttr"),
        len(body),
    )
    return header + body + CRLF


def encode_use(tube: str) -> bytes:
    return command_line("use", require_name(tube))


def encode_reserve() -> bytes:
    return command_line("reserve")


def encode_reserve_with_timeout(seconds: int) -> bytes:
    return command_line("reserve-with-timeout", require_int(seconds, "timeout"))


def encode_delete(job_id: Any) -> bytes:
    return command_line("delete", require_id(job_id))


def encode_release(job_id: Any, priority: Optional[int] = None, delay: Optional[int] = None) -> bytes:
    return command_line(
        "release",
        require_id(job_id),
        require_int(DEFAULT_PRIORITY if priority is None else priority, "priority"),
        require_int(DEFAULT_DELAY if delay is None else delay, "delay"),
    )


def encode_bury(job_id: Any, priority: Optional[int] = None) -> bytes:
    return command_line(
        "bury",
        require_id(job_id),
        require_int(DEFAULT_PRIORITY if priority is None else priority, "priority"),
    )


def encode_touch(job_id: Any) -> bytes:
    return command_line("touch", require_id(job_id))


def encode_watch(tube: str) -> bytes:
    return command_line("watch", require_name(tube))


def encode_ignore(tube: str) -> bytes:
    return command_line("ignore", require_name(tube))


def encode_peek(job_id: Any) -> bytes:
    return command_line("peek", require_id(job_id))


def encode_kick(bound: int) -> bytes:
    if require_int(bound, "bound") < 1:
        raise ValidationError("bound must be at least 1")
    return command_line("kick", bound)


def encode_kick_job(job_id: Any) -> bytes:
    return command_line("kick-job", require_id(job_id))


def encode_pause_tube(tube: str, delay: Optional[int] = None) -> bytes:
    return command_line(
        "pause-tube",
        require_name(tube),
        require_int(DEFAULT_DELAY if delay is None else delay, "delay"),
    )


def encode_raw(line: str) -> bytes:
    require(line, "command")
    if "\r" in line or "\n" in line:
        raise ValidationError("raw command must be a single line")
    if not line.isascii():
        raise ValidationError(f"raw command must be ASCII: {line!r}")
    return command_line(line)


def _fixed(verb: str) -> Callable[[], bytes]:
    def encode() -> bytes:
        return command_line(verb)

    return encode


# Catalog

PUT = Command(
    "put",
    encode_put,
    _first_arg(
        StatusCode.INSERTED,
        (StatusCode.BURIED, StatusCode.EXPECTED_CRLF, StatusCode.JOB_TOO_BIG, StatusCode.DRAINING),
    ),
)
USE = Command("use", encode_use, _first_arg(StatusCode.USING))

_RESERVE_ERRORS = (StatusCode.DEADLINE_SOON, StatusCode.TIMED_OUT)
RESERVE = Command("reserve", encode_reserve, _job(StatusCode.RESERVED, _RESERVE_ERRORS))
RESERVE_WITH_TIMEOUT = Command(
    "reserve-with-timeout",
    encode_reserve_with_timeout,
    _job(StatusCode.RESERVED, _RESERVE_ERRORS),
)

DELETE = Command("delete", encode_delete, _void(StatusCode.DELETED, (StatusCode.NOT_FOUND,)))
RELEASE = Command(
    "release",
    encode_release,
    _void(StatusCode.RELEASED, (StatusCode.BURIED, StatusCode.NOT_FOUND)),
)
BURY = Command("bury", encode_bury, _void(StatusCode.BURIED, (StatusCode.NOT_FOUND,)))
TOUCH = Command("touch", encode_touch, _void(StatusCode.TOUCHED, (StatusCode.NOT_FOUND,)))

WATCH = Command("watch", encode_watch, _first_arg(StatusCode.WATCHING))
IGNORE = Command("ignore", encode_ignore, _first_arg(StatusCode.WATCHING, (StatusCode.NOT_IGNORED,)))

_PEEK = _job(StatusCode.FOUND, (StatusCode.NOT_FOUND,))
PEEK = Command("peek", encode_peek, _PEEK)
PEEK_READY = Command("peek-ready", _fixed("peek-ready"), _PEEK)
PEEK_DELAYED = Command("peek-delayed", _fixed("peek-delayed"), _PEEK)
PEEK_BURIED = Command("peek-buried", _fixed("peek-buried"), _PEEK)

KICK = Command("kick", encode_kick, _void(StatusCode.KICKED))
KICK_JOB = Command("kick-job", encode_kick_job, _void(StatusCode.KICKED, (StatusCode.NOT_FOUND,)))
PAUSE_TUBE = Command("pause-tube", encode_pause_tube, _void(StatusCode.PAUSED, (StatusCode.NOT_FOUND,)))
LIST_TUBE_USED = Command(
    "list-tube-used",
    _fixed("list-tube-used"),
    _first_arg(StatusCode.USING, (StatusCode.NOT_FOUND,)),
)

RAW = Command("raw", encode_raw, _raw_line)
RAW_MULTIPART = Command("raw-multipart", encode_raw, _raw_payload)

CATALOG = {
    command.name: command
    for command in (
        PUT,
        USE,
        RESERVE,
        RESERVE_WITH_TIMEOUT,
        DELETE,
        RELEASE,
        BURY,
        TOUCH,
        WATCH,
        IGNORE,
        PEEK,
        PEEK_READY,
        PEEK_DELAYED,
        PEEK_BURIED,
        KICK,
        KICK_JOB,
        PAUSE_TUBE,
        LIST_TUBE_USED,
    )
}
