from __future__ import annotations

import allure
import pytest

from jackd import commands
from jackd.commands import CATALOG, Job
from jackd.decoder import PendingExchange
from jackd.protocol import (
    CommandError,
    StatusCode,
    UnexpectedResponseError,
    ValidationError,
)

pytestmark = [
    allure.epic("Protocol Engine"),
    allure.feature("Command Catalog"),
]


def _decode(command, response: bytes):
    exchange = PendingExchange(command.decode)
    assert exchange.feed(response) is True
    return exchange.result


def test_put_encodes_defaults() -> None:
    assert commands.PUT.encode("hello") == b"put 0 0 60 5\r\nhello\r\n"


def test_put_encodes_explicit_arguments() -> None:
    wire = commands.PUT.encode("hi", priority=10, delay=5, ttr=120)
    assert wire == b"put 10 5 120 2\r\nhi\r\n"


def test_put_declares_encoded_byte_length() -> None:
    wire = commands.PUT.encode("héllo")
    assert wire.startswith(b"put 0 0 60 6\r\n")
    assert wire.endswith("héllo".encode("utf-8") + b"\r\n")


def test_put_serialises_structured_payload_as_json() -> None:
    wire = commands.PUT.encode({"task": "resize", "size": 3})
    body = b'{"task":"resize","size":3}'
    assert wire == b"put 0 0 60 %d\r\n%s\r\n" % (len(body), body)


def test_put_passes_bytes_through() -> None:
    assert commands.PUT.encode(b"\x00\xff") == b"put 0 0 60 2\r\n\x00\xff\r\n"


@pytest.mark.parametrize("payload", [None, "", b""])
def test_put_requires_payload(payload) -> None:
    with pytest.raises(ValidationError):
        commands.PUT.encode(payload)


def test_put_rejects_negative_priority() -> None:
    with pytest.raises(ValidationError, match="priority"):
        commands.PUT.encode("x", priority=-1)


@pytest.mark.parametrize(
    ("command", "args", "kwargs", "expected"),
    [
        (commands.USE, ("emails",), {}, b"use emails\r\n"),
        (commands.RESERVE, (), {}, b"reserve\r\n"),
        (commands.RESERVE_WITH_TIMEOUT, (5,), {}, b"reserve-with-timeout 5\r\n"),
        (commands.DELETE, ("42",), {}, b"delete 42\r\n"),
        (commands.RELEASE, (42,), {}, b"release 42 0 0\r\n"),
        (commands.RELEASE, ("42",), {"priority": 3, "delay": 9}, b"release 42 3 9\r\n"),
        (commands.BURY, ("42",), {}, b"bury 42 0\r\n"),
        (commands.TOUCH, ("42",), {}, b"touch 42\r\n"),
        (commands.WATCH, ("emails",), {}, b"watch emails\r\n"),
        (commands.IGNORE, ("default",), {}, b"ignore default\r\n"),
        (commands.PEEK, ("42",), {}, b"peek 42\r\n"),
        (commands.PEEK_READY, (), {}, b"peek-ready\r\n"),
        (commands.PEEK_DELAYED, (), {}, b"peek-delayed\r\n"),
        (commands.PEEK_BURIED, (), {}, b"peek-buried\r\n"),
        (commands.KICK, (10,), {}, b"kick 10\r\n"),
        (commands.KICK_JOB, ("42",), {}, b"kick-job 42\r\n"),
        (commands.PAUSE_TUBE, ("emails",), {}, b"pause-tube emails 0\r\n"),
        (commands.PAUSE_TUBE, ("emails",), {"delay": 30}, b"pause-tube emails 30\r\n"),
        (commands.LIST_TUBE_USED, (), {}, b"list-tube-used\r\n"),
        (commands.RAW, ("stats-tube default",), {}, b"stats-tube default\r\n"),
    ],
)
def test_command_lines(command, args, kwargs, expected) -> None:
    assert command.encode(*args, **kwargs) == expected


@pytest.mark.parametrize(
    ("command", "args"),
    [
        (commands.DELETE, (None,)),
        (commands.DELETE, ("",)),
        (commands.DELETE, ("abc",)),
        (commands.DELETE, ("\u0661\u0662",)),
        (commands.PEEK, ("\uff17",)),
        (commands.TOUCH, (None,)),
        (commands.PEEK, ("",)),
        (commands.USE, ("",)),
        (commands.WATCH, (None,)),
        (commands.WATCH, ("two words",)),
        (commands.IGNORE, ("bad\r\nput",)),
        (commands.USE, ("t\u00fcbe",)),
        (commands.KICK, (0,)),
        (commands.KICK, (None,)),
        (commands.RESERVE_WITH_TIMEOUT, (-1,)),
        (commands.RAW, ("",)),
        (commands.RAW, ("stats\r\nquit",)),
        (commands.RAW, ("stats-tube t\u00fcbe",)),
    ],
)
def test_missing_or_malformed_arguments_fail_before_encoding(command, args) -> None:
    with pytest.raises(ValidationError):
        command.encode(*args)


@pytest.mark.parametrize(
    ("command", "response", "expected"),
    [
        (commands.PUT, b"INSERTED 42\r\n", "42"),
        (commands.USE, b"USING emails\r\n", "emails"),
        (commands.RESERVE, b"RESERVED 42 5\r\nhello\r\n", Job(id="42", body=b"hello")),
        (commands.RESERVE_WITH_TIMEOUT, b"RESERVED 1 2\r\nhi\r\n", Job(id="1", body=b"hi")),
        (commands.DELETE, b"DELETED\r\n", None),
        (commands.RELEASE, b"RELEASED\r\n", None),
        (commands.BURY, b"BURIED\r\n", None),
        (commands.TOUCH, b"TOUCHED\r\n", None),
        (commands.WATCH, b"WATCHING 3\r\n", "3"),
        (commands.IGNORE, b"WATCHING 1\r\n", "1"),
        (commands.PEEK, b"FOUND 42 5\r\nhello\r\n", Job(id="42", body=b"hello")),
        (commands.PEEK_READY, b"FOUND 7 1\r\nx\r\n", Job(id="7", body=b"x")),
        (commands.PEEK_DELAYED, b"FOUND 8 1\r\ny\r\n", Job(id="8", body=b"y")),
        (commands.PEEK_BURIED, b"FOUND 9 1\r\nz\r\n", Job(id="9", body=b"z")),
        (commands.KICK, b"KICKED 4\r\n", None),
        (commands.KICK_JOB, b"KICKED\r\n", None),
        (commands.PAUSE_TUBE, b"PAUSED\r\n", None),
        (commands.LIST_TUBE_USED, b"USING default\r\n", "default"),
        (commands.RAW, b"OK 12\r\n", "OK 12"),
        (commands.RAW_MULTIPART, b"OK 6\r\n---\na\n\r\n", b"---\na\n"),
    ],
)
def test_success_responses(command, response, expected) -> None:
    assert _decode(command, response) == expected


@pytest.mark.parametrize("command", list(CATALOG.values()), ids=list(CATALOG))
@pytest.mark.parametrize(
    "token",
    ["OUT_OF_MEMORY", "INTERNAL_ERROR", "BAD_FORMAT", "UNKNOWN_COMMAND", "TIMED_OUT"],
)
def test_shared_errors_fail_every_command(command, token) -> None:
    with pytest.raises(CommandError) as excinfo:
        _decode(command, token.encode() + b"\r\n")

    assert excinfo.value.code is StatusCode(token)
    assert excinfo.value.response == token


def test_buried_is_success_for_bury_only() -> None:
    assert _decode(commands.BURY, b"BURIED\r\n") is None

    with pytest.raises(CommandError) as put_error:
        _decode(commands.PUT, b"BURIED 42\r\n")
    assert put_error.value.code is StatusCode.BURIED
    assert put_error.value.response == "BURIED 42"

    with pytest.raises(CommandError) as release_error:
        _decode(commands.RELEASE, b"BURIED\r\n")
    assert release_error.value.code is StatusCode.BURIED


@pytest.mark.parametrize(
    ("command", "response", "code"),
    [
        (commands.PUT, b"EXPECTED_CRLF\r\n", StatusCode.EXPECTED_CRLF),
        (commands.PUT, b"JOB_TOO_BIG\r\n", StatusCode.JOB_TOO_BIG),
        (commands.PUT, b"DRAINING\r\n", StatusCode.DRAINING),
        (commands.RESERVE, b"DEADLINE_SOON\r\n", StatusCode.DEADLINE_SOON),
        (commands.RESERVE_WITH_TIMEOUT, b"TIMED_OUT\r\n", StatusCode.TIMED_OUT),
        (commands.DELETE, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.RELEASE, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.BURY, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.TOUCH, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.IGNORE, b"NOT_IGNORED\r\n", StatusCode.NOT_IGNORED),
        (commands.PEEK, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.PEEK_READY, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.KICK_JOB, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
        (commands.PAUSE_TUBE, b"NOT_FOUND\r\n", StatusCode.NOT_FOUND),
    ],
)
def test_command_specific_errors(command, response, code) -> None:
    with pytest.raises(CommandError) as excinfo:
        _decode(command, response)
    assert excinfo.value.code is code


@pytest.mark.parametrize(
    ("command", "response"),
    [
        (commands.PUT, b"HELLO 1\r\n"),
        (commands.PUT, b"USING default\r\n"),
        (commands.DELETE, b"TOUCHED\r\n"),
        (commands.WATCH, b"NOT_IGNORED\r\n"),
        (commands.KICK, b"NOT_FOUND\r\n"),
        (commands.USE, b"USING\r\n"),
        (commands.RESERVE, b"RESERVED 42 five\r\n"),
    ],
)
def test_unrecognised_responses_carry_the_literal_line(command, response) -> None:
    with pytest.raises(UnexpectedResponseError) as excinfo:
        _decode(command, response)
    assert excinfo.value.response == response[:-2].decode()


def test_job_json_body() -> None:
    job = _decode(commands.RESERVE, b'RESERVED 5 8\r\n{"a": 1}\r\n')
    assert job.json() == {"a": 1}


def test_catalog_names_are_wire_verbs() -> None:
    assert set(CATALOG) == {
        "put",
        "use",
        "reserve",
        "reserve-with-timeout",
        "delete",
        "release",
        "bury",
        "touch",
        "watch",
        "ignore",
        "peek",
        "peek-ready",
        "peek-delayed",
        "peek-buried",
        "kick",
        "kick-job",
        "pause-tube",
        "list-tube-used",
    }
