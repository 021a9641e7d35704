"""Incremental response decoding for a single command exchange."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .protocol import CRLF, StatusLine, UnexpectedResponseError


LOG = logging.getLogger("jackd.decoder")


@dataclass(frozen=True)
class Terminal:
    """The exchange is finished and resolved to ``value``."""

    value: Any = None


@dataclass(frozen=True)
class AwaitPayload:
    """The status line announced ``length`` payload bytes to hand to ``resume``."""

    length: int
    resume: Callable[[bytes], Any]


Step = Union[Terminal, AwaitPayload]
LineDecoder = Callable[[StatusLine], Step]


class PendingExchange:
    """Decode state owned by one in-flight command.

    Chunks are fed in arrival order with no alignment to protocol frames.
    Once the response is complete, :attr:`remainder` holds whatever bytes
    arrived past the end of it.
    """

    def __init__(self, decode: LineDecoder, leftover: bytes = b"") -> None:
        self._decode = decode
        self._buffer = bytearray(leftover)
        self._awaiting: Optional[AwaitPayload] = None
        self._done = False
        self.result: Any = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def awaiting_payload(self) -> Optional[int]:
        return self._awaiting.length if self._awaiting else None

    @property
    def remainder(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> bool:
        """Buffer ``chunk`` and decode as far as possible.

        Returns ``True`` once the exchange resolved. Errors raised by the
        command decoder propagate after the offending frame is consumed.
        """

        if self._done:
            raise RuntimeError("exchange already resolved")
        self._buffer.extend(chunk)

        while not self._done:
            if self._awaiting is None:
                if not self._read_status_line():
                    return False
            elif not self._read_payload():
                return False
        return True

    def _read_status_line(self) -> bool:
        index = self._buffer.find(CRLF)
        if index < 0:
            return False

        head = bytes(self._buffer[:index])
        tail = bytes(self._buffer[index + len(CRLF):])
        self._buffer.clear()
        self._buffer.extend(tail)

        line = StatusLine.parse(head)
        LOG.debug("<< %s", line.raw)
        self._apply(self._decode(line))
        return True

    def _read_payload(self) -> bool:
        assert self._awaiting is not None
        length = self._awaiting.length
        frame_end = length + len(CRLF)
        if len(self._buffer) < frame_end:
            return False

        payload = bytes(self._buffer[:length])
        terminator = bytes(self._buffer[length:frame_end])
        del self._buffer[:frame_end]

        if terminator != CRLF:
            raise UnexpectedResponseError(
                f"payload of {length} bytes not followed by CRLF (got {terminator!r})"
            )

        LOG.debug("<< payload (%d bytes)", length)
        resume = self._awaiting.resume
        self._awaiting = None
        self._apply(Terminal(resume(payload)))
        return True

    def _apply(self, step: Step) -> None:
        if isinstance(step, Terminal):
            self.result = step.value
            self._done = True
        elif isinstance(step, AwaitPayload):
            if step.length < 0:
                raise UnexpectedResponseError(f"negative payload length {step.length}")
            self._awaiting = step
        else:
            raise TypeError(f"decoder returned {step!r}, expected Terminal or AwaitPayload")
