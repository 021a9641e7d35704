"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from jackd.client import JackdClient


class ScriptedReader:
    """Stands in for ``asyncio.StreamReader``; hands out queued chunks in order."""

    def __init__(self) -> None:
        self.chunks: List[bytes] = []
        self.reads = 0

    def push(self, *chunks: bytes) -> None:
        self.chunks.extend(chunks)

    async def read(self, n: int = -1) -> bytes:
        self.reads += 1
        if not self.chunks:
            return b""
        return self.chunks.pop(0)


class RecordingWriter:
    """Stands in for ``asyncio.StreamWriter``; records everything written."""

    def __init__(self) -> None:
        self.data = bytearray()
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


@dataclass
class Wire:
    client: JackdClient
    reader: ScriptedReader = field(default_factory=ScriptedReader)
    writer: RecordingWriter = field(default_factory=RecordingWriter)
    read_size: Optional[int] = None


@pytest.fixture()
def wire() -> Wire:
    reader = ScriptedReader()
    writer = RecordingWriter()
    client = JackdClient().attach(reader, writer)
    return Wire(client=client, reader=reader, writer=writer)
