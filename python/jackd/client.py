"""Asyncio client for a beanstalkd work-queue server."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from . import commands
from .commands import Command, Job
from .config import ClientSettings
from .decoder import PendingExchange
from .protocol import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    CommandError,
    JackdError,
    TransportError,
    UnexpectedResponseError,
    command_line,
)


LOG = logging.getLogger("jackd.client")


class JackdClient:
    """One connection, one command in flight at a time.

    Callers must await each command before issuing the next; a second
    concurrent call is rejected instead of being queued.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        read_size: int = 65536,
    ) -> None:
        self.host = host
        self.port = port
        self.read_size = read_size
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._exchange: Optional[PendingExchange] = None
        self._leftover = b""

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "JackdClient":
        return cls(settings.host, settings.port, read_size=settings.read_size)

    async def connect(self) -> "JackdClient":
        try:
            reader, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as exc:
            raise TransportError(f"could not connect to {self.host}:{self.port}") from exc
        LOG.info("Connected to %s:%s", self.host, self.port)
        return self.attach(reader, writer)

    def attach(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> "JackdClient":
        """Use an already open stream pair as the transport."""

        self._reader = reader
        self._writer = writer
        self._leftover = b""
        return self

    def is_connected(self) -> bool:
        return self._writer is not None

    async def __aenter__(self) -> "JackdClient":
        if not self.is_connected():
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.quit()

    async def quit(self) -> None:
        if self._writer is None:
            return
        writer = self._writer
        try:
            await self._write(command_line("quit"))
        finally:
            self._reader = None
            self._writer = None
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                LOG.debug("Error while closing connection", exc_info=True)
            LOG.info("Disconnected from %s:%s", self.host, self.port)

    close = quit
    disconnect = quit

    async def _write(self, data: bytes) -> None:
        if self._writer is None:
            raise TransportError("client not connected")
        LOG.debug(">> %r", data)
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as exc:
            raise TransportError("write failed") from exc

    async def _read(self) -> bytes:
        assert self._reader is not None
        try:
            chunk = await self._reader.read(self.read_size)
        except OSError as exc:
            raise TransportError("read failed") from exc
        if not chunk:
            raise TransportError("connection closed by server")
        return chunk

    async def execute(self, command: Command, *args: Any, **kwargs: Any) -> Any:
        """Encode ``command``, send it and decode its response."""

        if self._exchange is not None:
            raise JackdError(f"cannot send {command.name!r}: another command is in flight")
        data = command.encode(*args, **kwargs)
        if self._writer is None:
            raise TransportError("client not connected")

        exchange = PendingExchange(command.decode, self._leftover)
        self._leftover = b""
        self._exchange = exchange
        try:
            await self._write(data)
            done = exchange.feed(b"")
            while not done:
                done = exchange.feed(await self._read())
        except (CommandError, UnexpectedResponseError):
            # The offending frame was consumed; the stream is still aligned.
            self._leftover = exchange.remainder
            raise
        except BaseException:
            self._abort(command)
            raise
        finally:
            self._exchange = None
        self._leftover = exchange.remainder
        return exchange.result

    def _abort(self, command: Command) -> None:
        """Drop a connection whose reply was only partly read."""

        LOG.warning("Dropping connection after aborted %r exchange", command.name)
        writer = self._writer
        self._reader = None
        self._writer = None
        self._leftover = b""
        if writer is not None:
            writer.close()

    # Producer commands

    async def put(
        self,
        payload: Any,
        *,
        priority: Optional[int] = None,
        delay: Optional[int] = None,
        ttr: Optional[int] = None,
    ) -> str:
        return await self.execute(commands.PUT, payload, priority=priority, delay=delay, ttr=ttr)

    async def use(self, tube: str) -> str:
        return await self.execute(commands.USE, tube)

    # Consumer commands

    async def reserve(self) -> Job:
        return await self.execute(commands.RESERVE)

    async def reserve_with_timeout(self, seconds: int) -> Job:
        return await self.execute(commands.RESERVE_WITH_TIMEOUT, seconds)

    async def delete(self, job_id: Any) -> None:
        await self.execute(commands.DELETE, job_id)

    async def release(
        self,
        job_id: Any,
        *,
        priority: Optional[int] = None,
        delay: Optional[int] = None,
    ) -> None:
        await self.execute(commands.RELEASE, job_id, priority=priority, delay=delay)

    async def bury(self, job_id: Any, *, priority: Optional[int] = None) -> None:
        await self.execute(commands.BURY, job_id, priority=priority)

    async def touch(self, job_id: Any) -> None:
        await self.execute(commands.TOUCH, job_id)

    async def watch(self, tube: str) -> str:
        return await self.execute(commands.WATCH, tube)

    async def ignore(self, tube: str) -> str:
        return await self.execute(commands.IGNORE, tube)

    # Other commands

    async def peek(self, job_id: Any) -> Job:
        return await self.execute(commands.PEEK, job_id)

    async def peek_ready(self) -> Job:
        return await self.execute(commands.PEEK_READY)

    async def peek_delayed(self) -> Job:
        return await self.execute(commands.PEEK_DELAYED)

    async def peek_buried(self) -> Job:
        return await self.execute(commands.PEEK_BURIED)

    async def kick(self, bound: int) -> None:
        await self.execute(commands.KICK, bound)

    async def kick_job(self, job_id: Any) -> None:
        await self.execute(commands.KICK_JOB, job_id)

    async def pause_tube(self, tube: str, *, delay: Optional[int] = None) -> None:
        await self.execute(commands.PAUSE_TUBE, tube, delay=delay)

    async def list_tube_used(self) -> str:
        return await self.execute(commands.LIST_TUBE_USED)

    get_current_tube = list_tube_used

    async def execute_command(self, line: str) -> str:
        """Send a raw command line and return the raw status line."""

        return await self.execute(commands.RAW, line)

    async def execute_multipart_command(self, line: str) -> bytes:
        """Send a raw command line whose reply carries a payload; return the payload."""

        return await self.execute(commands.RAW_MULTIPART, line)
