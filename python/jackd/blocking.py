"""Synchronous facade that drives :class:`JackdClient` on a background loop."""

from __future__ import annotations

import asyncio
import inspect
import threading
from typing import Any, Callable, Optional

from .client import JackdClient
from .protocol import DEFAULT_HOST, DEFAULT_PORT


class BlockingClient:
    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, *, read_size: int = 65536) -> None:
        self._client = JackdClient(host, port, read_size=read_size)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def _run(self, coro) -> Any:
        self.start()
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def connect(self) -> "BlockingClient":
        self._run(self._client.connect())
        return self

    def is_connected(self) -> bool:
        return self._client.is_connected()

    def close(self) -> None:
        if self._thread.is_alive():
            try:
                self._run(self._client.quit())
            finally:
                self._loop.call_soon_threadsafe(self._loop.stop)
                self._thread.join(timeout=5)
        if not self._thread.is_alive() and not self._loop.is_closed():
            self._loop.close()

    quit = close

    def __enter__(self) -> "BlockingClient":
        if not self.is_connected():
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __getattr__(self, name: str) -> Callable[..., Any]:
        # Mirror every coroutine command of JackdClient.
        if name.startswith("_"):
            raise AttributeError(name)
        method: Optional[Callable[..., Any]] = getattr(self._client, name, None)
        if method is None or not inspect.iscoroutinefunction(method):
            raise AttributeError(name)

        def call(*args: Any, **kwargs: Any) -> Any:
            return self._run(method(*args, **kwargs))

        call.__name__ = name
        return call
