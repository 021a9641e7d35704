"""Runtime configuration for the client and command line tool."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .protocol import DEFAULT_HOST, DEFAULT_PORT


@dataclass(slots=True)
class ClientSettings:
    """Where to connect and how much to read per socket call."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    read_size: int = 65536

    @classmethod
    def from_env(cls) -> ClientSettings:
        """Load settings from ``JACKD_*`` environment variables."""

        settings = cls(
            host=os.getenv("JACKD_HOST", DEFAULT_HOST),
            port=int(os.getenv("JACKD_PORT", str(DEFAULT_PORT))),
            read_size=int(os.getenv("JACKD_READ_SIZE", "65536")),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.host.strip():
            raise ValueError("JACKD_HOST must not be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"JACKD_PORT out of range: {self.port}")
        if self.read_size <= 0:
            raise ValueError(f"JACKD_READ_SIZE must be positive: {self.read_size}")
