"""Connection settings for the OpenPlant transport."""

from __future__ import annotations

import socket
from dataclasses import dataclass, replace
from typing import Callable, Optional

from openplant.frame import CompressionMode

DialFunc = Callable[[str, int, Optional[float]], socket.socket]

_DEFAULT_DIAL_TIMEOUT = 10.0
_DEFAULT_REQUEST_TIMEOUT = 30.0
_DEFAULT_POOL_SIZE = 4
_DEFAULT_IDLE_TIMEOUT = 5 * 60.0
_DEFAULT_MAX_LIFETIME = 30 * 60.0


def _default_dial(host: str, port: int, timeout: float | None) -> socket.socket:
    return socket.create_connection((host, port), timeout=timeout)


@dataclass
class Config:
    """Where and how to connect. Durations are in seconds."""

    host: str = ""
    port: int = 0
    user: str = ""
    password: str = ""
    dial_timeout: float = 0
    request_timeout: float = 0
    pool_size: int = 0
    max_idle: int = 0
    idle_timeout: float = 0
    max_lifetime: float = 0
    compression: CompressionMode = CompressionMode.NONE
    dial: DialFunc | None = None

    def address(self) -> str:
        """Return ``host:port``, bracketing IPv6 hosts."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def with_defaults(self) -> "Config":
        """Return a copy with every unset value replaced by its default."""
        pool_size = self.pool_size if self.pool_size > 0 else _DEFAULT_POOL_SIZE
        max_idle = self.max_idle
        if max_idle <= 0 or max_idle > pool_size:
            max_idle = pool_size
        return replace(
            self,
            dial_timeout=self.dial_timeout if self.dial_timeout > 0 else _DEFAULT_DIAL_TIMEOUT,
            request_timeout=self.request_timeout if self.request_timeout > 0 else _DEFAULT_REQUEST_TIMEOUT,
            pool_size=pool_size,
            max_idle=max_idle,
            idle_timeout=self.idle_timeout if self.idle_timeout > 0 else _DEFAULT_IDLE_TIMEOUT,
            max_lifetime=self.max_lifetime if self.max_lifetime > 0 else _DEFAULT_MAX_LIFETIME,
            dial=self.dial if self.dial is not None else _default_dial,
        )