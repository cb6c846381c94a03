"""A bounded pool of logged-in connections."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from openplant.config import Config
from openplant.connection import Connection, dial
from openplant.errors import ClosedError, ErrorKind, OpenPlantError, should_drop


@dataclass(frozen=True)
class PoolStats:
    """A snapshot of pool usage."""

    open: int
    idle: int
    capacity: int
    closed: bool


@dataclass
class _Meta:
    created_at: float
    last_used: float


class Pool:
    """Hands out connections, reusing healthy idle ones and dialing as needed."""

    def __init__(self, config: Config, clock: Callable[[], float] = time.monotonic):
        self._config = config.with_defaults()
        self._clock = clock
        self._cond = threading.Condition()
        self._idle: deque[Connection] = deque()
        self._open = 0
        self._closed = False
        self._meta: dict[Connection, _Meta] = {}

    def acquire(self, timeout: float | None = None) -> Connection:
        """Return a connection, waiting up to ``timeout`` seconds if all are in use."""
        op = "transport.Pool.acquire"
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            conn = None
            with self._cond:
                while True:
                    if self._closed:
                        raise ClosedError(op, "pool is closed")
                    if self._idle:
                        conn = self._idle.popleft()
                        break
                    if self._open < self._config.pool_size:
                        self._open += 1
                        break
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        raise OpenPlantError(ErrorKind.TIMEOUT, op, "deadline exceeded")
                    self._cond.wait(remaining)
            if conn is None:
                remaining = None if deadline is None else deadline - time.monotonic()
                try:
                    conn = dial(self._config, remaining)
                except BaseException:
                    with self._cond:
                        self._open -= 1
                        self._cond.notify()
                    raise
                self._track(conn)
                return conn
            if self._expired(conn):
                self.discard(conn)
                continue
            self._touch(conn)
            return conn

    def release(self, conn: Connection | None, error: BaseException | None = None) -> None:
        """Return a connection; it is dropped if ``error`` makes it unsafe to reuse."""
        if conn is None:
            return
        if should_drop(error) or self._expired(conn):
            self.discard(conn)
            return
        self._touch(conn)
        with self._cond:
            if not self._closed and len(self._idle) < self._config.max_idle:
                self._idle.append(conn)
                self._cond.notify()
                return
        self.discard(conn)

    def discard(self, conn: Connection | None) -> None:
        """Close a connection and free its slot."""
        if conn is None:
            return
        conn.close()
        with self._cond:
            self._meta.pop(conn, None)
            if self._open > 0:
                self._open -= 1
            self._cond.notify()

    def close(self) -> None:
        """Close idle connections and refuse further acquisitions."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._cond.notify_all()
        for conn in idle:
            conn.close()
            with self._cond:
                self._meta.pop(conn, None)
                if self._open > 0:
                    self._open -= 1

    def stats(self) -> PoolStats:
        with self._cond:
            return PoolStats(
                open=self._open,
                idle=len(self._idle),
                capacity=self._config.pool_size,
                closed=self._closed,
            )

    def _track(self, conn: Connection) -> None:
        now = self._clock()
        with self._cond:
            self._meta[conn] = _Meta(created_at=now, last_used=now)

    def _touch(self, conn: Connection) -> None:
        now = self._clock()
        with self._cond:
            meta = self._meta.get(conn)
            if meta is None:
                self._meta[conn] = _Meta(created_at=now, last_used=now)
            else:
                meta.last_used = now

    def _expired(self, conn: Connection) -> bool:
        now = self._clock()
        with self._cond:
            meta = self._meta.get(conn)
        if meta is None:
            return False
        cfg = self._config
        if cfg.max_lifetime > 0 and now - meta.created_at >= cfg.max_lifetime:
            return True
        if cfg.idle_timeout > 0 and now - meta.last_used >= cfg.idle_timeout:
            return True
        return False