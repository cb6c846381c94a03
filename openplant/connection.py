"""A single logged-in connection to an OpenPlant server.

Operations take an optional ``timeout`` in seconds; None waits indefinitely.
"""

from __future__ import annotations

import socket
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, NoReturn

from openplant.config import Config
from openplant.errors import ClosedError, ErrorKind, OpenPlantError, classify_error, validation_error
from openplant.frame import CompressionMode, FrameReader, FrameWriter
from openplant.login import read_challenge, read_login_result, version_string, write_login_reply

_PROBE = bytes(
    [
        0x10, 0x20, 0x30, 0x40,
        0, 0, 0, 110,
        0x46, 0, 0, 0,
        0, 0, 0, 0,
        0, 0, 0, 0,
        0xA5,
        0x10, 0x20, 0x30, 0x40,
    ]
)
_ECHO_OK = 0xA5


def _reraise(op: str, error: BaseException) -> NoReturn:
    classified = classify_error(op, error)
    if classified is error:
        raise error
    raise classified from error


class _SocketStream:
    def __init__(self, sock: socket.socket):
        self._sock = sock

    def read(self, size: int = -1) -> bytes:
        if size == 0:
            return b""
        return self._sock.recv(size if size > 0 else 65536)

    def write(self, data: bytes) -> int:
        self._sock.sendall(data)
        return len(data)


class Connection:
    """A framed, logged-in socket connection."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        stream = _SocketStream(sock)
        self._reader = FrameReader(stream)
        self._writer = FrameWriter(stream, CompressionMode.NONE)
        self._lock = threading.Lock()
        self._read_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._info = ""
        self._version = 0
        self._client_address = ""
        self._closed = False

    @property
    def info(self) -> str:
        with self._lock:
            return self._info

    @property
    def version_number(self) -> int:
        with self._lock:
            return self._version

    @property
    def version(self) -> str:
        with self._lock:
            return version_string(self._version)

    @property
    def client_address(self) -> str:
        with self._lock:
            return self._client_address

    def set_compression(self, mode: CompressionMode) -> None:
        with self._lock:
            self._writer.compression = CompressionMode(mode)

    def request(self, payload: bytes, timeout: float | None = None) -> bytes:
        """Send one message and return the reply message."""
        self.write_message(payload, timeout)
        return self.read_message(timeout)

    def request_echo(self, payload: bytes, timeout: float | None = None) -> int:
        """Send one message and return the single signed byte the server echoes."""
        self.write_message(payload, timeout)
        return self.read_echo(timeout)

    def request_stream(
        self, payload: bytes, callback: Callable[[FrameReader], Any], timeout: float | None = None
    ) -> Any:
        """Send one message and let ``callback`` consume the reply as a stream."""
        op = "transport.Connection.request_stream"
        if callback is None:
            raise validation_error(op, "stream callback is required")
        self.write_message(payload, timeout)
        self._ensure_open()
        with self._read_lock, self._bound(timeout, op):
            self._reader.reset_message()
            try:
                result = callback(self._reader)
            except Exception as err:
                _reraise(op, err)
            finally:
                self._reader.reset_message()
            return result

    def read_echo(self, timeout: float | None = None) -> int:
        """Read one raw byte from the socket as a signed value."""
        op = "transport.Connection.read_echo"
        self._ensure_open()
        with self._read_lock, self._bound(timeout, op):
            self._reader.reset_message()
            try:
                data = self._sock.recv(1)
                if not data:
                    raise EOFError("end of data")
            except Exception as err:
                _reraise(op, err)
            self._reader.reset_message()
        value = data[0]
        return value - 256 if value >= 128 else value

    def write_message(self, payload: bytes, timeout: float | None = None) -> None:
        op = "transport.Connection.write_message"
        self._ensure_open()
        with self._write_lock, self._bound(timeout, op):
            try:
                self._writer.write_message(payload)
            except Exception as err:
                _reraise(op, err)

    def read_message(self, timeout: float | None = None) -> bytes:
        op = "transport.Connection.read_message"
        self._ensure_open()
        with self._read_lock, self._bound(timeout, op):
            self._reader.reset_message()
            try:
                message = self._reader.read_message()
            except Exception as err:
                _reraise(op, err)
            self._reader.reset_message()
            return message

    def alive(self, timeout: float | None = None) -> None:
        """Send an echo probe; raise unless the server answers correctly."""
        op = "transport.Connection.alive"
        with self._lock:
            if self._closed:
                raise ClosedError(op)
            with self._bound(timeout, op):
                try:
                    self._sock.sendall(_PROBE)
                except Exception as err:
                    _reraise(op + ".write", err)
                try:
                    echo = self._sock.recv(1)
                    if not echo:
                        raise EOFError("end of data")
                except Exception as err:
                    _reraise(op + ".read", err)
        if echo[0] != _ECHO_OK:
            raise OpenPlantError(ErrorKind.PROTOCOL, op, "unexpected echo byte")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._sock.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        with self._lock:
            if self._closed:
                raise ClosedError("transport.Connection")

    @contextmanager
    def _bound(self, timeout: float | None, op: str) -> Iterator[None]:
        if timeout is not None and timeout <= 0:
            raise OpenPlantError(ErrorKind.TIMEOUT, op, "deadline exceeded")
        self._sock.settimeout(timeout)
        try:
            yield
        finally:
            try:
                self._sock.settimeout(None)
            except OSError:
                pass

    def _login(self, user: str, password: str, deadline: float) -> None:
        challenge = read_challenge(self._reader, deadline)
        write_login_reply(self._writer, user, password, challenge.random, deadline)
        self._reader.reset_message()
        result = read_login_result(self._reader, challenge, deadline)
        with self._lock:
            self._info = result.info
            self._version = result.version
            self._client_address = result.client_address
        self._reader.reset_message()


def dial(config: Config, timeout: float | None = None) -> Connection:
    """Connect and log in; ``timeout`` defaults to the configured dial timeout."""
    op = "transport.dial"
    cfg = config.with_defaults()
    budget = cfg.dial_timeout if timeout is None else timeout
    if budget <= 0:
        raise OpenPlantError(ErrorKind.TIMEOUT, op, "deadline exceeded")
    deadline = time.monotonic() + budget
    try:
        sock = cfg.dial(cfg.host, cfg.port, budget)
    except Exception as err:
        _reraise(op, err)
    conn = Connection(sock)
    try:
        conn.set_compression(cfg.compression)
        sock.settimeout(max(deadline - time.monotonic(), 1e-3))
        conn._login(cfg.user, cfg.password, deadline)
        sock.settimeout(None)
    except BaseException:
        conn.close()
        raise
    return conn