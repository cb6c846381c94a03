"""Error types shared by the OpenPlant client and helpers that classify failures."""

from __future__ import annotations

import asyncio
import concurrent.futures
from enum import Enum


class ErrorKind(Enum):
    """Broad category of an OpenPlant failure."""

    VALIDATION = "validation"
    PROTOCOL = "protocol"
    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELED = "canceled"
    SERVER = "server"
    DECODE = "decode"
    UNSUPPORTED = "unsupported"
    CLOSED = "closed"


class OpenPlantError(Exception):
    """An error raised by an OpenPlant operation."""

    def __init__(self, kind: ErrorKind, op: str, message: str = "", code: int = 0):
        self.kind = kind
        self.op = op
        self.message = message
        self.code = code
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"openplant {self.kind.value}: {self.op}"
        if self.code:
            text += f" (code {self.code})"
        if self.message:
            text += f": {self.message}"
        return text

    def is_kind(self, kind: ErrorKind) -> bool:
        """Return True if this error, or an error it wraps, has the given kind."""
        return is_kind(self, kind)


class ClosedError(OpenPlantError):
    """Raised when an operation is attempted on a closed connection or pool."""

    def __init__(self, op: str = "openplant", message: str = "client is closed"):
        super().__init__(ErrorKind.CLOSED, op, message)


def validation_error(op: str, message: str) -> OpenPlantError:
    """Build an error describing invalid input."""
    return OpenPlantError(ErrorKind.VALIDATION, op, message)


def server_error(op: str, code: int, message: str) -> OpenPlantError:
    """Build an error describing a failure reported by the server."""
    return OpenPlantError(ErrorKind.SERVER, op, message, code=code)


def is_kind(error: BaseException | None, kind: ErrorKind) -> bool:
    """Return True if ``error`` or any error in its cause chain has ``kind``."""
    seen = set()
    current = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, OpenPlantError) and current.kind == kind:
            return True
        current = current.__cause__
    return False


def _wrap(kind: ErrorKind, op: str, error: BaseException) -> OpenPlantError:
    wrapped = OpenPlantError(kind, op, str(error) or type(error).__name__)
    wrapped.__cause__ = error
    return wrapped


def classify_error(op: str, error: BaseException | None) -> BaseException | None:
    """Wrap low-level I/O failures into OpenPlant errors of the matching kind.

    Errors that are already OpenPlant errors, and errors that are not I/O
    related, are returned unchanged.
    """
    if error is None:
        return None
    if isinstance(error, OpenPlantError):
        return error
    if isinstance(error, (asyncio.CancelledError, concurrent.futures.CancelledError)):
        return _wrap(ErrorKind.CANCELED, op, error)
    if isinstance(error, TimeoutError):
        return _wrap(ErrorKind.TIMEOUT, op, error)
    if isinstance(error, OSError):
        return _wrap(ErrorKind.NETWORK, op, error)
    if isinstance(error, EOFError):
        return _wrap(ErrorKind.NETWORK, op, error)
    return error


_DROP_KINDS = (ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.CANCELED, ErrorKind.PROTOCOL)


def should_drop(error: BaseException | None) -> bool:
    """Return True if a connection that saw ``error`` must not be reused."""
    if error is None:
        return False
    if isinstance(error, ClosedError):
        return True
    if any(is_kind(error, kind) for kind in _DROP_KINDS):
        return True
    return isinstance(error, (OSError, EOFError))