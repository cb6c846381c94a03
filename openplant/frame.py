"""Frame chunking of OpenPlant messages."""

from __future__ import annotations

from enum import IntEnum
from typing import BinaryIO

from openplant.binary import BinaryReader
from openplant.errors import ErrorKind, OpenPlantError

MAX_FRAME_PAYLOAD = 65535

_PROBE_HEAD = bytes([0x10, 0x20, 0x30, 0x40])
_PROBE_REPLY = bytes(
    [0, 0, 0, 110, 0x46, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0xA5, 0x10, 0x20, 0x30, 0x40]
)


class CompressionMode(IntEnum):
    """Per-frame compression modes."""

    NONE = 0
    FRAME = 1
    BLOCK = 2


class UnsupportedCompressionError(OpenPlantError):
    """Raised when a frame uses a compression mode that is not supported."""

    def __init__(self, mode: int):
        self.mode = int(mode)
        super().__init__(ErrorKind.PROTOCOL, "codec.frame", f"unsupported compression mode: {self.mode}")


class FrameWriter:
    """Splits messages into frames and writes them to a stream."""

    def __init__(self, stream: BinaryIO, compression: CompressionMode = CompressionMode.NONE):
        self._stream = stream
        self.compression = CompressionMode(compression)

    def write_frame(self, payload: bytes, eof: bool) -> None:
        if self.compression != CompressionMode.NONE:
            raise UnsupportedCompressionError(self.compression)
        payload = bytes(payload or b"")
        if len(payload) > MAX_FRAME_PAYLOAD:
            raise ValueError(f"frame payload too large: {len(payload)}")
        size = len(payload)
        head = bytes([1 if eof else 0, int(self.compression), size >> 8, size & 0xFF])
        self._stream.write(head)
        if payload:
            self._stream.write(payload)

    def write_message(self, payload: bytes) -> None:
        payload = bytes(payload or b"")
        if not payload:
            self.write_frame(b"", True)
            return
        for offset in range(0, len(payload), MAX_FRAME_PAYLOAD):
            end = min(offset + MAX_FRAME_PAYLOAD, len(payload))
            self.write_frame(payload[offset:end], end == len(payload))


class FrameReader:
    """Reads one framed message at a time as a byte stream."""

    def __init__(self, stream: BinaryIO):
        self._reader = BinaryReader(stream)
        self._buf = b""
        self._off = 0
        self._eof = False
        self.last_compression = CompressionMode.NONE

    def at_eof(self) -> bool:
        """Return True once the final frame of the message has been consumed."""
        return self._eof and self._off >= len(self._buf)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes of the current message; b"" at its end."""
        if size == 0:
            return b""
        while self._off >= len(self._buf):
            if self._eof:
                return b""
            self._read_frame()
        if size < 0:
            end = len(self._buf)
        else:
            end = min(self._off + size, len(self._buf))
        chunk = self._buf[self._off:end]
        self._off = end
        return chunk

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes of the message or raise EOFError."""
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        if len(data) < size:
            raise EOFError(f"unexpected end of message: got {len(data)} of {size} bytes")
        return data

    def read_message(self) -> bytes:
        """Read the rest of the current message."""
        chunks = []
        while True:
            chunk = self.read(4096)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)

    def reset_message(self) -> None:
        """Forget the current message so the next read starts a new one."""
        self._buf = b""
        self._off = 0
        self._eof = False

    def _read_frame(self) -> None:
        head = self._reader.read_exact(4)
        if head == _PROBE_HEAD:
            self._buf = _PROBE_REPLY
            self._off = 0
            self._eof = True
            self.last_compression = CompressionMode.NONE
            return
        self._eof = head[0] == 1
        self.last_compression = CompressionMode(head[1] & 3) if head[1] & 3 < 3 else head[1] & 3
        size = (head[2] << 8) | head[3]
        self._off = 0
        if size == 0:
            self._buf = b""
            return
        self._buf = self._reader.read_exact(size)
        if self.last_compression != CompressionMode.NONE:
            raise UnsupportedCompressionError(self.last_compression)