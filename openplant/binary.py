"""Big-endian scalar encoding used on the OpenPlant wire."""

from __future__ import annotations

import math
import struct
from datetime import datetime, timedelta, timezone
from typing import BinaryIO

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _pack_int(value: int, size: int) -> bytes:
    return (int(value) & ((1 << (8 * size)) - 1)).to_bytes(size, "big")


def _take(data: bytes, size: int) -> bytes:
    if len(data) < size:
        raise ValueError(f"need {size} bytes, got {len(data)}")
    return bytes(data[:size])


def pack_int16(value: int) -> bytes:
    return _pack_int(value, 2)


def unpack_int16(data: bytes) -> int:
    return int.from_bytes(_take(data, 2), "big", signed=True)


def pack_uint16(value: int) -> bytes:
    return _pack_int(value, 2)


def unpack_uint16(data: bytes) -> int:
    return int.from_bytes(_take(data, 2), "big")


def pack_int32(value: int) -> bytes:
    return _pack_int(value, 4)


def unpack_int32(data: bytes) -> int:
    return int.from_bytes(_take(data, 4), "big", signed=True)


def pack_uint32(value: int) -> bytes:
    return _pack_int(value, 4)


def unpack_uint32(data: bytes) -> int:
    return int.from_bytes(_take(data, 4), "big")


def pack_int64(value: int) -> bytes:
    return _pack_int(value, 8)


def unpack_int64(data: bytes) -> int:
    return int.from_bytes(_take(data, 8), "big", signed=True)


def pack_uint64(value: int) -> bytes:
    return _pack_int(value, 8)


def unpack_uint64(data: bytes) -> int:
    return int.from_bytes(_take(data, 8), "big")


def pack_float32(value: float) -> bytes:
    return struct.pack(">f", value)


def unpack_float32(data: bytes) -> float:
    return struct.unpack(">f", _take(data, 4))[0]


def pack_float64(value: float) -> bytes:
    return struct.pack(">d", value)


def unpack_float64(data: bytes) -> float:
    return struct.unpack(">d", _take(data, 8))[0]


def pack_datetime(value: datetime) -> bytes:
    """Encode a datetime as float seconds since the epoch, truncated to milliseconds.

    Naive datetimes are taken to be local time.
    """
    if value.tzinfo is None:
        value = value.astimezone()
    delta = value - _EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    millis = abs(micros) // 1000
    if micros < 0:
        millis = -millis
    return pack_float64(millis / 1e3)


def unpack_datetime(data: bytes) -> datetime:
    """Decode float seconds since the epoch into an aware local datetime."""
    seconds = unpack_float64(data)
    whole = int(seconds)
    millis = int(math.fmod(int(seconds * 1e3), 1000))
    moment = _EPOCH + timedelta(seconds=whole, milliseconds=millis)
    return moment.astimezone()


class BinaryWriter:
    """Writes big-endian scalars to a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def write_byte(self, value: int) -> None:
        self._stream.write(bytes([int(value) & 0xFF]))

    def write_int8(self, value: int) -> None:
        self.write_byte(value)

    def write_int16(self, value: int) -> None:
        self._stream.write(pack_int16(value))

    def write_int32(self, value: int) -> None:
        self._stream.write(pack_int32(value))

    def write_int64(self, value: int) -> None:
        self._stream.write(pack_int64(value))

    def write_float32(self, value: float) -> None:
        self._stream.write(pack_float32(value))

    def write_float64(self, value: float) -> None:
        self._stream.write(pack_float64(value))


class BinaryReader:
    """Reads big-endian scalars from a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes."""
        return self._stream.read(size)

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes or raise EOFError."""
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        if len(data) < size:
            if data:
                raise EOFError(f"unexpected end of data: got {len(data)} of {size} bytes")
            raise EOFError("end of data")
        return data

    def read_byte(self) -> int:
        return self.read_exact(1)[0]

    def read_int8(self) -> int:
        value = self.read_byte()
        return value - 256 if value >= 128 else value

    def read_int16(self) -> int:
        return unpack_int16(self.read_exact(2))

    def read_int32(self) -> int:
        return unpack_int32(self.read_exact(4))

    def read_int64(self) -> int:
        return unpack_int64(self.read_exact(8))

    def read_float32(self) -> float:
        return unpack_float32(self.read_exact(4))

    def read_float64(self) -> float:
        return unpack_float64(self.read_exact(8))