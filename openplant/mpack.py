"""Minimal msgpack-compatible encoding of request properties and datasets."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any, BinaryIO

from openplant.binary import BinaryReader, BinaryWriter

_FIX_MAP = 0x80
_FIX_ARRAY = 0x90
_FIX_STR = 0xA0
_NIL = 0xC0
_FALSE = 0xC2
_TRUE = 0xC3
_BIN8, _BIN16, _BIN32 = 0xC4, 0xC5, 0xC6
_EXT8, _EXT16, _EXT32 = 0xC7, 0xC8, 0xC9
_FLOAT, _DOUBLE = 0xCA, 0xCB
_UINT8, _UINT16, _UINT32, _UINT64 = 0xCC, 0xCD, 0xCE, 0xCF
_INT8, _INT16, _INT32, _INT64 = 0xD0, 0xD1, 0xD2, 0xD3
_FIX_EXT_SIZES = {0xD4: 1, 0xD5: 2, 0xD6: 4, 0xD7: 8, 0xD8: 16}
_STR8, _STR16, _STR32 = 0xD9, 0xDA, 0xDB
_ARRAY16, _ARRAY32 = 0xDC, 0xDD
_MAP16, _MAP32 = 0xDE, 0xDF
_NEG_FIX = 0xE0

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class Extension:
    """A msgpack extension value: a type tag and raw payload."""

    type: int
    data: bytes


def _encode_text(value: str) -> bytes:
    return value.encode("utf-8", "surrogateescape")


class Encoder:
    """Writes msgpack values to a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._writer = BinaryWriter(stream)

    def encode_value(self, value: Any) -> None:
        w = self._writer
        if value is None:
            w.write_byte(_NIL)
        elif isinstance(value, bool):
            w.write_byte(_TRUE if value else _FALSE)
        elif isinstance(value, int):
            if _INT64_MIN <= value <= _INT64_MAX:
                self._encode_int(value)
            elif 0 <= value < 2**64:
                self._encode_uint(value)
            else:
                raise OverflowError(f"integer out of msgpack range: {value}")
        elif isinstance(value, float):
            w.write_byte(_DOUBLE)
            w.write_float64(value)
        elif isinstance(value, str):
            self.encode_string(value)
        elif isinstance(value, (bytes, bytearray, memoryview)):
            self.encode_bytes(bytes(value))
        elif isinstance(value, (list, tuple)):
            self.encode_array(value)
        elif isinstance(value, dict):
            self.encode_map(value)
        elif isinstance(value, Extension):
            self.encode_extension(value.type, value.data)
        else:
            raise TypeError(f"unsupported value type {type(value).__name__}")

    def _encode_sized(self, count: int, fix_base: int, fix_limit: int, tag16: int, tag32: int) -> None:
        w = self._writer
        if count < fix_limit:
            w.write_byte(fix_base | count)
        elif count <= 0xFFFF:
            w.write_byte(tag16)
            w.write_int16(count)
        else:
            w.write_byte(tag32)
            w.write_int32(count)

    def encode_array_start(self, count: int) -> None:
        self._encode_sized(count, _FIX_ARRAY, 16, _ARRAY16, _ARRAY32)

    def encode_map_start(self, count: int) -> None:
        self._encode_sized(count, _FIX_MAP, 16, _MAP16, _MAP32)

    def encode_int32(self, value: int) -> None:
        self._writer.write_byte(_INT32)
        self._writer.write_int32(value)

    def encode_int64(self, value: int) -> None:
        self._writer.write_byte(_INT64)
        self._writer.write_int64(value)

    def encode_uint8(self, value: int) -> None:
        value &= 0xFF
        if value <= 127:
            self._writer.write_byte(value)
            return
        self._writer.write_byte(_UINT8)
        self._writer.write_byte(value)

    def encode_extension(self, tag: int, payload: bytes) -> None:
        w = self._writer
        n = len(payload)
        if n <= 0xFF:
            w.write_byte(_EXT8)
            w.write_byte(n)
        elif n <= 0xFFFF:
            w.write_byte(_EXT16)
            w.write_int16(n)
        else:
            w.write_byte(_EXT32)
            w.write_int32(n)
        w.write_byte(tag)
        self._stream.write(bytes(payload))

    def encode_string(self, value: str) -> None:
        raw = _encode_text(value)
        w = self._writer
        n = len(raw)
        if n < 32:
            w.write_byte(_FIX_STR | n)
        elif n <= 0xFF:
            w.write_byte(_STR8)
            w.write_byte(n)
        elif n <= 0xFFFF:
            w.write_byte(_STR16)
            w.write_int16(n)
        else:
            w.write_byte(_STR32)
            w.write_int32(n)
        self._stream.write(raw)

    def encode_bytes(self, value: bytes) -> None:
        w = self._writer
        n = len(value)
        if n <= 0xFF:
            w.write_byte(_BIN8)
            w.write_byte(n)
        elif n <= 0xFFFF:
            w.write_byte(_BIN16)
            w.write_int16(n)
        else:
            w.write_byte(_BIN32)
            w.write_int32(n)
        self._stream.write(bytes(value))

    def encode_array(self, values) -> None:
        self.encode_array_start(len(values))
        for item in values:
            self.encode_value(item)

    def encode_map(self, mapping: dict) -> None:
        """Encode a string-keyed mapping with keys in sorted order."""
        self.encode_map_start(len(mapping))
        for key in sorted(mapping):
            self.encode_string(key)
            self.encode_value(mapping[key])

    def _encode_int(self, value: int) -> None:
        w = self._writer
        if -32 <= value <= 127:
            w.write_byte(value)
        elif -128 <= value <= 127:
            w.write_byte(_INT8)
            w.write_int8(value)
        elif -32768 <= value <= 32767:
            w.write_byte(_INT16)
            w.write_int16(value)
        elif -(2**31) <= value <= 2**31 - 1:
            w.write_byte(_INT32)
            w.write_int32(value)
        else:
            w.write_byte(_INT64)
            w.write_int64(value)

    def _encode_uint(self, value: int) -> None:
        w = self._writer
        if value <= 127:
            w.write_byte(value)
        elif value <= 0xFF:
            w.write_byte(_UINT8)
            w.write_byte(value)
        elif value <= 0xFFFF:
            w.write_byte(_UINT16)
            w.write_int16(value)
        elif value <= 0xFFFFFFFF:
            w.write_byte(_UINT32)
            w.write_int32(value)
        else:
            w.write_byte(_UINT64)
            w.write_int64(value)


class Decoder:
    """Reads msgpack values from a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._reader = BinaryReader(stream)

    def decode_value(self) -> Any:
        """Decode one value; raises EOFError when the stream is exhausted."""
        r = self._reader
        typ = r.read_byte()
        if typ <= 0x7F:
            return typ
        if typ >= _NEG_FIX:
            return typ - 256
        if typ & 0xF0 == _FIX_MAP:
            return self._decode_map(typ & 0x0F)
        if typ & 0xF0 == _FIX_ARRAY:
            return self._decode_array(typ & 0x0F)
        if typ & 0xE0 == _FIX_STR:
            return self._decode_string(typ & 0x1F)
        if typ == _NIL:
            return None
        if typ == _FALSE:
            return False
        if typ == _TRUE:
            return True
        if typ == _UINT8:
            return r.read_byte()
        if typ == _UINT16:
            return r.read_int16() & 0xFFFF
        if typ == _UINT32:
            return r.read_int32() & 0xFFFFFFFF
        if typ == _UINT64:
            return r.read_int64() & 0xFFFFFFFFFFFFFFFF
        if typ == _INT8:
            return r.read_int8()
        if typ == _INT16:
            return r.read_int16()
        if typ == _INT32:
            return r.read_int32()
        if typ == _INT64:
            return r.read_int64()
        if typ == _FLOAT:
            return r.read_float32()
        if typ == _DOUBLE:
            return r.read_float64()
        if typ in (_STR8, _STR16, _STR32):
            return self._decode_string(self._read_length(typ, _STR8))
        if typ in (_BIN8, _BIN16, _BIN32):
            return r.read_exact(self._read_length(typ, _BIN8))
        if typ in (_EXT8, _EXT16, _EXT32):
            return self._decode_extension(self._read_length(typ, _EXT8))
        if typ in _FIX_EXT_SIZES:
            return self._decode_extension(_FIX_EXT_SIZES[typ])
        if typ == _ARRAY16:
            return self._decode_array(r.read_int16() & 0xFFFF)
        if typ == _ARRAY32:
            return self._decode_array(r.read_int32() & 0xFFFFFFFF)
        if typ == _MAP16:
            return self._decode_map(r.read_int16() & 0xFFFF)
        if typ == _MAP32:
            return self._decode_map(r.read_int32() & 0xFFFFFFFF)
        raise ValueError(f"unsupported msgpack type 0x{typ:x}")

    def _read_length(self, typ: int, base: int) -> int:
        r = self._reader
        width = typ - base
        if width == 0:
            return r.read_byte()
        if width == 1:
            return r.read_int16() & 0xFFFF
        return r.read_int32() & 0xFFFFFFFF

    def _decode_extension(self, size: int) -> Extension:
        tag = self._reader.read_byte()
        data = self._reader.read_exact(size) if size > 0 else b""
        return Extension(tag, data)

    def _decode_string(self, size: int) -> str:
        return self._reader.read_exact(size).decode("utf-8", "surrogateescape")

    def _decode_array(self, count: int) -> list:
        return [self.decode_value() for _ in range(count)]

    def _decode_map(self, count: int) -> dict:
        out = {}
        for _ in range(count):
            key = self.decode_value()
            if not isinstance(key, str):
                raise ValueError(f"map key is {type(key).__name__}, want str")
            out[key] = self.decode_value()
        return out


def marshal_value(value: Any) -> bytes:
    """Encode a single value to msgpack bytes."""
    buf = io.BytesIO()
    Encoder(buf).encode_value(value)
    return buf.getvalue()


def unmarshal_value(data: bytes) -> Any:
    """Decode the first msgpack value in ``data``."""
    return Decoder(io.BytesIO(data)).decode_value()