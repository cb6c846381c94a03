"""Row and dataset encoding for OpenPlant table results."""

from __future__ import annotations

import io
from dataclasses import dataclass, replace
from datetime import datetime
from enum import IntEnum
from typing import Any, Iterable, Mapping, Sequence

from openplant.binary import (
    pack_datetime,
    pack_float32,
    pack_float64,
    pack_int16,
    pack_int32,
    pack_int64,
    unpack_datetime,
    unpack_float32,
    unpack_float64,
    unpack_int16,
    unpack_int32,
    unpack_int64,
    unpack_uint16,
    unpack_uint32,
)
from openplant.mpack import Decoder, Encoder, Extension

_BIN8, _BIN16, _BIN32 = 0xC4, 0xC5, 0xC6


class ValueType(IntEnum):
    """Column value types used by OpenPlant datasets."""

    NULL = 0
    BOOL = 1
    INT8 = 2
    INT16 = 3
    INT32 = 4
    INT64 = 5
    FLOAT = 6
    DOUBLE = 7
    DATETIME = 8
    STRING = 9
    BINARY = 10
    OBJECT = 11
    MAP = 12
    STRUCTURE = 13
    SLICE = 14


_FIXED_LENGTHS = {
    ValueType.BOOL: 1,
    ValueType.INT8: 1,
    ValueType.INT16: 2,
    ValueType.INT32: 4,
    ValueType.FLOAT: 4,
    ValueType.INT64: 8,
    ValueType.DOUBLE: 8,
    ValueType.DATETIME: 8,
}

_BLOB_TYPES = (ValueType.SLICE, ValueType.MAP, ValueType.STRUCTURE)


@dataclass
class Column:
    """A dataset column description."""

    name: str
    type: int = ValueType.NULL
    length: int = 0
    ext: bytes = b""


@dataclass(frozen=True)
class _Slot:
    offset: int
    end: int
    cell: int
    length: int


@dataclass(frozen=True)
class _Layout:
    slots: tuple
    fixed_length: int
    bit_length: int
    variable_count: int


def _normalized_length(col: Column) -> int:
    if col.type in _FIXED_LENGTHS:
        return _FIXED_LENGTHS[col.type]
    if col.type in (ValueType.STRING, ValueType.BINARY):
        return col.length & 0xFF
    return 0


def _layout(columns: Sequence[Column]) -> _Layout:
    slots = []
    fixed = 0
    cells = 0
    for col in columns:
        length = _normalized_length(col)
        cell = -1
        if length == 0:
            cell = cells
            cells += 1
        offset = fixed
        end = offset + length
        fixed = end + (1 if col.type == ValueType.STRING and length > 0 else 0)
        slots.append(_Slot(offset, end, cell, length))
    bit_length = (len(columns) + 7) >> 3 if columns else 0
    return _Layout(tuple(slots), fixed, bit_length, cells)


def _uint8(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value & 0xFF


def decode_columns(value: Any) -> list[Column]:
    """Decode the ``Columns`` property of a response into column descriptions."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"Columns is {type(value).__name__}, want list")
    columns = []
    for item in value:
        if not isinstance(item, dict):
            raise TypeError(f"Column is {type(item).__name__}, want dict")
        col = Column(name="")
        name = item.get("Name")
        if isinstance(name, str):
            col.name = name
        typ = _uint8(item.get("Type"))
        if typ is not None:
            col.type = typ
        length = _uint8(item.get("Length"))
        if length is not None:
            col.length = length
        ext = item.get("Ext")
        if isinstance(ext, (bytes, bytearray)):
            col.ext = bytes(ext)
        elif isinstance(ext, Extension):
            col.ext = bytes(ext.data)
        col.length = _normalized_length(col)
        columns.append(col)
    return columns


def encode_columns(columns: Iterable[Column]) -> list[dict]:
    """Encode column descriptions as the ``Columns`` property value."""
    out = []
    for col in columns:
        entry: dict = {"Name": col.name, "Type": int(col.type), "Length": int(col.length)}
        if col.ext:
            entry["Ext"] = bytes(col.ext)
        out.append(entry)
    return out


def _item_bytes(item: Any) -> bytes | None:
    if isinstance(item, (bytes, bytearray)):
        return bytes(item)
    if isinstance(item, Extension):
        return item.data
    return None


def decode_dataset(data: bytes, columns: Sequence[Column]) -> list[dict]:
    """Decode a stream of row chunks into a list of row mappings."""
    if not data or not columns:
        return []
    row_decoder = RowDecoder(columns)
    stream = io.BytesIO(data)
    decoder = Decoder(stream)
    rows: list[dict] = []
    while stream.tell() < len(data):
        value = decoder.decode_value()
        if value is None:
            break
        if not isinstance(value, list):
            raise TypeError(f"dataset chunk is {type(value).__name__}, want list")
        for item in value:
            raw = _item_bytes(item)
            if raw is None:
                raise TypeError(f"dataset row is {type(item).__name__}, want bytes")
            rows.append(row_decoder.decode(raw))
    return rows


class RowDecoder:
    """Decodes raw rows for a fixed set of columns."""

    def __init__(self, columns: Sequence[Column]):
        self._columns = [replace(col) for col in columns]
        self._layout = _layout(self._columns)

    def decode(self, row: bytes) -> dict:
        layout = self._layout
        head = layout.fixed_length + layout.bit_length
        if len(row) < head:
            raise ValueError(f"row too short: {len(row)}")
        row = bytes(row)
        bits = row[layout.fixed_length:head]
        var_buf = row[head:]
        out = {}
        for index, (col, slot) in enumerate(zip(self._columns, layout.slots)):
            if not _column_set(bits, index):
                out[col.name] = None
                continue
            try:
                out[col.name] = _decode_column_value(row, var_buf, col, slot)
            except (ValueError, EOFError) as err:
                raise ValueError(f"decode column {col.name}: {err}") from err
        return out


def decode_row(row: bytes, columns: Sequence[Column]) -> dict:
    """Decode one raw row."""
    return RowDecoder(columns).decode(row)


def encode_dataset(columns: Sequence[Column], rows: Iterable[Mapping[str, Any]]) -> bytes:
    """Encode rows as one chunk followed by the terminating nil."""
    encoded = [encode_row(columns, row) for row in rows]
    buf = io.BytesIO()
    encoder = Encoder(buf)
    encoder.encode_array(encoded)
    encoder.encode_value(None)
    return buf.getvalue()


def _column_set(bits: bytes, index: int) -> bool:
    if not bits:
        return False
    return bits[index >> 3] & (1 << (index & 7)) != 0


def _int_value(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return ((value + 2**63) % 2**64) - 2**63


def _float_value(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        return float(_int_value(value))
    return 0.0


def _bool_value(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return _int_value(value) != 0
    return False


def _binary_payload(blob: bytes) -> bytes:
    buf = io.BytesIO()
    Encoder(buf).encode_bytes(blob)
    return buf.getvalue()


def _require_bytes(col: Column, value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"column {col.name} expects bytes")
    return bytes(value)


def encode_row(columns: Sequence[Column], values: Mapping[str, Any]) -> bytes:
    """Encode one row: fixed area, presence bitmap, then variable payloads."""
    layout = _layout(columns)
    row = bytearray(layout.fixed_length + layout.bit_length)
    var_parts = [b""] * layout.variable_count
    bit_base = layout.fixed_length
    for index, (col, slot) in enumerate(zip(columns, layout.slots)):
        value = values.get(col.name)
        if value is None:
            continue
        row[bit_base + (index >> 3)] |= 1 << (index & 7)
        typ = col.type
        start, end = slot.offset, slot.end
        if typ == ValueType.BOOL:
            if _bool_value(value):
                row[start] = 1
        elif typ == ValueType.INT8:
            row[start] = _int_value(value) & 0xFF
        elif typ == ValueType.INT16:
            row[start:end] = pack_int16(_int_value(value))
        elif typ == ValueType.INT32:
            row[start:end] = pack_int32(_int_value(value))
        elif typ == ValueType.INT64:
            row[start:end] = pack_int64(_int_value(value))
        elif typ == ValueType.FLOAT:
            row[start:end] = pack_float32(_float_value(value))
        elif typ == ValueType.DOUBLE:
            row[start:end] = pack_float64(_float_value(value))
        elif typ == ValueType.DATETIME:
            if isinstance(value, datetime):
                row[start:end] = pack_datetime(value)
            else:
                row[start:end] = pack_float64(_float_value(value))
        elif typ == ValueType.STRING:
            text = value if isinstance(value, str) else str(value)
            raw = text.encode("utf-8", "surrogateescape")
            if slot.length == 0:
                var_parts[slot.cell] = _binary_payload(raw)
            else:
                raw = raw[: slot.length]
                row[start:start + len(raw)] = raw
        elif typ == ValueType.BINARY:
            blob = _require_bytes(col, value)
            if slot.length == 0:
                var_parts[slot.cell] = _binary_payload(blob)
            else:
                blob = blob[: slot.length]
                row[start:start + len(blob)] = blob
        elif typ in _BLOB_TYPES:
            var_parts[slot.cell] = _binary_payload(_require_bytes(col, value))
        elif typ == ValueType.OBJECT:
            var_parts[slot.cell] = _binary_payload(_encode_object_payload(value))
        else:
            raise ValueError(f"unsupported column type {int(typ)}")
    return bytes(row) + b"".join(var_parts)


def _decode_column_value(row: bytes, var_buf: bytes, col: Column, slot: _Slot) -> Any:
    typ = col.type
    start, end = slot.offset, slot.end
    if typ == ValueType.NULL:
        return None
    if typ == ValueType.BOOL:
        return row[start] != 0
    if typ == ValueType.INT8:
        return row[start] - 256 if row[start] >= 128 else row[start]
    if typ == ValueType.INT16:
        return unpack_int16(row[start:end])
    if typ == ValueType.INT32:
        return unpack_int32(row[start:end])
    if typ == ValueType.INT64:
        return unpack_int64(row[start:end])
    if typ == ValueType.FLOAT:
        return unpack_float32(row[start:end])
    if typ == ValueType.DOUBLE:
        return unpack_float64(row[start:end])
    if typ == ValueType.DATETIME:
        return unpack_datetime(row[start:end])
    if typ == ValueType.STRING:
        raw = row[start:end] if slot.length > 0 else _variable_payload(var_buf, slot.cell)
        return raw.decode("utf-8", "surrogateescape").rstrip("\x00")
    if typ == ValueType.BINARY:
        if slot.length > 0:
            return bytes(row[start:end])
        return bytes(_variable_payload(var_buf, slot.cell))
    if typ in _BLOB_TYPES:
        return bytes(_variable_payload(var_buf, slot.cell))
    if typ == ValueType.OBJECT:
        return _decode_object_payload(_variable_payload(var_buf, slot.cell))
    raise ValueError(f"unsupported column type {int(typ)}")


def _variable_payload(var_buf: bytes, cell: int) -> bytes:
    offset = 0
    for index in range(cell + 1):
        if offset >= len(var_buf):
            raise EOFError("unexpected end of variable data")
        size, header = _binary_payload_size(var_buf[offset:])
        offset += header
        if offset + size > len(var_buf):
            raise EOFError("unexpected end of variable data")
        if index == cell:
            return var_buf[offset:offset + size]
        offset += size
    return b""


def _binary_payload_size(data: bytes) -> tuple[int, int]:
    prefix = data[0]
    if prefix == _BIN8:
        if len(data) < 2:
            raise EOFError("unexpected end of variable data")
        return data[1], 2
    if prefix == _BIN16:
        if len(data) < 3:
            raise EOFError("unexpected end of variable data")
        return unpack_uint16(data[1:3]), 3
    if prefix == _BIN32:
        if len(data) < 5:
            raise EOFError("unexpected end of variable data")
        return unpack_uint32(data[1:5]), 5
    raise ValueError(f"invalid binary payload prefix 0x{prefix:x}")


def _encode_object_payload(value: Any) -> bytes:
    if value is None:
        return bytes([ValueType.NULL])
    if isinstance(value, bool):
        return bytes([ValueType.BOOL, 1 if value else 0])
    if isinstance(value, int):
        return bytes([ValueType.INT64]) + pack_int64(value)
    if isinstance(value, float):
        return bytes([ValueType.DOUBLE]) + pack_float64(value)
    if isinstance(value, datetime):
        return bytes([ValueType.DATETIME]) + pack_datetime(value)
    if isinstance(value, str):
        return bytes([ValueType.STRING]) + value.encode("utf-8", "surrogateescape")
    if isinstance(value, (bytes, bytearray)):
        return bytes([ValueType.BINARY]) + bytes(value)
    return bytes([ValueType.STRING]) + str(value).encode("utf-8", "surrogateescape")


def _decode_object_payload(blob: bytes) -> Any:
    if not blob:
        return None
    tag, body = blob[0], bytes(blob[1:])
    if tag == ValueType.NULL:
        return None
    if tag == ValueType.BOOL:
        return len(body) > 0 and body[0] != 0
    if tag == ValueType.INT8:
        if not body:
            raise ValueError("need 1 bytes, got 0")
        return body[0] - 256 if body[0] >= 128 else body[0]
    if tag == ValueType.INT16:
        return unpack_int16(body)
    if tag == ValueType.INT32:
        return unpack_int32(body)
    if tag == ValueType.INT64:
        return unpack_int64(body)
    if tag == ValueType.FLOAT:
        return unpack_float32(body)
    if tag == ValueType.DOUBLE:
        return unpack_float64(body)
    if tag == ValueType.DATETIME:
        return unpack_datetime(body)
    if tag == ValueType.STRING:
        return body.decode("utf-8", "surrogateescape").rstrip("\x00")
    if tag == ValueType.BINARY:
        return body
    return bytes(blob)