"""Encoding of table select requests, with index and filter payloads."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

from openplant.constants import (
    ACTION_SELECT,
    PROP_ACTION,
    PROP_COLUMNS,
    PROP_DB,
    PROP_FILTERS,
    PROP_INDEXES,
    PROP_KEY,
    PROP_LIMIT,
    PROP_ORDER_BY,
    PROP_SERVICE,
    PROP_TABLE,
)
from openplant.dataset import ValueType
from openplant.errors import validation_error
from openplant.mpack import Encoder, Extension

INDEX_INT32_ARRAY = 20
INDEX_INT64_ARRAY = 21
INDEX_STRING_ARRAY = 25
ROW_EXTENSION = 32

OPER_EQ = 0
OPER_GE = 4
OPER_LE = 5
OPER_IN = 6

RELATION_AND = 0
RELATION_OR = 1

_RESERVED_PROPS = frozenset(
    {
        PROP_SERVICE,
        PROP_ACTION,
        PROP_TABLE,
        PROP_COLUMNS,
        PROP_DB,
        PROP_KEY,
        PROP_INDEXES,
        PROP_FILTERS,
        PROP_ORDER_BY,
        PROP_LIMIT,
    }
)


@dataclass
class Filter:
    """One server-side filter condition."""

    left: str
    operator: int = OPER_EQ
    right: str = ""
    relation: int = RELATION_AND


@dataclass
class Indexes:
    """Key values a request is restricted to; exactly one value list may be set."""

    key: str = ""
    int32: list[int] = field(default_factory=list)
    int64: list[int] = field(default_factory=list)
    strings: list[str] = field(default_factory=list)


def _kind_count(indexes: Indexes) -> int:
    return sum(1 for values in (indexes.int32, indexes.int64, indexes.strings) if values)


def encode_index_payload(indexes: Indexes) -> Extension:
    """Encode index values as a typed extension; exactly one value kind is allowed."""
    if _kind_count(indexes) != 1:
        raise ValueError("indexes require exactly one value type")
    buf = io.BytesIO()
    enc = Encoder(buf)
    if indexes.int32:
        enc.encode_array_start(len(indexes.int32))
        for value in indexes.int32:
            enc.encode_int32(value)
        return Extension(INDEX_INT32_ARRAY, buf.getvalue())
    if indexes.int64:
        enc.encode_array_start(len(indexes.int64))
        for value in indexes.int64:
            enc.encode_int64(value)
        return Extension(INDEX_INT64_ARRAY, buf.getvalue())
    enc.encode_array_start(len(indexes.strings))
    for value in indexes.strings:
        enc.encode_string(value)
    return Extension(INDEX_STRING_ARRAY, buf.getvalue())


def _encode_columns(enc: Encoder, columns: list[str]) -> None:
    names = columns or ["*"]
    enc.encode_array_start(len(names))
    for name in names:
        enc.encode_map_start(3)
        enc.encode_string("Name")
        enc.encode_string(name)
        enc.encode_string("Type")
        enc.encode_uint8(ValueType.NULL)
        enc.encode_string("Length")
        enc.encode_uint8(0)


def _encode_filters(enc: Encoder, filters: list[Filter]) -> None:
    enc.encode_array_start(len(filters))
    for item in filters:
        enc.encode_map_start(4)
        enc.encode_string("L")
        enc.encode_string(item.left)
        enc.encode_string("O")
        enc.encode_uint8(item.operator)
        enc.encode_string("R")
        enc.encode_string(item.right)
        enc.encode_string("Or")
        enc.encode_uint8(item.relation)


@dataclass
class TableSelectRequest:
    """A select against one table."""

    table: str
    db: str = ""
    columns: list[str] = field(default_factory=list)
    indexes: Indexes | None = None
    filters: list[Filter] = field(default_factory=list)
    order_by: str = ""
    limit: str = ""
    props: dict[str, Any] = field(default_factory=dict)

    def encode(self) -> bytes:
        """Encode the request properties followed by the terminating nil."""
        if not self.table:
            raise validation_error("protocol.TableSelectRequest.encode", "table is required")
        extra = sorted(key for key in self.props if key not in _RESERVED_PROPS)
        count = 4 + len(extra)
        count += 1 if self.db else 0
        count += 2 if self.indexes is not None else 0
        count += 1 if self.filters else 0
        count += 1 if self.order_by else 0
        count += 1 if self.limit else 0

        buf = io.BytesIO()
        enc = Encoder(buf)
        enc.encode_map_start(count)
        enc.encode_string(PROP_TABLE)
        enc.encode_string(self.table)
        enc.encode_string(PROP_SERVICE)
        enc.encode_string("openplant")
        enc.encode_string(PROP_ACTION)
        enc.encode_string(ACTION_SELECT)
        enc.encode_string(PROP_COLUMNS)
        _encode_columns(enc, self.columns)
        if self.db:
            enc.encode_string(PROP_DB)
            enc.encode_string(self.db)
        if self.indexes is not None:
            enc.encode_string(PROP_KEY)
            enc.encode_string(self.indexes.key)
            enc.encode_string(PROP_INDEXES)
            payload = encode_index_payload(self.indexes)
            enc.encode_extension(payload.type, payload.data)
        if self.filters:
            enc.encode_string(PROP_FILTERS)
            _encode_filters(enc, self.filters)
        if self.order_by:
            enc.encode_string(PROP_ORDER_BY)
            enc.encode_string(self.order_by)
        if self.limit:
            enc.encode_string(PROP_LIMIT)
            enc.encode_string(self.limit)
        for key in extra:
            enc.encode_string(key)
            enc.encode_value(self.props[key])
        enc.encode_value(None)
        return buf.getvalue()