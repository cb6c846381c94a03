"""Encoding of table insert, update, replace and delete requests."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

from openplant.constants import (
    PROP_ACTION,
    PROP_COLUMNS,
    PROP_DB,
    PROP_FILTERS,
    PROP_INDEXES,
    PROP_KEY,
    PROP_SERVICE,
    PROP_TABLE,
)
from openplant.dataset import Column, encode_columns, encode_row
from openplant.errors import ErrorKind, OpenPlantError, validation_error
from openplant.mpack import Encoder
from openplant.table_select import ROW_EXTENSION, Filter, Indexes, encode_index_payload

_OP = "protocol.TableMutationRequest.encode"


@dataclass
class TableMutationRequest:
    """A mutation of one table, optionally carrying rows."""

    table: str
    action: str
    db: str = ""
    key: str = ""
    indexes: Indexes | None = None
    filters: list[Filter] = field(default_factory=list)
    columns: list[Column] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    def encode(self) -> bytes:
        """Encode properties, any rows as extensions, and the terminating nil."""
        if not self.table:
            raise validation_error(_OP, "table is required")
        if not self.action:
            raise validation_error(_OP, "action is required")
        props: dict[str, Any] = {
            PROP_SERVICE: "openplant",
            PROP_ACTION: self.action,
            PROP_TABLE: self.table,
        }
        if self.db:
            props[PROP_DB] = self.db
        if self.columns:
            props[PROP_COLUMNS] = encode_columns(self.columns)
        if self.indexes is not None:
            props[PROP_KEY] = self.indexes.key or self.key
            props[PROP_INDEXES] = encode_index_payload(self.indexes)
        if self.filters:
            props[PROP_FILTERS] = [
                {"L": item.left, "O": item.operator, "R": item.right, "Or": item.relation}
                for item in self.filters
            ]

        buf = io.BytesIO()
        enc = Encoder(buf)
        try:
            enc.encode_map(props)
        except (TypeError, ValueError, OverflowError) as err:
            raise OpenPlantError(ErrorKind.PROTOCOL, _OP, str(err)) from err
        if self.rows:
            if not self.columns:
                raise validation_error(_OP, "rows require columns")
            enc.encode_array_start(len(self.rows))
            for row in self.rows:
                try:
                    raw = encode_row(self.columns, row)
                except (TypeError, ValueError, OverflowError) as err:
                    raise OpenPlantError(ErrorKind.PROTOCOL, "protocol.TableMutationRequest.row", str(err)) from err
                enc.encode_extension(ROW_EXTENSION, raw)
        enc.encode_value(None)
        return buf.getvalue()