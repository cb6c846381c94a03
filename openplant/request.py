"""Generic property-map requests and responses."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

from openplant.constants import PROP_ACTION, PROP_COLUMNS, PROP_ERR_NO, PROP_ERROR, PROP_SERVICE, PROP_TABLE
from openplant.dataset import Column, decode_columns, decode_dataset
from openplant.errors import ErrorKind, OpenPlantError, server_error
from openplant.mpack import Decoder, Encoder


@dataclass
class Request:
    """A request: a property map optionally followed by a raw body."""

    props: dict[str, Any] = field(default_factory=dict)
    body: bytes = b""

    def encode(self) -> bytes:
        """Encode properties, body and the terminating nil."""
        op = "protocol.Request.encode"
        buf = io.BytesIO()
        encoder = Encoder(buf)
        try:
            encoder.encode_map(self.props)
        except (TypeError, ValueError, OverflowError, AttributeError) as err:
            raise OpenPlantError(ErrorKind.PROTOCOL, op, str(err)) from err
        if self.body:
            buf.write(bytes(self.body))
        encoder.encode_value(None)
        return buf.getvalue()


def new_request(action: str, table: str) -> Request:
    """Create a request for the openplant service."""
    return Request(props={PROP_SERVICE: "openplant", PROP_ACTION: action, PROP_TABLE: table})


def _int32(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return ((value + 2**31) % 2**32) - 2**31


@dataclass
class Response:
    """A decoded response: its property map and the bytes that follow it."""

    props: dict[str, Any] = field(default_factory=dict)
    body: bytes = b""

    def columns(self) -> list[Column]:
        return decode_columns(self.props.get(PROP_COLUMNS))

    def rows(self) -> list[dict]:
        return decode_dataset(self.body, self.columns())

    def server_error(self) -> OpenPlantError | None:
        """Return the error the server reported, or None."""
        code = _int32(self.props.get(PROP_ERR_NO))
        if code == 0:
            return None
        message = self.props.get(PROP_ERROR)
        if not isinstance(message, str):
            message = ""
        return server_error("protocol.Response.server_error", code, message)


def decode_response(data: bytes) -> Response:
    """Decode a response message; raise the server's error if it reported one."""
    op = "protocol.decode_response"
    stream = io.BytesIO(bytes(data))
    try:
        value = Decoder(stream).decode_value()
    except (EOFError, ValueError) as err:
        raise OpenPlantError(ErrorKind.DECODE, op, str(err) or "end of data") from err
    if not isinstance(value, dict):
        raise OpenPlantError(ErrorKind.PROTOCOL, op, f"response props are {type(value).__name__}")
    response = Response(props=value, body=stream.read())
    error = response.server_error()
    if error is not None:
        raise error
    return response