"""Lenient conversion of loosely typed row values."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})([T ])(\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d{1,9}))?(Z|[+-]\d{2}:\d{2})?$"
)


def _wrap_signed(value: int, bits: int) -> int:
    half = 1 << (bits - 1)
    return ((value + half) % (1 << bits)) - half


def to_int64(value: Any) -> int:
    """Convert a number to a signed 64-bit integer; anything else gives 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return _wrap_signed(value, 64)
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return _wrap_signed(int(value), 64)
    return 0


def to_int16(value: Any) -> int:
    return _wrap_signed(to_int64(value), 16)


def to_int32(value: Any) -> int:
    return _wrap_signed(to_int64(value), 32)


def to_float64(value: Any) -> float:
    """Convert a number to float; anything else gives 0.0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        return float(to_int64(value))
    return 0.0


def _format_float(value: float) -> str:
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def to_string(value: Any) -> str:
    """Convert a value to text; None gives an empty string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "surrogateescape")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _parse_timestamp(text: str) -> datetime | None:
    match = _TIMESTAMP.match(text)
    if match is None:
        return None
    year, month, day, sep, hour, minute, second, fraction, zone = match.groups()
    if zone is not None and sep != "T":
        return None
    micros = int((fraction or "0").ljust(9, "0")[:6])
    tz = None
    if zone == "Z":
        tz = timezone.utc
    elif zone is not None:
        sign = -1 if zone[0] == "-" else 1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone(sign * offset)
    try:
        moment = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
        )
    except ValueError:
        return None
    return moment if tz is not None else moment.astimezone()


def to_time(value: Any) -> datetime | None:
    """Convert epoch seconds, a timestamp string or a datetime to an aware datetime.

    Values without a zone are taken as local time. Returns None when the value
    cannot be converted.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, int):
            return (_EPOCH + timedelta(seconds=value)).astimezone()
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            whole = int(value)
            micros = int((value - whole) * 1e6)
            return (_EPOCH + timedelta(seconds=whole, microseconds=micros)).astimezone()
    except (OverflowError, ValueError):
        return None
    if isinstance(value, str):
        return _parse_timestamp(value)
    return None