import io

import pytest

from openplant.errors import ErrorKind, should_drop
from openplant.frame import (
    MAX_FRAME_PAYLOAD,
    CompressionMode,
    FrameReader,
    FrameWriter,
    UnsupportedCompressionError,
)


def test_frame_writer_reader_round_trip():
    payload = b"x" * (MAX_FRAME_PAYLOAD + 25)
    wire = io.BytesIO()
    FrameWriter(wire, CompressionMode.NONE).write_message(payload)
    wire.seek(0)
    assert FrameReader(wire).read_message() == payload


def test_large_message_is_split_into_frames():
    payload = b"y" * (MAX_FRAME_PAYLOAD + 1)
    wire = io.BytesIO()
    FrameWriter(wire).write_message(payload)
    raw = wire.getvalue()
    assert raw[:4] == bytes([0, 0, 0xFF, 0xFF])
    second = 4 + MAX_FRAME_PAYLOAD
    assert raw[second:second + 4] == bytes([1, 0, 0, 1])
    assert len(raw) == len(payload) + 8


def test_empty_message_writes_single_eof_frame():
    wire = io.BytesIO()
    FrameWriter(wire).write_message(b"")
    assert wire.getvalue() == bytes([1, 0, 0, 0])
    wire.seek(0)
    assert FrameReader(wire).read_message() == b""


def test_frame_reader_unsupported_compression():
    wire = io.BytesIO(bytes([1, CompressionMode.BLOCK, 0, 1, 0xFF]))
    with pytest.raises(UnsupportedCompressionError) as info:
        FrameReader(wire).read_message()
    assert info.value.kind == ErrorKind.PROTOCOL
    assert should_drop(info.value)


def test_writer_rejects_compression_and_oversize():
    writer = FrameWriter(io.BytesIO(), CompressionMode.FRAME)
    with pytest.raises(UnsupportedCompressionError):
        writer.write_frame(b"a", True)
    with pytest.raises(ValueError):
        FrameWriter(io.BytesIO()).write_frame(b"z" * (MAX_FRAME_PAYLOAD + 1), True)


def test_empty_intermediate_frame_is_skipped():
    wire = io.BytesIO(bytes([0, 0, 0, 0, 1, 0, 0, 3]) + b"abc")
    reader = FrameReader(wire)
    assert reader.read_exact(3) == b"abc"
    assert reader.at_eof()


def test_probe_head_yields_echo_reply():
    reader = FrameReader(io.BytesIO(bytes([0x10, 0x20, 0x30, 0x40])))
    message = reader.read_message()
    assert len(message) == 21
    assert message[16] == 0xA5
    assert reader.at_eof()


def test_read_exact_short_message_raises():
    wire = io.BytesIO(bytes([1, 0, 0, 2]) + b"ab")
    with pytest.raises(EOFError):
        FrameReader(wire).read_exact(5)


def test_reset_message_allows_reading_next_message():
    wire = io.BytesIO()
    writer = FrameWriter(wire)
    writer.write_message(b"first")
    writer.write_message(b"second")
    wire.seek(0)
    reader = FrameReader(wire)
    assert reader.read_message() == b"first"
    assert reader.read(10) == b""
    reader.reset_message()
    assert reader.read_message() == b"second"


def test_truncated_frame_header_raises_eof():
    with pytest.raises(EOFError):
        FrameReader(io.BytesIO(b"\x01\x00")).read_message()