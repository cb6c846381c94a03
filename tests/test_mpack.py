import io

import pytest

from openplant.mpack import Decoder, Encoder, Extension, marshal_value, unmarshal_value


def test_msgpack_round_trip():
    data = marshal_value(
        {
            "Action": "Select",
            "Async": 1,
            "IDs": [1, 2],
            "Blob": bytes([1, 2, 3]),
            "OK": True,
        }
    )
    got = unmarshal_value(data)
    assert isinstance(got, dict)
    assert got["Action"] == "Select"
    assert got["OK"] is True
    assert got["Async"] == 1
    assert got["IDs"] == [1, 2]
    assert got["Blob"] == bytes([1, 2, 3])


@pytest.mark.parametrize(
    "value,wire",
    [
        (None, b"\xc0"),
        (False, b"\xc2"),
        (True, b"\xc3"),
        (5, b"\x05"),
        (-1, b"\xff"),
        (b"\x01", b"\xc4\x01\x01"),
        ("a", b"\xa1a"),
        ([], b"\x90"),
        ({}, b"\x80"),
    ],
)
def test_wire_bytes(value, wire):
    assert marshal_value(value) == wire


def test_map_keys_are_sorted():
    assert marshal_value({"b": 1, "a": 2}) == b"\x82\xa1a\x02\xa1b\x01"


@pytest.mark.parametrize(
    "value",
    [
        0, 127, 128, -32, -33, -128, -129, 32767, -32768, 65535, 2**31 - 1, -(2**31),
        2**40, -(2**63), 2**63 - 1, 2**64 - 1, 1.5, -0.25,
    ],
)
def test_number_round_trip(value):
    assert unmarshal_value(marshal_value(value)) == value


@pytest.mark.parametrize("size", [0, 31, 32, 255, 256, 65535, 65536])
def test_string_and_bytes_round_trip(size):
    text = "x" * size
    blob = b"\x07" * size
    assert unmarshal_value(marshal_value(text)) == text
    assert unmarshal_value(marshal_value(blob)) == blob


@pytest.mark.parametrize("size", [15, 16, 70000])
def test_array_round_trip(size):
    values = list(range(size))
    assert unmarshal_value(marshal_value(values)) == values


def test_large_map_round_trip():
    mapping = {f"k{i}": i for i in range(20)}
    assert unmarshal_value(marshal_value(mapping)) == mapping


def test_unicode_string_round_trip():
    assert unmarshal_value(marshal_value("测点")) == "测点"


def test_extension_encoding():
    buf = io.BytesIO()
    Encoder(buf).encode_extension(32, b"\x01")
    assert buf.getvalue() == b"\xc7\x01\x20\x01"
    assert unmarshal_value(buf.getvalue()) == Extension(32, b"\x01")


def test_extension_value_round_trip():
    ext = Extension(25, b"\x00" * 300)
    assert unmarshal_value(marshal_value(ext)) == ext


def test_fixext_decodes():
    assert unmarshal_value(b"\xd4\x05\x07") == Extension(5, b"\x07")


def test_explicit_width_encoders():
    buf = io.BytesIO()
    enc = Encoder(buf)
    enc.encode_int32(1)
    enc.encode_int64(-1)
    enc.encode_uint8(5)
    enc.encode_uint8(200)
    assert buf.getvalue() == (
        b"\xd2\x00\x00\x00\x01" + b"\xd3" + b"\xff" * 8 + b"\x05" + b"\xcc\xc8"
    )
    buf.seek(0)
    dec = Decoder(buf)
    assert [dec.decode_value() for _ in range(4)] == [1, -1, 5, 200]


def test_array_and_map_start_headers():
    buf = io.BytesIO()
    enc = Encoder(buf)
    enc.encode_array_start(16)
    enc.encode_map_start(3)
    assert buf.getvalue() == b"\xdc\x00\x10\x83"


def test_decoder_reads_sequential_values_then_eof():
    buf = io.BytesIO(marshal_value("a") + marshal_value(None))
    dec = Decoder(buf)
    assert dec.decode_value() == "a"
    assert dec.decode_value() is None
    with pytest.raises(EOFError):
        dec.decode_value()


def test_unsupported_type_byte_rejected():
    with pytest.raises(ValueError):
        unmarshal_value(b"\xc1")


def test_non_string_map_key_rejected():
    with pytest.raises(ValueError):
        unmarshal_value(b"\x81\x01\x02")


def test_unsupported_value_rejected():
    with pytest.raises(TypeError):
        marshal_value(object())


def test_truncated_value_rejected():
    with pytest.raises(EOFError):
        unmarshal_value(b"\xa5ab")