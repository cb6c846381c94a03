import io
import time

import pytest

from openplant.binary import pack_int32, unpack_int16
from openplant.errors import ErrorKind, is_kind
from openplant.frame import CompressionMode, FrameReader, FrameWriter
from openplant.login import (
    CHALLENGE_SIZE,
    LOGIN_RESPONSE_SIZE,
    Challenge,
    build_login_reply,
    parse_challenge,
    parse_login_result,
    read_challenge,
    read_login_result,
    scramble_password,
    version_string,
    write_login_reply,
)


def _challenge_bytes(info=b"openPlant test", version=0x00050102):
    raw = bytearray(CHALLENGE_SIZE)
    raw[: len(info)] = info
    raw[64:84] = bytes(range(1, 21))
    raw[96:100] = pack_int32(version)
    return bytes(raw)


def test_challenge_and_login_reply():
    challenge = parse_challenge(_challenge_bytes())
    assert challenge.info == "openPlant test"
    assert version_string(challenge.version) == "5.1.2"
    assert challenge.random == bytes(range(1, 21))

    password = "password"
    reply = build_login_reply("test-user", password, challenge.random)
    assert len(reply) == 100
    assert reply[44:60].rstrip(b"\x00") == b"test-user"
    assert unpack_int16(reply[60:62]) == 20
    assert reply[62:82] == scramble_password(challenge.random, b"password")


def test_version_string_of_pipe_server():
    assert version_string(0x00050004) == "5.0.4"


def test_parse_login_result():
    challenge = Challenge(info="server", version=0x00050004)
    raw = bytearray(LOGIN_RESPONSE_SIZE)
    raw[4:8] = bytes([127, 0, 0, 1])
    result = parse_login_result(bytes(raw), challenge)
    assert result.client_address == "127.0.0.1"
    assert result.info == "server"
    assert result.version == challenge.version

    raw[8:12] = pack_int32(-7)
    with pytest.raises(Exception) as exc:
        parse_login_result(bytes(raw), challenge)
    assert is_kind(exc.value, ErrorKind.SERVER)
    assert exc.value.code == -7


def test_parse_challenge_rejects_wrong_size():
    with pytest.raises(Exception) as exc:
        parse_challenge(bytes(10))
    assert is_kind(exc.value, ErrorKind.PROTOCOL)


def test_parse_login_result_rejects_wrong_size():
    with pytest.raises(Exception) as exc:
        parse_login_result(bytes(3), Challenge())
    assert is_kind(exc.value, ErrorKind.PROTOCOL)


def test_build_login_reply_rejects_long_user():
    with pytest.raises(Exception) as exc:
        build_login_reply("u" * 17, "", b"")
    assert is_kind(exc.value, ErrorKind.VALIDATION)


def test_build_login_reply_rejects_short_random():
    password = "password"
    with pytest.raises(Exception) as exc:
        build_login_reply("user", password, b"\x01\x02")
    assert is_kind(exc.value, ErrorKind.PROTOCOL)


def test_build_login_reply_without_password_leaves_scramble_empty():
    reply = build_login_reply("user", "", b"")
    assert reply[60:82] == bytes(22)


def test_scramble_password_is_deterministic_and_random_dependent():
    first = scramble_password(bytes(range(20)), b"password")
    assert len(first) == 20
    assert first == scramble_password(bytes(range(20)), b"password")
    assert first != scramble_password(bytes(range(1, 21)), b"password")


def test_read_challenge_from_frames():
    buf = io.BytesIO()
    FrameWriter(buf, CompressionMode.NONE).write_message(_challenge_bytes(b"pipe server", 0x00050004))
    buf.seek(0)
    challenge = read_challenge(FrameReader(buf))
    assert challenge.info == "pipe server"
    assert version_string(challenge.version) == "5.0.4"


def test_read_challenge_on_empty_stream_is_network_error():
    with pytest.raises(Exception) as exc:
        read_challenge(FrameReader(io.BytesIO(b"")))
    assert is_kind(exc.value, ErrorKind.NETWORK)


def test_read_login_result_classifies_expired_deadline():
    with pytest.raises(Exception) as exc:
        read_login_result(FrameReader(io.BytesIO(b"")), Challenge(), deadline=time.monotonic() - 1)
    assert is_kind(exc.value, ErrorKind.TIMEOUT)


def test_write_login_reply_round_trip():
    random = bytes(range(1, 21))
    password = "password"
    buf = io.BytesIO()
    write_login_reply(FrameWriter(buf), "test-user", password, random)
    buf.seek(0)
    received = FrameReader(buf).read_message()
    assert received == build_login_reply("test-user", password, random)


def test_write_login_reply_expired_deadline():
    buf = io.BytesIO()
    with pytest.raises(Exception) as exc:
        write_login_reply(FrameWriter(buf), "user", "", b"", deadline=time.monotonic() - 1)
    assert is_kind(exc.value, ErrorKind.TIMEOUT)
    assert buf.getvalue() == b""


def test_read_login_result_from_frames():
    raw = bytearray(LOGIN_RESPONSE_SIZE)
    raw[4:8] = bytes([10, 1, 2, 3])
    buf = io.BytesIO()
    FrameWriter(buf).write_message(bytes(raw))
    buf.seek(0)
    result = read_login_result(FrameReader(buf), Challenge(info="pipe", version=0x00050004))
    assert result.client_address == "10.1.2.3"
    assert result.info == "pipe"