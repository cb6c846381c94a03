"""Login handshake of the OpenPlant protocol.

Functions that read or write take an optional ``deadline``: an absolute
``time.monotonic()`` value after which the operation fails with a timeout.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass

from openplant.binary import pack_int16, unpack_int32
from openplant.errors import ErrorKind, OpenPlantError, classify_error, server_error
from openplant.frame import FrameReader, FrameWriter

CHALLENGE_SIZE = 100
LOGIN_REPLY_SIZE = 100
LOGIN_RESPONSE_SIZE = 16

_RANDOM_SIZE = 20
_MAX_USER = 16


@dataclass(frozen=True)
class Challenge:
    """The server greeting that opens a connection."""

    info: str = ""
    random: bytes = bytes(_RANDOM_SIZE)
    version: int = 0
    raw: bytes = bytes(CHALLENGE_SIZE)


@dataclass(frozen=True)
class LoginResult:
    """What the server reports after a successful login."""

    client_address: str
    version: int
    info: str


def _expired(op: str, deadline: float | None) -> OpenPlantError | None:
    if deadline is not None and time.monotonic() >= deadline:
        return OpenPlantError(ErrorKind.TIMEOUT, op, "deadline exceeded")
    return None


def _read_exact(reader: FrameReader, size: int, op: str, deadline: float | None) -> bytes:
    error = _expired(op, deadline)
    if error is not None:
        raise error
    try:
        return reader.read_exact(size)
    except OpenPlantError:
        raise
    except (OSError, EOFError) as err:
        error = _expired(op, deadline)
        if error is not None:
            raise error from err
        raise classify_error(op, err) from err


def read_challenge(reader: FrameReader, deadline: float | None = None) -> Challenge:
    """Read and parse the server challenge."""
    raw = _read_exact(reader, CHALLENGE_SIZE, "protocol.read_challenge", deadline)
    return parse_challenge(raw)


def parse_challenge(raw: bytes) -> Challenge:
    """Parse a 100-byte challenge."""
    raw = bytes(raw)
    if len(raw) != CHALLENGE_SIZE:
        raise OpenPlantError(ErrorKind.PROTOCOL, "protocol.parse_challenge", "challenge must be 100 bytes")
    info = raw[:60].rstrip(b"\x00").decode("utf-8", "replace")
    return Challenge(
        info=info,
        random=raw[64:84],
        version=unpack_int32(raw[96:100]),
        raw=raw,
    )


def build_login_reply(user: str, password: str, random: bytes) -> bytes:
    """Build the 100-byte login reply carrying the user and scrambled password."""
    user_bytes = user.encode("utf-8")
    if len(user_bytes) > _MAX_USER:
        raise OpenPlantError(ErrorKind.VALIDATION, "protocol.build_login_reply", "user must be at most 16 bytes")
    out = bytearray(LOGIN_REPLY_SIZE)
    out[44:44 + len(user_bytes)] = user_bytes
    if password:
        if len(random) != _RANDOM_SIZE:
            raise OpenPlantError(ErrorKind.PROTOCOL, "protocol.build_login_reply", "server random must be 20 bytes")
        reply = scramble_password(random, password.encode("utf-8"))
        out[60:62] = pack_int16(len(reply))
        out[62:62 + len(reply)] = reply
    return bytes(out)


def write_login_reply(
    writer: FrameWriter, user: str, password: str, random: bytes, deadline: float | None = None
) -> None:
    """Build the login reply and send it as one message."""
    op = "protocol.write_login_reply"
    reply = build_login_reply(user, password, random)
    error = _expired(op, deadline)
    if error is not None:
        raise error
    try:
        writer.write_message(reply)
    except OpenPlantError:
        raise
    except OSError as err:
        raise OpenPlantError(ErrorKind.NETWORK, op, str(err)) from err


def read_login_result(reader: FrameReader, challenge: Challenge, deadline: float | None = None) -> LoginResult:
    """Read and parse the server's answer to the login reply."""
    raw = _read_exact(reader, LOGIN_RESPONSE_SIZE, "protocol.read_login_result", deadline)
    return parse_login_result(raw, challenge)


def parse_login_result(raw: bytes, challenge: Challenge) -> LoginResult:
    """Parse a 16-byte login response; raise a server error if login failed."""
    raw = bytes(raw)
    if len(raw) != LOGIN_RESPONSE_SIZE:
        raise OpenPlantError(
            ErrorKind.PROTOCOL, "protocol.parse_login_result", "login response must be 16 bytes"
        )
    code = unpack_int32(raw[8:12])
    if code != 0:
        raise server_error("protocol.parse_login_result", code, "OpenPlant login failed")
    return LoginResult(
        client_address=".".join(str(b) for b in raw[4:8]),
        version=challenge.version,
        info=challenge.info,
    )


def scramble_password(random: bytes, password: bytes) -> bytes:
    """Scramble a password against the server random, SHA-1 challenge style."""
    stage1 = hashlib.sha1(password).digest()
    stage2 = hashlib.sha1(stage1).digest()
    stage3 = hashlib.sha1(bytes(random) + stage2).digest()
    return bytes(a ^ b for a, b in zip(stage3, stage1))


def version_string(version: int) -> str:
    """Format a packed server version as major.minor.patch."""
    return f"{(version >> 16) & 0xFF}.{(version >> 8) & 0xFF}.{version & 0xFF}"