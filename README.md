# openplant

A pure-Python toolkit for the OpenPlant real-time database wire protocol:
codecs, request encoding, logged-in TCP connections, a connection pool and a
point cache. It uses only the standard library.

## Modules

- `openplant.errors` – `OpenPlantError` with an `ErrorKind` (validation,
  protocol, network, timeout, canceled, server, decode, unsupported, closed),
  `ClosedError`, and the helpers `validation_error`, `server_error`, `is_kind`,
  `classify_error` and `should_drop`.
- `openplant.binary` – big-endian packing (`pack_int32`, `unpack_float64`,
  `pack_datetime`, ...) and the stream helpers `BinaryReader` / `BinaryWriter`.
- `openplant.mpack` – the msgpack subset the server speaks: `Encoder`,
  `Decoder`, `Extension`, `marshal_value` and `unmarshal_value`. Maps are
  written with their keys sorted.
- `openplant.dataset` – columnar rows: `Column`, `ValueType`, `encode_row`,
  `decode_row`, `RowDecoder`, `encode_dataset`, `decode_dataset`,
  `encode_columns` and `decode_columns`.
- `openplant.frame` – message framing with `FrameWriter` and `FrameReader`
  (frames of at most 65535 bytes).
- `openplant.constants` – `Command`, `URL`, `Flag`, property names
  (`PROP_TABLE`, ...), actions (`ACTION_SELECT`, ...) and system table names.
- `openplant.login` – the login handshake: `parse_challenge`,
  `build_login_reply`, `scramble_password`, `parse_login_result`,
  `version_string` and the reading/writing variants that take a
  `time.monotonic()` deadline.
- `openplant.request` – `Request`, `new_request`, `Response` and
  `decode_response`, which raises the server's error when the reply carries one.
- `openplant.table_select` – `TableSelectRequest`, `Indexes`, `Filter` and
  `encode_index_payload`; an `Indexes` must hold exactly one kind of value.
- `openplant.table_mutation` – `TableMutationRequest` for insert, update,
  replace and delete, with rows encoded against their columns.
- `openplant.rowconv` – lenient conversion of row values: `to_int16`,
  `to_int32`, `to_int64`, `to_float64`, `to_string` and `to_time`.
- `openplant.cache` – `PointCache`, a thread-safe cache keyed by database plus
  GN and by database plus point ID, with an optional TTL in seconds and an
  optional entry limit. Cached points are any objects with `id` and `gn`
  attributes.
- `openplant.config` – `Config`: host, port, credentials, timeouts in seconds,
  pool sizing and an optional `dial` function; `with_defaults()` fills in
  10 s dial timeout, 30 s request timeout, pool size 4, 5 min idle timeout and
  30 min lifetime.
- `openplant.connection` – `Connection` and `dial`, which connects and logs in.
  Connections offer `request`, `request_echo`, `request_stream`,
  `write_message`, `read_message`, `read_echo`, `alive` and `close`, and work
  as context managers.
- `openplant.pool` – `Pool` with `acquire`, `release`, `discard`, `close` and
  `stats` (a `PoolStats`). Released connections are dropped when the error
  passed with them makes them unsafe, or when they have outlived their idle
  timeout or lifetime.

## Installing

```
pip install .
```

## Example

```python
from openplant.config import Config
from openplant.pool import Pool
from openplant.request import decode_response
from openplant.table_select import Indexes, TableSelectRequest

password = "password"
config = Config(host="localhost", port=8200, user="user", password=password)
pool = Pool(config)

request = TableSelectRequest(
    db="W3",
    table="W3.Realtime",
    columns=["ID", "GN", "TM", "AV"],
    indexes=Indexes(key="ID", int32=[1001, 1002]),
)

conn = pool.acquire(timeout=5.0)
error = None
try:
    response = decode_response(conn.request(request.encode(), timeout=10.0))
    for row in response.rows():
        print(row["GN"], row["AV"])
except Exception as exc:
    error = exc
    raise
finally:
    pool.release(conn, error)
    pool.close()
```

## Errors

Protocol, network, timeout, server and validation failures are raised as
`openplant.errors.OpenPlantError` with a matching `ErrorKind`. The low-level
codecs also raise plain `ValueError`, `TypeError` and `EOFError` on malformed
input. `should_drop(error)` tells whether a connection that saw an error
should be thrown away.

## What it does not do

- There is no high-level API for points, nodes, realtime values, archives,
  statistics, alarms or subscriptions; callers build `TableSelectRequest` /
  `TableMutationRequest` payloads and read rows from `Response` themselves.
- There is no SQL query builder and no command-line tool.
- Frame compression is not supported: a frame that uses any mode other than
  `CompressionMode.NONE` raises `UnsupportedCompressionError`.

## Running the tests

```
pip install .[test]
pytest
```