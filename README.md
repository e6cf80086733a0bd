# pgproto

Building blocks for the PostgreSQL wire protocol. The package uses only the
standard library. It has these modules:

- **`pgproto.frontend`** builds the messages a client sends to the server:
  `query`, `parse`, `bind`, `describe`, `execute`, `close`, `sync` and
  `terminate`, plus `startup_message`, `ssl_request` and `cancel_request`.
  It also builds `copy_data`, `copy_done` and `copy_fail`, and
  `password_message`, `sasl_initial_response` and `sasl_response`. Each
  function returns the complete message as `bytes`.
- **`pgproto.scalars`** encodes and decodes simple values in the binary
  format:
  - booleans, `bytea`, text and `"char"`;
  - `int2`, `int4`, `int8`, `oid` and `pg_lsn`;
  - `float4` and `float8`;
  - timestamps, dates and times, as raw counts since 2000-01-01 or midnight;
  - `macaddr` (6 bytes) and `uuid` (16 bytes).
- **`pgproto.compound`** encodes and decodes structured values: `hstore`,
  `varbit`/`bit`, arrays, ranges, `point`, `box`, `path` and `inet`.
- **`pgproto.authentication`** has `md5_hash`, which computes the reply to an
  MD5 password challenge.
- **`pgproto.escape`** quotes literals with `escape_literal` and identifiers
  with `escape_identifier`.
- **`pgproto.core`** holds the shared pieces: `ProtocolError`, `IsNull`,
  `write_nullable`, `checked_i16` and `checked_i32`.

The library assumes the server's `client_encoding` is `UTF8`.

## Installation

```
pip install pgproto
```

## Examples

### Escaping

```python
from pgproto.escape import escape_identifier, escape_literal

escape_literal("foo")         # "'foo'"
escape_literal("f'oo")        # "'f''oo'"
escape_literal("f\\oo")       # " E'f\\\\oo'"
escape_identifier('f"oo')     # '"f""oo"'
```

A literal that contains backslashes gets the ` E'...'` form, so it is correct
whatever `standard_conforming_strings` is set to.

### Building messages

```python
from pgproto import frontend

packet = frontend.query("SELECT 1")
startup = frontend.startup_message({"user": "postgres", "database": "postgres"})
extended = (
    frontend.parse("", "SELECT $1::int4", [23])
    + frontend.describe("S", "")
    + frontend.execute("", 0)
    + frontend.sync()
)
```

`startup_message` takes either a mapping or `(key, value)` pairs. `close` and
`describe` take the variant as `"S"` (statement) or `"P"` (portal), given as
a one-character string, a single byte or an integer.

A string that contains a NUL byte raises `pgproto.core.ProtocolError`.

`bind` takes a serializer `serializer(value, buf)`. It appends the value's
encoding to the `bytearray` and returns `IsNull.NO`, or returns `IsNull.YES`
for SQL `NULL`:

```python
from pgproto import frontend
from pgproto.core import IsNull
from pgproto.scalars import int4_to_sql

def serialize(value, buf):
    if value is None:
        return IsNull.YES
    buf += int4_to_sql(value)
    return IsNull.NO

message = frontend.bind("", "", [1], [42, None], serialize, [1])
```

Errors from `bind` are raised as follows:

- An exception raised inside the serializer becomes `ConversionError`.
- A count or length that does not fit the protocol's fields becomes
  `SerializationError`. It is also a `ProtocolError`.

Both are subclasses of `BindError`.

### Scalar values

```python
from pgproto.scalars import int4_from_sql, int4_to_sql, text_from_sql

data = int4_to_sql(0x01020304)
assert int4_from_sql(data) == 0x01020304
assert text_from_sql(b"hello") == "hello"
```

Decoders raise `ProtocolError` in these cases:

- the buffer is too short;
- the buffer has bytes left over;
- the buffer is not valid UTF-8 where text is expected.

Encoders raise `ProtocolError` when a number does not fit its type.

### Structured values

```python
from pgproto.compound import (
    ArrayDimension, RangeBound, array_from_sql, array_to_sql,
    hstore_from_sql, hstore_to_sql, inet_from_sql, inet_to_sql,
    range_from_sql, range_to_sql,
)
from pgproto.core import IsNull

data = hstore_to_sql({"hello": "world", "hola": None})
assert dict(hstore_from_sql(data)) == {"hello": "world", "hola": None}

def raw(value, buf):
    if value is None:
        return IsNull.YES
    buf += value
    return IsNull.NO

encoded = array_to_sql([ArrayDimension(2, 1)], 25, [None, b"hello"], raw)
array = array_from_sql(encoded)
assert array.has_nulls
assert list(array.values()) == [None, b"hello"]

rng = range_from_sql(range_to_sql(RangeBound.inclusive(b"\x00\x00\x00\x01"),
                                  RangeBound.unbounded()))
assert not rng.is_empty

inet = inet_from_sql(inet_to_sql("192.0.2.1", 24))
assert inet.netmask == 24
```

Reading is lazy for some results: the entries of `hstore_from_sql`, and the
values of `Array.values()`, `Array.dimensions()` and `Path.points()`. These
are iterators, and they raise `ProtocolError` when they reach malformed
data. An empty range is `Range()`, and `empty_range_to_sql()` encodes it.

### MD5 authentication

```python
from pgproto.authentication import md5_hash

md5_hash(b"md5_user", b"password", bytes([0x2A, 0x3D, 0x8F, 0xE0]))
# 'md562af4dd09bbb41884907a838a3233294'
```

Send the result with `frontend.password_message(...)`.

## What the package does not do

- It opens no connections and does no I/O. It does no TLS.
- It does not parse messages coming from the server.
- It does not compute a SCRAM-SHA-256 exchange. `sasl_initial_response` and
  `sasl_response` only frame data that the caller has already produced.
- It does not hash passwords for storage with `ALTER USER ... PASSWORD`.

## Running the tests

```
pip install "pgproto[test]"
pytest
```