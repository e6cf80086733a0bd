"""Binary encoding and decoding of fixed-size and simple Postgres values.

Every ``*_to_sql`` function returns the encoded value as ``bytes``; every
``*_from_sql`` function takes the raw bytes and raises
:class:`~pgproto.core.ProtocolError` when they are malformed.
"""

from __future__ import annotations

import struct

from .core import Lsn, Oid, ProtocolError

_INVALID_SIZE = "invalid buffer size"
_SHORT_BUFFER = "failed to fill whole buffer"


def _pack(fmt: str, value: int | float) -> bytes:
    try:
        return struct.pack(fmt, value)
    except (struct.error, OverflowError) as exc:
        raise ProtocolError(f"value out of range: {value!r}") from exc


def _unpack(fmt: str, buf: bytes, trailing_message: str = _INVALID_SIZE) -> int | float:
    data = bytes(buf)
    size = struct.calcsize(fmt)
    if len(data) < size:
        raise ProtocolError(_SHORT_BUFFER)
    if len(data) > size:
        raise ProtocolError(trailing_message)
    return struct.unpack(fmt, data)[0]


def _fixed(buf: bytes, size: int, message: str) -> bytes:
    data = bytes(buf)
    if len(data) != size:
        raise ProtocolError(message)
    return data


def bool_to_sql(value: bool) -> bytes:
    """Serialize a ``BOOL`` value."""
    return b"\x01" if value else b"\x00"


def bool_from_sql(buf: bytes) -> bool:
    """Deserialize a ``BOOL`` value."""
    data = _fixed(buf, 1, _INVALID_SIZE)
    return data[0] != 0


def bytea_to_sql(value: bytes) -> bytes:
    """Serialize a ``BYTEA`` value."""
    return bytes(value)


def bytea_from_sql(buf: bytes) -> bytes:
    """Deserialize a ``BYTEA`` value."""
    return bytes(buf)


def text_to_sql(value: str) -> bytes:
    """Serialize a ``TEXT``, ``VARCHAR``, ``CHAR(n)``, ``NAME`` or ``CITEXT`` value."""
    return value.encode("utf-8")


def text_from_sql(buf: bytes) -> str:
    """Deserialize a ``TEXT``, ``VARCHAR``, ``CHAR(n)``, ``NAME`` or ``CITEXT`` value."""
    try:
        return bytes(buf).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ProtocolError(str(exc)) from exc


def char_to_sql(value: int) -> bytes:
    """Serialize a ``"char"`` value (a signed byte)."""
    return _pack(">b", value)


def char_from_sql(buf: bytes) -> int:
    """Deserialize a ``"char"`` value (a signed byte)."""
    return int(_unpack(">b", buf))


def int2_to_sql(value: int) -> bytes:
    """Serialize an ``INT2`` value."""
    return _pack(">h", value)


def int2_from_sql(buf: bytes) -> int:
    """Deserialize an ``INT2`` value."""
    return int(_unpack(">h", buf))


def int4_to_sql(value: int) -> bytes:
    """Serialize an ``INT4`` value."""
    return _pack(">i", value)


def int4_from_sql(buf: bytes) -> int:
    """Deserialize an ``INT4`` value."""
    return int(_unpack(">i", buf))


def oid_to_sql(value: Oid) -> bytes:
    """Serialize an ``OID`` value."""
    return _pack(">I", value)


def oid_from_sql(buf: bytes) -> Oid:
    """Deserialize an ``OID`` value."""
    return int(_unpack(">I", buf))


def int8_to_sql(value: int) -> bytes:
    """Serialize an ``INT8`` value."""
    return _pack(">q", value)


def int8_from_sql(buf: bytes) -> int:
    """Deserialize an ``INT8`` value."""
    return int(_unpack(">q", buf))


def lsn_to_sql(value: Lsn) -> bytes:
    """Serialize a ``PG_LSN`` value."""
    return _pack(">Q", value)


def lsn_from_sql(buf: bytes) -> Lsn:
    """Deserialize a ``PG_LSN`` value."""
    return int(_unpack(">Q", buf))


def float4_to_sql(value: float) -> bytes:
    """Serialize a ``FLOAT4`` value."""
    return _pack(">f", value)


def float4_from_sql(buf: bytes) -> float:
    """Deserialize a ``FLOAT4`` value."""
    return float(_unpack(">f", buf))


def float8_to_sql(value: float) -> bytes:
    """Serialize a ``FLOAT8`` value."""
    return _pack(">d", value)


def float8_from_sql(buf: bytes) -> float:
    """Deserialize a ``FLOAT8`` value."""
    return float(_unpack(">d", buf))


def timestamp_to_sql(value: int) -> bytes:
    """Serialize a ``TIMESTAMP`` or ``TIMESTAMPTZ`` value.

    The value is the number of microseconds since midnight, January 1st, 2000.
    """
    return _pack(">q", value)


def timestamp_from_sql(buf: bytes) -> int:
    """Deserialize a ``TIMESTAMP`` or ``TIMESTAMPTZ`` value.

    The value is the number of microseconds since midnight, January 1st, 2000.
    """
    return int(_unpack(">q", buf, "invalid message length: timestamp not drained"))


def date_to_sql(value: int) -> bytes:
    """Serialize a ``DATE`` value: the number of days since January 1st, 2000."""
    return _pack(">i", value)


def date_from_sql(buf: bytes) -> int:
    """Deserialize a ``DATE`` value: the number of days since January 1st, 2000."""
    return int(_unpack(">i", buf, "invalid message length: date not drained"))


def time_to_sql(value: int) -> bytes:
    """Serialize a ``TIME`` or ``TIMETZ`` value: microseconds since midnight."""
    return _pack(">q", value)


def time_from_sql(buf: bytes) -> int:
    """Deserialize a ``TIME`` or ``TIMETZ`` value: microseconds since midnight."""
    return int(_unpack(">q", buf, "invalid message length: time not drained"))


def macaddr_to_sql(value: bytes) -> bytes:
    """Serialize a ``MACADDR`` value given as six bytes."""
    return _fixed(value, 6, "macaddr must be exactly 6 bytes")


def macaddr_from_sql(buf: bytes) -> bytes:
    """Deserialize a ``MACADDR`` value into six bytes."""
    return _fixed(buf, 6, "invalid message length: macaddr length mismatch")


def uuid_to_sql(value: bytes) -> bytes:
    """Serialize a ``UUID`` value given as sixteen bytes."""
    return _fixed(value, 16, "uuid must be exactly 16 bytes")


def uuid_from_sql(buf: bytes) -> bytes:
    """Deserialize a ``UUID`` value into sixteen bytes."""
    return _fixed(buf, 16, "invalid message length: uuid size mismatch")