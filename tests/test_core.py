import struct

import pytest

from pgproto.core import IsNull, ProtocolError, checked_i16, checked_i32, write_nullable


def _length(data: bytes) -> int:
    return struct.unpack(">i", data[:4])[0]


def test_checked_i16_accepts_maximum():
    assert checked_i16(2**15 - 1) == 2**15 - 1


def test_checked_i16_rejects_overflow():
    with pytest.raises(ProtocolError, match="value too large to transmit"):
        checked_i16(2**15)


def test_checked_i32_accepts_maximum():
    assert checked_i32(2**31 - 1) == 2**31 - 1


def test_checked_i32_rejects_overflow():
    with pytest.raises(ProtocolError):
        checked_i32(2**31)


def test_write_nullable_value():
    def serializer(buf):
        buf.extend(b"abc")
        return IsNull.NO

    out = write_nullable(serializer)
    assert out[4:] == b"abc"
    assert _length(out) == len(b"abc")


def test_write_nullable_null():
    out = write_nullable(lambda buf: IsNull.YES)
    assert _length(out) == -1
    assert out[4:] == b""


def test_write_nullable_empty_value_is_not_null():
    out = write_nullable(lambda buf: IsNull.NO)
    assert _length(out) == len(out) - 4


def test_protocol_error_is_value_error():
    with pytest.raises(ValueError):
        checked_i16(2**20)