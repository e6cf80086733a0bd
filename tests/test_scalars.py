import pytest

from pgproto.core import ProtocolError
from pgproto.scalars import (
    bool_from_sql,
    bool_to_sql,
    bytea_from_sql,
    bytea_to_sql,
    char_from_sql,
    char_to_sql,
    date_from_sql,
    date_to_sql,
    float4_from_sql,
    float4_to_sql,
    float8_from_sql,
    float8_to_sql,
    int2_from_sql,
    int2_to_sql,
    int4_from_sql,
    int4_to_sql,
    int8_from_sql,
    int8_to_sql,
    lsn_from_sql,
    lsn_to_sql,
    macaddr_from_sql,
    macaddr_to_sql,
    oid_from_sql,
    oid_to_sql,
    text_from_sql,
    text_to_sql,
    time_from_sql,
    time_to_sql,
    timestamp_from_sql,
    timestamp_to_sql,
    uuid_from_sql,
    uuid_to_sql,
)


def test_bool_round_trip():
    assert bool_from_sql(bool_to_sql(True)) is True
    assert bool_from_sql(bool_to_sql(False)) is False


def test_bool_encoding():
    assert bool_to_sql(True) == b"\x01"
    assert bool_to_sql(False) == b"\x00"


def test_bool_invalid_size():
    with pytest.raises(ProtocolError, match="invalid buffer size"):
        bool_from_sql(b"\x01\x00")
    with pytest.raises(ProtocolError):
        bool_from_sql(b"")


def test_int2():
    buf = int2_to_sql(0x0102)
    assert buf == b"\x01\x02"
    assert int2_from_sql(buf) == 0x0102


def test_int4():
    buf = int4_to_sql(0x0102_0304)
    assert buf == b"\x01\x02\x03\x04"
    assert int4_from_sql(buf) == 0x0102_0304


def test_int8():
    buf = int8_to_sql(0x0102_0304_0506_0708)
    assert buf == b"\x01\x02\x03\x04\x05\x06\x07\x08"
    assert int8_from_sql(buf) == 0x0102_0304_0506_0708


def test_float4():
    assert float4_from_sql(float4_to_sql(10343.95)) == pytest.approx(10343.95, rel=1e-6)
    assert len(float4_to_sql(10343.95)) == 4


def test_float8():
    assert float8_from_sql(float8_to_sql(10343.95)) == 10343.95
    assert len(float8_to_sql(10343.95)) == 8


def test_negative_integers_round_trip():
    assert int2_from_sql(int2_to_sql(-1)) == -1
    assert int2_to_sql(-1) == b"\xff\xff"
    assert int4_from_sql(int4_to_sql(-123456)) == -123456
    assert int8_from_sql(int8_to_sql(-(2**63))) == -(2**63)


def test_integer_out_of_range():
    with pytest.raises(ProtocolError):
        int2_to_sql(2**15)
    with pytest.raises(ProtocolError):
        int4_to_sql(2**31)
    with pytest.raises(ProtocolError):
        oid_to_sql(-1)


def test_trailing_data_rejected():
    with pytest.raises(ProtocolError, match="invalid buffer size"):
        int4_from_sql(b"\x00\x00\x00\x01\x00")


def test_short_buffer_rejected():
    with pytest.raises(ProtocolError):
        int8_from_sql(b"\x00\x01")


def test_char():
    assert char_to_sql(-5) == b"\xfb"
    assert char_from_sql(char_to_sql(-5)) == -5
    assert char_from_sql(b"A") == 65
    with pytest.raises(ProtocolError):
        char_from_sql(b"")
    with pytest.raises(ProtocolError):
        char_to_sql(200)


def test_oid_and_lsn():
    assert oid_from_sql(oid_to_sql(2**32 - 1)) == 2**32 - 1
    assert oid_to_sql(25) == b"\x00\x00\x00\x19"
    assert lsn_from_sql(lsn_to_sql(2**64 - 1)) == 2**64 - 1
    with pytest.raises(ProtocolError):
        lsn_from_sql(b"\x00" * 9)


def test_bytea_and_text():
    assert bytea_from_sql(bytea_to_sql(b"\x00\xffabc")) == b"\x00\xffabc"
    assert text_to_sql("héllo") == "héllo".encode("utf-8")
    assert text_from_sql(text_to_sql("héllo")) == "héllo"


def test_text_invalid_utf8():
    with pytest.raises(ProtocolError):
        text_from_sql(b"\xff\xfe")


def test_timestamp_date_time():
    assert timestamp_from_sql(timestamp_to_sql(-1_000_000)) == -1_000_000
    assert date_from_sql(date_to_sql(7305)) == 7305
    assert time_from_sql(time_to_sql(86_399_999_999)) == 86_399_999_999


def test_timestamp_date_time_errors():
    with pytest.raises(ProtocolError, match="timestamp not drained"):
        timestamp_from_sql(b"\x00" * 9)
    with pytest.raises(ProtocolError, match="date not drained"):
        date_from_sql(b"\x00" * 5)
    with pytest.raises(ProtocolError, match="time not drained"):
        time_from_sql(b"\x00" * 10)


def test_macaddr():
    addr = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])
    assert macaddr_to_sql(addr) == addr
    assert macaddr_from_sql(macaddr_to_sql(addr)) == addr
    with pytest.raises(ProtocolError, match="macaddr length mismatch"):
        macaddr_from_sql(b"\x00" * 5)


def test_uuid():
    value = bytes(range(16))
    assert uuid_from_sql(uuid_to_sql(value)) == value
    with pytest.raises(ProtocolError, match="uuid size mismatch"):
        uuid_from_sql(b"\x00" * 15)
    with pytest.raises(ProtocolError):
        uuid_to_sql(b"\x00" * 17)