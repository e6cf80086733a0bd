import struct

import pytest

from pgproto.core import IsNull, ProtocolError
from pgproto.frontend import (
    BindError,
    ConversionError,
    SerializationError,
    bind,
    cancel_request,
    close,
    copy_data,
    copy_done,
    copy_fail,
    describe,
    execute,
    parse,
    password_message,
    query,
    sasl_initial_response,
    sasl_response,
    ssl_request,
    startup_message,
    sync,
    terminate,
)


def _split(msg: bytes) -> tuple[bytes, bytes]:
    """Return the tag and body of a tagged message, checking its length field."""
    tag = msg[:1]
    (length,) = struct.unpack(">i", msg[1:5])
    assert length == len(msg) - 1
    return tag, msg[5:]


def _untagged(msg: bytes) -> bytes:
    (length,) = struct.unpack(">i", msg[:4])
    assert length == len(msg)
    return msg[4:]


@pytest.mark.parametrize(
    ("builder", "tag"),
    [(sync, b"S"), (terminate, b"X"), (copy_done, b"c")],
)
def test_empty_messages(builder, tag):
    assert _split(builder()) == (tag, b"")


def test_query():
    assert _split(query("SELECT 1")) == (b"Q", b"SELECT 1\x00")


def test_query_rejects_embedded_null():
    with pytest.raises(ProtocolError, match="embedded null"):
        query("SELECT\x001")


def test_parse():
    tag, body = _split(parse("stmt", "SELECT $1", [23, 25]))
    assert tag == b"P"
    prefix = b"stmt\x00SELECT $1\x00"
    assert body.startswith(prefix)
    rest = body[len(prefix):]
    (count,) = struct.unpack(">h", rest[:2])
    assert count == 2
    assert struct.unpack(">II", rest[2:]) == (23, 25)


def _text_serializer(value, buf):
    if value is None:
        return IsNull.YES
    buf.extend(value)
    return IsNull.NO


def test_bind_layout():
    tag, body = _split(bind("portal", "stmt", [1], [b"hi", None], _text_serializer, [1]))
    assert tag == b"B"
    prefix = b"portal\x00stmt\x00"
    assert body.startswith(prefix)
    rest = body[len(prefix):]

    assert struct.unpack(">hh", rest[:4]) == (1, 1)
    rest = rest[4:]
    (num_values,) = struct.unpack(">h", rest[:2])
    assert num_values == 2
    rest = rest[2:]

    (first_len,) = struct.unpack(">i", rest[:4])
    assert rest[4 : 4 + first_len] == b"hi"
    rest = rest[4 + first_len :]
    (second_len,) = struct.unpack(">i", rest[:4])
    assert second_len == -1
    rest = rest[4:]

    assert struct.unpack(">hh", rest) == (1, 1)


def test_bind_conversion_error():
    def failing(value, buf):
        raise ValueError("bad value")

    with pytest.raises(ConversionError, match="bad value"):
        bind("", "", [], [1], failing, [])


def test_bind_serialization_error():
    with pytest.raises(SerializationError) as info:
        bind("por\x00tal", "", [], [], _text_serializer, [])
    assert isinstance(info.value, BindError)
    assert isinstance(info.value, ProtocolError)


def test_cancel_request():
    body = _untagged(cancel_request(1234, 5678))
    assert struct.unpack(">iii", body) == (80_877_102, 1234, 5678)


def test_ssl_request():
    body = _untagged(ssl_request())
    assert struct.unpack(">i", body) == (80_877_103,)


def test_startup_message():
    body = _untagged(startup_message([("user", "postgres"), ("database", "db")]))
    (version,) = struct.unpack(">i", body[:4])
    assert version == 196608
    assert body[4:] == b"user\x00postgres\x00database\x00db\x00\x00"


def test_startup_message_accepts_mapping():
    pairs = [("user", "postgres")]
    assert startup_message(dict(pairs)) == startup_message(pairs)


@pytest.mark.parametrize(("builder", "tag"), [(close, b"C"), (describe, b"D")])
def test_close_and_describe(builder, tag):
    assert _split(builder(b"S", "stmt")) == (tag, b"Sstmt\x00")
    assert builder(ord("P"), "p") == builder("P", "p")


def test_close_rejects_long_variant():
    with pytest.raises(ProtocolError):
        close(b"SP", "stmt")


def test_execute():
    tag, body = _split(execute("portal", 10))
    assert tag == b"E"
    assert body[: len(b"portal\x00")] == b"portal\x00"
    assert struct.unpack(">i", body[len(b"portal\x00"):]) == (10,)


def test_copy_data():
    assert _split(copy_data(b"1\t2\n")) == (b"d", b"1\t2\n")


def test_copy_fail():
    assert _split(copy_fail("oops")) == (b"f", b"oops\x00")


def test_password_message():
    password = b"password"
    assert _split(password_message(password)) == (b"p", password + b"\x00")


def test_sasl_initial_response():
    data = b"n,,n=,r=abc"
    tag, body = _split(sasl_initial_response("SCRAM-SHA-256", data))
    assert tag == b"p"
    prefix = b"SCRAM-SHA-256\x00"
    assert body.startswith(prefix)
    rest = body[len(prefix):]
    assert struct.unpack(">i", rest[:4]) == (len(data),)
    assert rest[4:] == data


def test_sasl_response():
    assert _split(sasl_response(b"c=biws")) == (b"p", b"c=biws")