"""Serialization of messages sent from the client to the server.

Every function returns the complete encoded message as ``bytes``.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .core import IsNull, Oid, ProtocolError, checked_i16, checked_i32, write_nullable

_CANCEL_REQUEST_CODE = 80_877_102
_SSL_REQUEST_CODE = 80_877_103
_PROTOCOL_VERSION = 0x00_03_00_00


class BindError(Exception):
    """Raised when a ``Bind`` message cannot be built."""


class ConversionError(BindError):
    """A parameter value could not be converted by the serializer."""


class SerializationError(BindError, ProtocolError):
    """The message could not be encoded on the wire."""


def _body(payload: bytes) -> bytes:
    return struct.pack(">i", checked_i32(len(payload) + 4)) + payload


def _message(tag: bytes, payload: bytes) -> bytes:
    return tag + _body(payload)


def _cstr(data: bytes | str) -> bytes:
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    if b"\x00" in raw:
        raise ProtocolError("string contains embedded null")
    return raw + b"\x00"


def _counted(encoded: Iterable[bytes]) -> bytes:
    parts = list(encoded)
    return struct.pack(">h", checked_i16(len(parts))) + b"".join(parts)


def _variant(variant: int | bytes | str) -> bytes:
    if isinstance(variant, int):
        return bytes([variant])
    raw = variant.encode("ascii") if isinstance(variant, str) else bytes(variant)
    if len(raw) != 1:
        raise ProtocolError("variant must be a single byte")
    return raw


def bind(
    portal: str,
    statement: str,
    formats: Iterable[int],
    values: Iterable[Any],
    serializer: Callable[[Any, bytearray], IsNull],
    result_formats: Iterable[int],
) -> bytes:
    """Build a ``Bind`` message.

    ``serializer(value, buf)`` appends each value's encoding to ``buf`` and
    returns :class:`IsNull`. Errors it raises become :class:`ConversionError`;
    encoding failures become :class:`SerializationError`.
    """

    def encode_value(value: Any) -> bytes:
        def convert(buf: bytearray) -> IsNull:
            try:
                return serializer(value, buf)
            except Exception as exc:
                raise ConversionError(str(exc)) from exc

        return write_nullable(convert)

    try:
        payload = b"".join(
            [
                _cstr(portal),
                _cstr(statement),
                _counted(struct.pack(">h", f) for f in formats),
                _counted(encode_value(v) for v in values),
                _counted(struct.pack(">h", f) for f in result_formats),
            ]
        )
        return _message(b"B", payload)
    except ConversionError:
        raise
    except (ProtocolError, struct.error) as exc:
        raise SerializationError(str(exc)) from exc


def cancel_request(process_id: int, secret_key: int) -> bytes:
    """Build a ``CancelRequest`` message."""
    return _body(struct.pack(">iii", _CANCEL_REQUEST_CODE, process_id, secret_key))


def close(variant: int | bytes | str, name: str) -> bytes:
    """Build a ``Close`` message for a statement (``S``) or portal (``P``)."""
    return _message(b"C", _variant(variant) + _cstr(name))


def copy_data(data: bytes) -> bytes:
    """Build a ``CopyData`` message carrying ``data``."""
    length = len(data) + 4
    if length > 2**31 - 1:
        raise ProtocolError("message length overflow")
    return b"d" + struct.pack(">i", length) + bytes(data)


def copy_done() -> bytes:
    """Build a ``CopyDone`` message."""
    return _message(b"c", b"")


def copy_fail(message: str) -> bytes:
    """Build a ``CopyFail`` message."""
    return _message(b"f", _cstr(message))


def describe(variant: int | bytes | str, name: str) -> bytes:
    """Build a ``Describe`` message for a statement (``S``) or portal (``P``)."""
    return _message(b"D", _variant(variant) + _cstr(name))


def execute(portal: str, max_rows: int) -> bytes:
    """Build an ``Execute`` message."""
    return _message(b"E", _cstr(portal) + struct.pack(">i", max_rows))


def parse(name: str, query: str, param_types: Iterable[Oid]) -> bytes:
    """Build a ``Parse`` message."""
    types = _counted(struct.pack(">I", oid) for oid in param_types)
    return _message(b"P", _cstr(name) + _cstr(query) + types)


def password_message(password: bytes) -> bytes:
    """Build a ``PasswordMessage``."""
    return _message(b"p", _cstr(password))


def query(query: str) -> bytes:
    """Build a simple ``Query`` message."""
    return _message(b"Q", _cstr(query))


def sasl_initial_response(mechanism: str, data: bytes) -> bytes:
    """Build a ``SASLInitialResponse`` message."""
    payload = _cstr(mechanism) + struct.pack(">i", checked_i32(len(data))) + bytes(data)
    return _message(b"p", payload)


def sasl_response(data: bytes) -> bytes:
    """Build a ``SASLResponse`` message."""
    return _message(b"p", bytes(data))


def ssl_request() -> bytes:
    """Build an ``SSLRequest`` message."""
    return _body(struct.pack(">i", _SSL_REQUEST_CODE))


def startup_message(parameters: Iterable[tuple[str, str]] | Mapping[str, str]) -> bytes:
    """Build a ``StartupMessage`` for protocol version 3.0."""
    pairs = parameters.items() if isinstance(parameters, Mapping) else parameters
    encoded = b"".join(_cstr(key) + _cstr(value) for key, value in pairs)
    return _body(struct.pack(">i", _PROTOCOL_VERSION) + encoded + b"\x00")


def sync() -> bytes:
    """Build a ``Sync`` message."""
    return _message(b"S", b"")


def terminate() -> bytes:
    """Build a ``Terminate`` message."""
    return _message(b"X", b"")