"""Primitives shared by the message and value encoders."""

from __future__ import annotations

import enum
import struct
from typing import Callable

Oid = int
"""A Postgres object identifier (an unsigned 32-bit integer)."""

Lsn = int
"""A Postgres log sequence number (an unsigned 64-bit integer)."""

_I16_MAX = 2**15 - 1
_I32_MAX = 2**31 - 1


class ProtocolError(ValueError):
    """Raised when a value cannot be encoded to or decoded from the wire format."""


class IsNull(enum.Enum):
    """Whether a serialized value is SQL ``NULL``."""

    YES = True
    NO = False


def _checked(value: int, limit: int) -> int:
    if value > limit:
        raise ProtocolError("value too large to transmit")
    return value


def checked_i16(value: int) -> int:
    """Return ``value`` if it fits a signed 16-bit length, else raise ProtocolError."""
    return _checked(value, _I16_MAX)


def checked_i32(value: int) -> int:
    """Return ``value`` if it fits a signed 32-bit length, else raise ProtocolError."""
    return _checked(value, _I32_MAX)


def write_nullable(serializer: Callable[[bytearray], IsNull]) -> bytes:
    """Run ``serializer`` on a fresh buffer and prefix the result with its length.

    The serializer appends the encoded value to the buffer it is given and
    returns :class:`IsNull`. A ``NULL`` value gets the length ``-1``.
    """
    buf = bytearray()
    is_null = serializer(buf)
    size = -1 if is_null is IsNull.YES else checked_i32(len(buf))
    return struct.pack(">i", size) + bytes(buf)