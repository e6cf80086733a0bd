"""Binary encoding and decoding of variable-length and structured Postgres values.

Every ``*_to_sql`` function returns the encoded value as ``bytes``. Every
``*_from_sql`` function takes the raw bytes and raises
:class:`~pgproto.core.ProtocolError` when they are malformed. Values that hold
many items (hstore entries, array elements, path points) are read lazily: the
iterators raise :class:`~pgproto.core.ProtocolError` when they meet bad data.
"""

from __future__ import annotations

import enum
import ipaddress
import struct
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .core import IsNull, Oid, ProtocolError, checked_i32, write_nullable

_RANGE_UPPER_UNBOUNDED = 0b0001_0000
_RANGE_LOWER_UNBOUNDED = 0b0000_1000
_RANGE_UPPER_INCLUSIVE = 0b0000_0100
_RANGE_LOWER_INCLUSIVE = 0b0000_0010
_RANGE_EMPTY = 0b0000_0001

_PGSQL_AF_INET = 2
_PGSQL_AF_INET6 = 3

_I32_MAX = 2**31 - 1
_SHORT_BUFFER = "failed to fill whole buffer"

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class _Reader:
    """Sequential big-endian reads over a byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, size: int) -> bytes:
        if size > self.remaining:
            raise ProtocolError(_SHORT_BUFFER)
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def _unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def u8(self) -> int:
        return self._unpack(">B")

    def i32(self) -> int:
        return self._unpack(">i")

    def u32(self) -> int:
        return self._unpack(">I")

    def f64(self) -> float:
        return self._unpack(">d")

    def rest(self) -> bytes:
        return self.take(self.remaining)


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ProtocolError(str(exc)) from exc


def _pascal_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack(">i", checked_i32(len(raw))) + raw


# --- hstore -------------------------------------------------------------------


def hstore_to_sql(
    values: Mapping[str, str | None] | Iterable[tuple[str, str | None]],
) -> bytes:
    """Serialize an ``HSTORE`` value from a mapping or ``(key, value)`` pairs."""
    pairs = values.items() if isinstance(values, Mapping) else values
    entries = [
        _pascal_string(key) + (struct.pack(">i", -1) if value is None else _pascal_string(value))
        for key, value in pairs
    ]
    return struct.pack(">i", checked_i32(len(entries))) + b"".join(entries)


def _hstore_entries(count: int, reader: _Reader) -> Iterator[tuple[str, str | None]]:
    for _ in range(count):
        key_len = reader.i32()
        if key_len < 0:
            raise ProtocolError("invalid key length")
        key = _decode(reader.take(key_len))
        value_len = reader.i32()
        value = None if value_len < 0 else _decode(reader.take(value_len))
        yield key, value
    if reader.remaining:
        raise ProtocolError("invalid buffer size")


def hstore_from_sql(buf: bytes) -> Iterator[tuple[str, str | None]]:
    """Deserialize an ``HSTORE`` value into an iterator of ``(key, value)`` pairs."""
    reader = _Reader(buf)
    count = reader.i32()
    if count < 0:
        raise ProtocolError("invalid entry count")
    return _hstore_entries(count, reader)


# --- varbit -------------------------------------------------------------------


@dataclass(frozen=True)
class Varbit:
    """A ``VARBIT`` or ``BIT`` value: a bit count and the bytes holding the bits."""

    length: int
    data: bytes

    def __len__(self) -> int:
        return self.length

    @property
    def is_empty(self) -> bool:
        """Whether the value has no bits."""
        return self.length == 0


def varbit_to_sql(length: int, data: Iterable[int] | bytes) -> bytes:
    """Serialize a ``VARBIT`` or ``BIT`` value of ``length`` bits."""
    if length < 0:
        raise ProtocolError("invalid varbit length: varbit < 0")
    return struct.pack(">i", checked_i32(length)) + bytes(data)


def varbit_from_sql(buf: bytes) -> Varbit:
    """Deserialize a ``VARBIT`` or ``BIT`` value."""
    reader = _Reader(buf)
    length = reader.i32()
    if length < 0:
        raise ProtocolError("invalid varbit length: varbit < 0")
    if reader.remaining != (length + 7) // 8:
        raise ProtocolError("invalid message length: varbit mismatch")
    return Varbit(length, reader.rest())


# --- arrays -------------------------------------------------------------------


@dataclass(frozen=True)
class ArrayDimension:
    """One dimension of an array: its length and the index of its first element."""

    length: int
    lower_bound: int


def array_to_sql(
    dimensions: Iterable[ArrayDimension],
    element_type: Oid,
    elements: Iterable[Any],
    serializer: Callable[[Any, bytearray], IsNull],
) -> bytes:
    """Serialize an array value.

    ``serializer(element, buf)`` appends each element's encoding to ``buf`` and
    returns :class:`~pgproto.core.IsNull`.
    """
    dims = [struct.pack(">ii", d.length, d.lower_bound) for d in dimensions]
    has_nulls = False
    encoded: list[bytes] = []

    for element in elements:
        def serialize(buf: bytearray, element: Any = element) -> IsNull:
            nonlocal has_nulls
            result = serializer(element, buf)
            if result is IsNull.YES:
                has_nulls = True
            return result

        encoded.append(write_nullable(serialize))

    header = struct.pack(">iiI", checked_i32(len(dims)), int(has_nulls), element_type)
    return header + b"".join(dims) + b"".join(encoded)


@dataclass(frozen=True)
class Array:
    """A decoded array header with lazy access to its dimensions and values."""

    has_nulls: bool
    element_type: Oid
    _dimension_count: int = field(repr=False)
    _element_count: int = field(repr=False)
    _buf: bytes = field(repr=False)

    def dimensions(self) -> Iterator[ArrayDimension]:
        """Iterate over the dimensions of the array."""
        reader = _Reader(self._buf[: self._dimension_count * 8])
        while reader.remaining:
            length = reader.i32()
            lower_bound = reader.i32()
            yield ArrayDimension(length, lower_bound)

    def values(self) -> Iterator[bytes | None]:
        """Iterate over the raw element values in row-major order; ``None`` is NULL."""
        reader = _Reader(self._buf[self._dimension_count * 8 :])
        for _ in range(self._element_count):
            length = reader.i32()
            if length < 0:
                yield None
                continue
            if reader.remaining < length:
                raise ProtocolError("invalid value length")
            yield reader.take(length)
        if reader.remaining:
            raise ProtocolError("invalid message length: arrayvalue not drained")


def array_from_sql(buf: bytes) -> Array:
    """Deserialize an array value."""
    reader = _Reader(buf)
    dimension_count = reader.i32()
    if dimension_count < 0:
        raise ProtocolError("invalid dimension count")
    has_nulls = reader.i32() != 0
    element_type = reader.u32()
    rest = reader.rest()

    dims = _Reader(rest)
    element_count = 1
    for _ in range(dimension_count):
        length = dims.i32()
        if length < 0:
            raise ProtocolError("invalid dimension size")
        dims.i32()
        element_count *= length
        if element_count > _I32_MAX:
            raise ProtocolError("too many array elements")

    if dimension_count == 0:
        element_count = 0

    return Array(has_nulls, element_type, dimension_count, element_count, rest)


# --- ranges -------------------------------------------------------------------


class BoundKind(enum.Enum):
    """The kind of one side of a range."""

    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"
    UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class RangeBound:
    """One side of a range; ``value`` holds the raw bound, ``None`` meaning NULL."""

    kind: BoundKind
    value: bytes | None = None

    def __post_init__(self) -> None:
        if self.kind is BoundKind.UNBOUNDED and self.value is not None:
            raise ValueError("an unbounded side carries no value")

    @classmethod
    def inclusive(cls, value: bytes | None) -> RangeBound:
        """An inclusive bound."""
        return cls(BoundKind.INCLUSIVE, value)

    @classmethod
    def exclusive(cls, value: bytes | None) -> RangeBound:
        """An exclusive bound."""
        return cls(BoundKind.EXCLUSIVE, value)

    @classmethod
    def unbounded(cls) -> RangeBound:
        """No bound."""
        return cls(BoundKind.UNBOUNDED)


@dataclass(frozen=True)
class Range:
    """A range: empty when both sides are ``None``, otherwise two bounds."""

    lower: RangeBound | None = None
    upper: RangeBound | None = None

    def __post_init__(self) -> None:
        if (self.lower is None) != (self.upper is None):
            raise ValueError("a nonempty range needs both bounds")

    @property
    def is_empty(self) -> bool:
        """Whether the range is empty."""
        return self.lower is None


def empty_range_to_sql() -> bytes:
    """Serialize an empty range."""
    return bytes([_RANGE_EMPTY])


def _write_bound(bound: RangeBound) -> bytes:
    if bound.kind is BoundKind.UNBOUNDED:
        return b""
    if bound.value is None:
        return struct.pack(">i", -1)
    value = bytes(bound.value)
    return struct.pack(">i", checked_i32(len(value))) + value


def range_to_sql(lower: RangeBound, upper: RangeBound) -> bytes:
    """Serialize a nonempty range from its two bounds."""
    tag = 0
    if lower.kind is BoundKind.INCLUSIVE:
        tag |= _RANGE_LOWER_INCLUSIVE
    elif lower.kind is BoundKind.UNBOUNDED:
        tag |= _RANGE_LOWER_UNBOUNDED
    if upper.kind is BoundKind.INCLUSIVE:
        tag |= _RANGE_UPPER_INCLUSIVE
    elif upper.kind is BoundKind.UNBOUNDED:
        tag |= _RANGE_UPPER_UNBOUNDED
    return bytes([tag]) + _write_bound(lower) + _write_bound(upper)


def _read_bound(reader: _Reader, tag: int, unbounded: int, inclusive: int) -> RangeBound:
    if tag & unbounded:
        return RangeBound.unbounded()
    length = reader.i32()
    if length < 0:
        value = None
    else:
        if reader.remaining < length:
            raise ProtocolError("invalid message size")
        value = reader.take(length)
    kind = BoundKind.INCLUSIVE if tag & inclusive else BoundKind.EXCLUSIVE
    return RangeBound(kind, value)


def range_from_sql(buf: bytes) -> Range:
    """Deserialize a range value."""
    reader = _Reader(buf)
    tag = reader.u8()

    if tag == _RANGE_EMPTY:
        if reader.remaining:
            raise ProtocolError("invalid message size")
        return Range()

    lower = _read_bound(reader, tag, _RANGE_LOWER_UNBOUNDED, _RANGE_LOWER_INCLUSIVE)
    upper = _read_bound(reader, tag, _RANGE_UPPER_UNBOUNDED, _RANGE_UPPER_INCLUSIVE)
    if reader.remaining:
        raise ProtocolError("invalid message size")
    return Range(lower, upper)


# --- geometry -----------------------------------------------------------------


@dataclass(frozen=True)
class Point:
    """A Postgres point."""

    x: float
    y: float


@dataclass(frozen=True)
class Box:
    """A Postgres box."""

    upper_right: Point
    lower_left: Point


def point_to_sql(x: float, y: float) -> bytes:
    """Serialize a point value."""
    return struct.pack(">dd", x, y)


def point_from_sql(buf: bytes) -> Point:
    """Deserialize a point value."""
    reader = _Reader(buf)
    point = Point(reader.f64(), reader.f64())
    if reader.remaining:
        raise ProtocolError("invalid buffer size")
    return point


def box_to_sql(x1: float, y1: float, x2: float, y2: float) -> bytes:
    """Serialize a box value."""
    return struct.pack(">dddd", x1, y1, x2, y2)


def box_from_sql(buf: bytes) -> Box:
    """Deserialize a box value."""
    reader = _Reader(buf)
    upper_right = Point(reader.f64(), reader.f64())
    lower_left = Point(reader.f64(), reader.f64())
    if reader.remaining:
        raise ProtocolError("invalid buffer size")
    return Box(upper_right, lower_left)


@dataclass(frozen=True)
class Path:
    """A Postgres path with lazy access to its points."""

    closed: bool
    _point_count: int = field(repr=False)
    _buf: bytes = field(repr=False)

    def points(self) -> Iterator[Point]:
        """Iterate over the points of the path."""
        reader = _Reader(self._buf)
        remaining = self._point_count
        while remaining != 0:
            remaining -= 1
            yield Point(reader.f64(), reader.f64())
        if reader.remaining:
            raise ProtocolError("invalid message length: path points not drained")


def path_to_sql(closed: bool, points: Iterable[tuple[float, float]]) -> bytes:
    """Serialize a path value."""
    encoded = [struct.pack(">dd", x, y) for x, y in points]
    header = struct.pack(">Bi", int(closed), checked_i32(len(encoded)))
    return header + b"".join(encoded)


def path_from_sql(buf: bytes) -> Path:
    """Deserialize a path value."""
    reader = _Reader(buf)
    closed = reader.u8() != 0
    count = reader.i32()
    return Path(closed, count, reader.rest())


# --- network addresses --------------------------------------------------------


@dataclass(frozen=True)
class Inet:
    """A Postgres network address with its netmask."""

    addr: IPAddress
    netmask: int


def inet_to_sql(addr: IPAddress | str, netmask: int) -> bytes:
    """Serialize an ``INET`` value."""
    address = ipaddress.ip_address(addr) if isinstance(addr, str) else addr
    if not 0 <= netmask <= 255:
        raise ProtocolError("netmask must fit in one byte")
    family = _PGSQL_AF_INET if address.version == 4 else _PGSQL_AF_INET6
    packed = address.packed
    return bytes([family, netmask, 0, len(packed)]) + packed


def inet_from_sql(buf: bytes) -> Inet:
    """Deserialize an ``INET`` value."""
    reader = _Reader(buf)
    family = reader.u8()
    netmask = reader.u8()
    reader.u8()  # is_cidr
    length = reader.u8()

    addr: IPAddress
    if family == _PGSQL_AF_INET:
        if netmask > 32:
            raise ProtocolError("invalid IPv4 netmask")
        if length != 4:
            raise ProtocolError("invalid IPv4 address length")
        addr = ipaddress.IPv4Address(reader.take(4))
    elif family == _PGSQL_AF_INET6:
        if netmask > 128:
            raise ProtocolError("invalid IPv6 netmask")
        if length != 16:
            raise ProtocolError("invalid IPv6 address length")
        addr = ipaddress.IPv6Address(reader.take(16))
    else:
        raise ProtocolError("invalid IP family")

    if reader.remaining:
        raise ProtocolError("invalid buffer size")
    return Inet(addr, netmask)