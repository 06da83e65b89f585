"""Byte buffers, views of bytes, and conversion of objects to and from bytes.

Objects that already are a contiguous run of bytes (strings, bytes-like
objects, arrays, buffers and views) are copied byte for byte.  Everything
else is serialized into a compact little-endian binary format: integers are
8-byte signed, floats are 8-byte doubles, booleans are one byte, and strings,
byte strings, lists, sets and dicts carry an 8-byte unsigned length prefix.
Tuples are fixed-length records and carry no prefix.

Deserializing needs the type to rebuild, written as a type hint such as
``int``, ``list[str]``, ``dict[str, float]`` or ``tuple[int, float, str]``.
"""

from __future__ import annotations

import array
import struct
import typing
from collections.abc import Iterator, Mapping

_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")
_F64 = struct.Struct("<d")
_BOOL = struct.Struct("<?")


def _as_memoryview(data) -> memoryview:
    """Return a flat unsigned-byte memoryview of ``data`` without copying."""
    if data is None:
        return memoryview(bytearray())
    if isinstance(data, BinaryBuffer):
        return memoryview(data._storage)
    if isinstance(data, BinaryView):
        return data._mv
    try:
        mv = memoryview(data)
    except TypeError:
        raise TypeError(f"cannot view {type(data).__name__} as bytes") from None
    if mv.format != "B" or mv.ndim != 1:
        mv = mv.cast("B")
    return mv


class BinaryView:
    """A non-owning view of writable, contiguous bytes.

    The view aliases the memory it was built from, so writes through it are
    seen by the owner of that memory.
    """

    def __init__(self, data=None) -> None:
        mv = _as_memoryview(data)
        if mv.readonly:
            raise TypeError(
                "BinaryView needs writable memory; use ConstBinaryView "
                "for read-only data"
            )
        self._mv = mv

    @property
    def readonly(self) -> bool:
        return self._mv.readonly

    def __len__(self) -> int:
        return len(self._mv)

    def __iter__(self) -> Iterator[int]:
        return iter(self._mv)

    def __bytes__(self) -> bytes:
        return self._mv.tobytes()

    def __getitem__(self, index):
        if isinstance(index, slice):
            sliced = type(self).__new__(type(self))
            sliced._mv = self._mv[index]
            return sliced
        return self._mv[index]

    def __setitem__(self, index, value) -> None:
        self._mv[index] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BinaryView):
            return NotImplemented
        return self._mv == other._mv

    def __str__(self) -> str:
        return "".join(f"{byte} " for byte in self._mv)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._mv.tobytes()!r})"


class ConstBinaryView(BinaryView):
    """A non-owning, read-only view of contiguous bytes."""

    def __init__(self, data=None) -> None:
        self._mv = _as_memoryview(data).toreadonly()


class BinaryBuffer:
    """An owning, resizable-at-construction block of bytes."""

    def __init__(self, data=None) -> None:
        if data is None:
            self._storage = bytearray()
        elif isinstance(data, int) and not isinstance(data, bool):
            if data < 0:
                raise ValueError(f"buffer size must be non-negative, got {data}")
            self._storage = bytearray(data)
        else:
            self._storage = bytearray(_as_memoryview(data))

    def __len__(self) -> int:
        return len(self._storage)

    def __iter__(self) -> Iterator[int]:
        return iter(self._storage)

    def __bytes__(self) -> bytes:
        return bytes(self._storage)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BinaryBuffer):
            return NotImplemented
        return self._storage == other._storage

    def __repr__(self) -> str:
        return f"BinaryBuffer({bytes(self._storage)!r})"

    def swap(self, other: BinaryBuffer) -> None:
        """Exchange contents with ``other``; existing views follow their bytes."""
        self._storage, other._storage = other._storage, self._storage

    def copy(self) -> BinaryBuffer:
        return BinaryBuffer(self)

    def __copy__(self) -> BinaryBuffer:
        return self.copy()

    def view(self) -> BinaryView:
        """A writable view aliasing this buffer's bytes."""
        return BinaryView(self)

    def const_view(self) -> ConstBinaryView:
        """A read-only view aliasing this buffer's bytes."""
        return ConstBinaryView(self)


_RAW_TYPES = (str, bytes, bytearray, memoryview, array.array, BinaryBuffer, BinaryView)


def needs_serialized(value) -> bool:
    """True if ``value`` (an object or a type) must be serialized to become bytes."""
    if typing.get_origin(value) is not None:
        return True
    kind = value if isinstance(value, type) else type(value)
    return not issubclass(kind, _RAW_TYPES)


# -----------------------------------------------------------------------------
# -- Serialization
# -----------------------------------------------------------------------------


def _encode(value, out: bytearray) -> None:
    if isinstance(value, bool):
        out += _BOOL.pack(value)
    elif isinstance(value, int):
        try:
            out += _I64.pack(value)
        except struct.error:
            raise OverflowError(f"integer {value} does not fit in 64 bits") from None
    elif isinstance(value, float):
        out += _F64.pack(value)
    elif isinstance(value, str):
        encoded = value.encode("utf-8")
        out += _U64.pack(len(encoded))
        out += encoded
    elif isinstance(value, (bytes, bytearray, memoryview, array.array,
                            BinaryBuffer, BinaryView)):
        raw = bytes(_as_memoryview(value))
        out += _U64.pack(len(raw))
        out += raw
    elif isinstance(value, Mapping):
        out += _U64.pack(len(value))
        for key, item in value.items():
            _encode(key, out)
            _encode(item, out)
    elif isinstance(value, tuple):
        for item in value:
            _encode(item, out)
    elif isinstance(value, (set, frozenset)):
        try:
            items = sorted(value)
        except TypeError:
            items = list(value)
        out += _U64.pack(len(items))
        for item in items:
            _encode(item, out)
    elif isinstance(value, list):
        out += _U64.pack(len(value))
        for item in value:
            _encode(item, out)
    else:
        raise TypeError(f"cannot serialize object of type {type(value).__name__}")


def serialize(value) -> bytes:
    """Serialize ``value`` into the package's binary format."""
    out = bytearray()
    _encode(value, out)
    return bytes(out)


class _Reader:
    def __init__(self, data: memoryview) -> None:
        self._data = data
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, n: int) -> bytes:
        if n > self.remaining:
            raise ValueError(
                f"truncated data: needed {n} bytes, only {self.remaining} left"
            )
        chunk = self._data[self._pos:self._pos + n].tobytes()
        self._pos += n
        return chunk

    def unpack(self, fmt: struct.Struct):
        return fmt.unpack(self.take(fmt.size))[0]


def _decode(kind, reader: _Reader):
    origin = typing.get_origin(kind)
    args = typing.get_args(kind)
    if origin is None:
        if kind is bool:
            return reader.unpack(_BOOL)
        if kind is int:
            return reader.unpack(_I64)
        if kind is float:
            return reader.unpack(_F64)
        if kind is str:
            return reader.take(reader.unpack(_U64)).decode("utf-8")
        if kind in (bytes, bytearray):
            return kind(reader.take(reader.unpack(_U64)))
        raise TypeError(f"cannot deserialize into {kind!r}")
    if origin in (list, set, frozenset):
        if len(args) != 1:
            raise TypeError(f"{kind!r} must name exactly one element type")
        count = reader.unpack(_U64)
        return origin(_decode(args[0], reader) for _ in range(count))
    if origin is dict:
        if len(args) != 2:
            raise TypeError(f"{kind!r} must name a key type and a value type")
        key_kind, value_kind = args
        count = reader.unpack(_U64)
        result = {}
        for _ in range(count):
            key = _decode(key_kind, reader)
            result[key] = _decode(value_kind, reader)
        return result
    if origin is tuple:
        if Ellipsis in args:
            raise TypeError("variable-length tuples cannot be deserialized")
        return tuple(_decode(arg, reader) for arg in args)
    raise TypeError(f"cannot deserialize into {kind!r}")


def deserialize(data, kind):
    """Rebuild an object of type ``kind`` from bytes made by :func:`serialize`."""
    reader = _Reader(_as_memoryview(data))
    result = _decode(kind, reader)
    if reader.remaining:
        raise ValueError(f"{reader.remaining} trailing bytes after deserializing")
    return result


# -----------------------------------------------------------------------------
# -- Buffer conversions
# -----------------------------------------------------------------------------


def make_binary_buffer(value) -> BinaryBuffer:
    """Turn ``value`` into a BinaryBuffer, serializing it only if needed."""
    if needs_serialized(value):
        return BinaryBuffer(serialize(value))
    if isinstance(value, str):
        return BinaryBuffer(value.encode("utf-8"))
    return BinaryBuffer(value)


def from_binary_view(view, kind):
    """Rebuild an object of type ``kind`` from the bytes ``view`` refers to.

    ``kind`` is a type hint; for an :class:`array.array` pass its typecode,
    e.g. ``"d"``.  Trailing bytes that do not fill a whole array item are
    ignored.
    """
    if not isinstance(view, BinaryView):
        view = ConstBinaryView(view)
    raw = bytes(view)
    if isinstance(kind, str):
        if kind not in array.typecodes:
            raise ValueError(f"unknown array typecode {kind!r}")
        result = array.array(kind)
        usable = len(raw) - len(raw) % result.itemsize
        result.frombytes(raw[:usable])
        return result
    if typing.get_origin(kind) is None and isinstance(kind, type):
        if kind is str:
            return raw.decode("utf-8")
        if kind in (bytes, bytearray):
            return kind(raw)
        if kind is memoryview:
            return memoryview(raw)
        if kind is BinaryBuffer:
            return BinaryBuffer(raw)
        if issubclass(kind, ConstBinaryView):
            return kind(raw)
        if issubclass(kind, BinaryView):
            return kind(bytearray(raw))
        if issubclass(kind, array.array):
            raise TypeError("pass the array typecode, e.g. 'd', to rebuild an array")
    return deserialize(raw, kind)


def from_binary_buffer(buffer: BinaryBuffer, kind):
    """Rebuild an object of type ``kind`` from the bytes held by ``buffer``."""
    return from_binary_view(ConstBinaryView(buffer), kind)