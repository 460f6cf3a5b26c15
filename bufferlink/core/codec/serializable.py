from collections.abc import Mapping
from typing import Any, Callable, Generic, Protocol, TypeVar

from bufferlink.core.codec.primitives import (
    Primitive, U8, I8, U16, I16, U32, I32, U64, I64, F32, F64
)
from bufferlink.core.codec.reader import Reader
from bufferlink.core.codec.writer import Writer
from bufferlink.core.errors import MalformedPayloadError, violation
from bufferlink.core.models.buffer import MAX_BUFFER_SIZE

T = TypeVar("T")
K = TypeVar("K")
V = TypeVar("V")

TAG_ABSENT = 0
TAG_PRESENT = 1
LENGTH_PREFIX = U32.width
UTF8_BYTES_PER_UTF16_UNIT = 3


class Serializable(Protocol[T]):
    """
    Per-type codec descriptor.

    - ``size`` returns an upper bound on the encoded length, without side
      effects. It is exact for fixed-width types.
    - ``read_from`` consumes exactly the bytes ``write_into`` produced for an
      equivalent value. Structurally invalid input raises
      MalformedPayloadError; out-of-bounds input is a BoundaryViolation
      raised by the Reader.
    - ``write_into`` writes at most ``size(value)`` bytes.

    Composite codecs are built only from the codecs of their parts.
    """
    name: str

    def size(self, value: T) -> int:
        ...

    def read_from(self, reader: Reader) -> T:
        ...

    def write_into(self, writer: Writer, value: T) -> None:
        ...


def checked_size(total: int, type_name: str) -> int:
    if total > MAX_BUFFER_SIZE:
        violation("size", type_name, f"encoded size {total} exceeds {MAX_BUFFER_SIZE}")
    return total


class PrimitiveCodec(Generic[T]):
    def __init__(self, primitive: Primitive) -> None:
        self.primitive = primitive
        self.name = primitive.name

    def size(self, value: T) -> int:
        return self.primitive.width

    def read_from(self, reader: Reader) -> T:
        return reader.read(self.primitive)

    def write_into(self, writer: Writer, value: T) -> None:
        writer.write(self.primitive, value)

    def __repr__(self) -> str:
        return f"PrimitiveCodec({self.name})"


class BoolCodec:
    """Booleans travel as a single byte; any non-zero byte reads as True."""
    name = "bool"

    def size(self, value: bool) -> int:
        return U8.width

    def read_from(self, reader: Reader) -> bool:
        return reader.read_u8() != 0

    def write_into(self, writer: Writer, value: bool) -> None:
        writer.write_u8(1 if value else 0)


class BytesStringCodec:
    """
    Narrow strings: ``bytes`` already holding UTF-8, copied byte for byte
    behind a ``u32`` length prefix.
    """
    name = "bytestring"

    def size(self, value: bytes) -> int:
        return checked_size(LENGTH_PREFIX + len(value), self.name)

    def read_from(self, reader: Reader) -> bytes:
        return reader.read_raw_string(bytes)

    def write_into(self, writer: Writer, value: bytes) -> None:
        def produce(span: memoryview) -> int:
            span[:] = value
            return len(value)

        writer.write_raw_string(len(value), produce)


class StringCodec:
    """
    Text strings. Python ``str`` is measured in UTF-16 code units, the unit
    the host side counts in, and transcoded to UTF-8 on the way out.

    The size is a worst case: every code unit expands to at most three UTF-8
    bytes. The Writer backpatches the real byte count, so the wire carries
    the exact length.
    """
    name = "string"

    def size(self, value: str) -> int:
        return checked_size(LENGTH_PREFIX + self.estimate_utf8_length(value), self.name)

    def read_from(self, reader: Reader) -> str:
        return reader.read_raw_string(decode_utf8)

    def write_into(self, writer: Writer, value: str) -> None:
        encoded = encode_utf8(value)

        def produce(span: memoryview) -> int:
            span[:len(encoded)] = encoded
            return len(encoded)

        writer.write_raw_string(self.estimate_utf8_length(value), produce)

    @staticmethod
    def estimate_utf8_length(value: str) -> int:
        return utf16_length(value) * UTF8_BYTES_PER_UTF16_UNIT


class OptionalCodec(Generic[T]):
    """One tag byte (0 absent, 1 present) followed by the inner value."""

    def __init__(self, inner: Serializable[T]) -> None:
        self.inner = inner
        self.name = f"optional<{inner.name}>"

    def size(self, value: T | None) -> int:
        if value is None:
            return U8.width
        return checked_size(U8.width + self.inner.size(value), self.name)

    def read_from(self, reader: Reader) -> T | None:
        tag = reader.read_u8()
        if tag == TAG_ABSENT:
            return None
        if tag != TAG_PRESENT:
            raise MalformedPayloadError(self.name, f"invalid tag byte {tag}")
        return self.inner.read_from(reader)

    def write_into(self, writer: Writer, value: T | None) -> None:
        if value is None:
            writer.write_u8(TAG_ABSENT)
        else:
            writer.write_u8(TAG_PRESENT)
            self.inner.write_into(writer, value)


class SequenceCodec(Generic[T]):
    """A ``u32`` element count followed by the elements in order."""

    def __init__(self, element: Serializable[T]) -> None:
        self.element = element
        self.name = f"sequence<{element.name}>"

    def size(self, value: list[T]) -> int:
        total = LENGTH_PREFIX
        for item in value:
            total = checked_size(total + self.element.size(item), self.name)
        return total

    def read_from(self, reader: Reader) -> list[T]:
        count = reader.read_u32()
        return [self.element.read_from(reader) for _ in range(count)]

    def write_into(self, writer: Writer, value: list[T]) -> None:
        writer.write_u32(len(value))
        for item in value:
            self.element.write_into(writer, item)


class MappingCodec(Generic[K, V]):
    """
    A ``u32`` entry count followed by key/value pairs in insertion order.
    Key uniqueness is the caller's contract; on decode a repeated key keeps
    the last value. Keys decode into a ``dict``, so the key codec must
    produce hashable values.
    """

    def __init__(self, key: Serializable[K], value: Serializable[V]) -> None:
        if not decodes_hashable(key):
            raise TypeError(f"{key.name} decodes to unhashable values and cannot be a map key")
        self.key = key
        self.value = value
        self.name = f"map<{key.name}, {value.name}>"

    def size(self, value: Mapping[K, V]) -> int:
        total = LENGTH_PREFIX
        for k, v in value.items():
            total = checked_size(total + self.key.size(k) + self.value.size(v), self.name)
        return total

    def read_from(self, reader: Reader) -> dict[K, V]:
        count = reader.read_u32()
        result: dict[K, V] = {}
        for _ in range(count):
            k = self.key.read_from(reader)
            result[k] = self.value.read_from(reader)
        return result

    def write_into(self, writer: Writer, value: Mapping[K, V]) -> None:
        writer.write_u32(len(value))
        for k, v in value.items():
            self.key.write_into(writer, k)
            self.value.write_into(writer, v)


class RecordCodec(Generic[T]):
    """
    A fixed list of named fields encoded back to back, with no framing.

    Values are read field by field with ``getattr`` (or item access for
    mappings) and rebuilt with ``factory(**fields)``, so a dataclass type
    works as its own factory.

    A record has at least one field, so every element of a sequence of
    records consumes input and a forged element count runs out of bytes.
    """

    def __init__(
        self,
        name: str,
        fields: list[tuple[str, Serializable[Any]]],
        factory: Callable[..., T] = dict,
    ) -> None:
        if not fields:
            raise ValueError(f"record '{name}' must have at least one field")
        self.name = name
        self.fields = fields
        self.factory = factory

    def size(self, value: T) -> int:
        total = 0
        for field_name, codec in self.fields:
            total = checked_size(total + codec.size(self._get(value, field_name)), self.name)
        return total

    def read_from(self, reader: Reader) -> T:
        kwargs = {
            field_name: codec.read_from(reader)
            for field_name, codec in self.fields
        }
        return self.factory(**kwargs)

    def write_into(self, writer: Writer, value: T) -> None:
        for field_name, codec in self.fields:
            codec.write_into(writer, self._get(value, field_name))

    @staticmethod
    def _get(value: Any, field_name: str) -> Any:
        if isinstance(value, Mapping):
            return value[field_name]
        return getattr(value, field_name)


def decodes_hashable(codec: Serializable[Any]) -> bool:
    """Whether every value ``codec.read_from`` returns can be a dict key."""
    if isinstance(codec, OptionalCodec):
        return decodes_hashable(codec.inner)
    if isinstance(codec, (SequenceCodec, MappingCodec)):
        return False
    if isinstance(codec, RecordCodec):
        if getattr(codec.factory, "__hash__", None) is None:
            return False
        return all(decodes_hashable(field) for _, field in codec.fields)
    return True


def utf16_length(value: str) -> int:
    """Number of UTF-16 code units needed for ``value``."""
    return len(value.encode("utf-16-le", "surrogatepass")) // 2


def encode_utf8(value: str) -> bytes:
    """
    Encode to UTF-8 the way a UTF-16 host converts: unpaired surrogates
    become U+FFFD instead of failing.
    """
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError:
        units = value.encode("utf-16-le", "surrogatepass")
        return units.decode("utf-16-le", "replace").encode("utf-8")


def decode_utf8(span: memoryview) -> str:
    return bytes(span).decode("utf-8", "replace")


u8 = PrimitiveCodec[int](U8)
i8 = PrimitiveCodec[int](I8)
u16 = PrimitiveCodec[int](U16)
i16 = PrimitiveCodec[int](I16)
u32 = PrimitiveCodec[int](U32)
i32 = PrimitiveCodec[int](I32)
u64 = PrimitiveCodec[int](U64)
i64 = PrimitiveCodec[int](I64)
f32 = PrimitiveCodec[float](F32)
f64 = PrimitiveCodec[float](F64)
boolean = BoolCodec()
string = StringCodec()
bytestring = BytesStringCodec()


def optional(inner: Serializable[T]) -> OptionalCodec[T]:
    return OptionalCodec(inner)


def sequence(element: Serializable[T]) -> SequenceCodec[T]:
    return SequenceCodec(element)


def mapping(key: Serializable[K], value: Serializable[V]) -> MappingCodec[K, V]:
    return MappingCodec(key, value)
