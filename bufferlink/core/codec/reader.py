from typing import Callable, TypeVar

from bufferlink.core.codec.primitives import (
    Primitive, U8, I8, U16, I16, U32, I32, U64, I64, F32, F64
)
from bufferlink.core.errors import violation
from bufferlink.core.models.buffer import ByteBuffer

T = TypeVar("T")


class Reader:
    """
    A cursor over a borrowed ByteBuffer.

    Every read first computes the offset it would leave the cursor at and
    checks it against the buffer length; only then are bytes touched. Reading
    past the end is a BoundaryViolation, never a short read: it means the two
    sides disagree about the shape of the data.

    Fixed-width values are decoded big-endian.
    """

    def __init__(self, buffer: ByteBuffer, type_name: str = "bytes") -> None:
        self._view = buffer.view()
        self._length = len(self._view)
        self._offset = 0
        self._type_name = type_name

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return self._length - self._offset

    def has_remaining(self) -> bool:
        return self._offset < self._length

    def read(self, primitive: Primitive) -> int | float:
        start = self._advance(primitive.width, f"Reader.read_{primitive.name}")
        return primitive.unpack_from(self._view, start)

    def read_u8(self) -> int:
        return self.read(U8)

    def read_i8(self) -> int:
        return self.read(I8)

    def read_u16(self) -> int:
        return self.read(U16)

    def read_i16(self) -> int:
        return self.read(I16)

    def read_u32(self) -> int:
        return self.read(U32)

    def read_i32(self) -> int:
        return self.read(I32)

    def read_u64(self) -> int:
        return self.read(U64)

    def read_i64(self) -> int:
        return self.read(I64)

    def read_f32(self) -> float:
        return self.read(F32)

    def read_f64(self) -> float:
        return self.read(F64)

    def read_raw_string(self, convert: Callable[[memoryview], T]) -> T:
        """
        Read a ``u32`` length prefix followed by that many raw bytes.

        ``convert`` receives a borrowed view of exactly those bytes and must
        copy them into an owned value. The view is released as soon as
        ``convert`` returns, so holding on to it fails loudly instead of
        reading a buffer that may already be freed.
        """
        length = self.read_u32()
        start = self._advance(length, "Reader.read_raw_string")
        span = self._view[start:start + length]
        try:
            return convert(span)
        finally:
            span.release()

    def _advance(self, width: int, operation: str) -> int:
        start = self._offset
        new_offset = start + width
        if new_offset > self._length:
            violation(
                operation, self._type_name,
                f"read of {width} bytes at offset {start} "
                f"exceeds buffer length {self._length}"
            )
        self._offset = new_offset
        return start
