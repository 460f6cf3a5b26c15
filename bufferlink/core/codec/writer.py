import logging
from typing import Callable

from bufferlink.core.codec.primitives import (
    Primitive, U8, I8, U16, I16, U32, I32, U64, I64, F32, F64
)
from bufferlink.core.errors import violation
from bufferlink.core.models.buffer import ByteBuffer, MAX_BUFFER_SIZE
from bufferlink.core.ports.allocator import BufferAllocator


class Writer:
    """
    A cursor over an owned, pre-sized byte region.

    The capacity comes from a prior ``size`` computation. Each write reserves
    its span first; a reservation that would run past the capacity is a
    BoundaryViolation, because it means the size computation and the writes
    disagree.

    Fixed-width values are encoded big-endian.
    """

    def __init__(self, capacity: int, type_name: str = "bytes") -> None:
        if capacity < 0 or capacity > MAX_BUFFER_SIZE:
            violation(
                "Writer", type_name,
                f"capacity {capacity} outside [0, {MAX_BUFFER_SIZE}]"
            )
        self._region = bytearray(capacity)
        self._offset = 0
        self._type_name = type_name
        self._logger = logging.getLogger("core.codec.writer")

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def capacity(self) -> int:
        return len(self._region)

    def written(self) -> memoryview:
        return memoryview(self._region)[:self._offset]

    def write(self, primitive: Primitive, value: int | float) -> None:
        start = self._reserve(primitive.width, f"Writer.write_{primitive.name}")
        try:
            primitive.pack_into(self._region, start, value)
        except ValueError:
            self._offset = start
            raise

    def write_u8(self, value: int) -> None:
        self.write(U8, value)

    def write_i8(self, value: int) -> None:
        self.write(I8, value)

    def write_u16(self, value: int) -> None:
        self.write(U16, value)

    def write_i16(self, value: int) -> None:
        self.write(I16, value)

    def write_u32(self, value: int) -> None:
        self.write(U32, value)

    def write_i32(self, value: int) -> None:
        self.write(I32, value)

    def write_u64(self, value: int) -> None:
        self.write(U64, value)

    def write_i64(self, value: int) -> None:
        self.write(I64, value)

    def write_f32(self, value: float) -> None:
        self.write(F32, value)

    def write_f64(self, value: float) -> None:
        self.write(F64, value)

    def write_raw_string(
        self,
        size_hint: int,
        produce: Callable[[memoryview], int]
    ) -> int:
        """
        Write a ``u32`` length prefix followed by at most ``size_hint`` bytes.

        The prefix slot and ``size_hint`` bytes are reserved up front.
        ``produce`` fills the reserved span and returns how many bytes it
        actually wrote; that count is backpatched into the prefix and the
        cursor is rolled back over the unused slack. This serves both plain
        copies (actual == hint) and transcoding (actual <= hint) in one pass.

        Returns the actual number of payload bytes written.
        """
        prefix_at = self._reserve(U32.width, "Writer.write_raw_string")
        start = self._reserve(size_hint, "Writer.write_raw_string")

        span = memoryview(self._region)[start:start + size_hint]
        try:
            written = produce(span)
        finally:
            span.release()

        if written < 0 or written > size_hint:
            violation(
                "Writer.write_raw_string", self._type_name,
                f"producer reported {written} bytes for a {size_hint} byte span"
            )

        U32.pack_into(self._region, prefix_at, written)
        self._offset = start + written
        return written

    def to_buffer(self, allocator: BufferAllocator) -> ByteBuffer:
        """
        Copy the written span into a foreign-owned buffer. Slack left by
        ``write_raw_string`` is not part of the result.
        """
        buffer = allocator.from_bytes(self.written())
        self._logger.debug(
            f"Finalized {self._type_name}: {self._offset} of {self.capacity} bytes used"
        )
        return buffer

    def _reserve(self, width: int, operation: str) -> int:
        start = self._offset
        new_offset = start + width
        if width < 0 or new_offset > len(self._region):
            violation(
                operation, self._type_name,
                f"write of {width} bytes at offset {start} "
                f"exceeds capacity {len(self._region)}"
            )
        self._offset = new_offset
        return start
