import logging
from typing import Any

from bufferlink.core.errors import violation
from bufferlink.core.models.buffer import ByteBuffer, MAX_BUFFER_SIZE
from bufferlink.core.ports.allocator import BufferAllocator


class InProcessAllocator(BufferAllocator):
    """
    Allocator for boundaries where both sides live in this interpreter:
    pure-Python callees, the bufctl tool, and tests.

    It keeps track of every buffer it handed out that has not been freed yet,
    so leaks show up in ``live_count`` and freeing a buffer twice, or one it
    never allocated, is a BoundaryViolation.
    """

    def __init__(self) -> None:
        self._live: dict[int, ByteBuffer] = {}
        self._logger = logging.getLogger("infra.memory_allocator")

    @property
    def live_count(self) -> int:
        return len(self._live)

    def from_bytes(self, data: bytes | bytearray | memoryview) -> ByteBuffer:
        if len(data) > MAX_BUFFER_SIZE:
            violation("allocate_from_bytes", "bytes", f"{len(data)} bytes exceeds {MAX_BUFFER_SIZE}")

        copied = bytes(data)
        buffer = ByteBuffer(data=copied, length=len(copied))
        self._live[id(buffer)] = buffer
        self._logger.debug(f"Allocated buffer of {len(copied)} bytes")
        return buffer

    def free(self, buffer: ByteBuffer) -> None:
        if self._live.get(id(buffer)) is not buffer:
            violation("free", "bytes", "buffer is not live (double free or foreign buffer)")

        del self._live[id(buffer)]
        buffer.mark_released()
        self._logger.debug(f"Freed buffer of {buffer.length} bytes")

    def export(self, buffer: ByteBuffer) -> Any:
        # In-process callees receive the ByteBuffer itself and free it
        # through this allocator.
        return buffer

    def adopt(self, raw: Any) -> ByteBuffer:
        if not isinstance(raw, ByteBuffer) or self._live.get(id(raw)) is not raw:
            violation("adopt", "bytes", f"{raw!r} is not a live buffer of this allocator")
        return raw
