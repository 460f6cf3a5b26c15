from typing import Any, Protocol

from bufferlink.core.models.buffer import ByteBuffer


class BufferAllocator(Protocol):
    """
    The two foreign entry points that own raw buffer memory, plus the
    hand-over steps used when a buffer crosses a call boundary.

    Every method either succeeds or raises BoundaryViolation: allocator
    failures indicate memory exhaustion or a broken boundary layer, never a
    condition the caller can recover from.
    """

    def from_bytes(self, data: bytes | bytearray | memoryview) -> ByteBuffer:
        """
        Copy ``data`` into a new foreign-owned buffer and return it.
        The local span may be reused or dropped as soon as this returns.
        """

    def free(self, buffer: ByteBuffer) -> None:
        """
        Release a buffer previously allocated by, or received from, the
        foreign side. Must be called exactly once per buffer.
        """

    def export(self, buffer: ByteBuffer) -> Any:
        """
        Hand ``buffer`` to the foreign side as a call argument and return the
        value to pass in the call. Ownership moves to the callee; the local
        ByteBuffer is released and must not be touched afterwards.
        """

    def adopt(self, raw: Any) -> ByteBuffer:
        """
        Take local ownership of a buffer returned by a foreign call.
        The caller becomes responsible for freeing it.
        """
