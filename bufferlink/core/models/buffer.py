from dataclasses import dataclass, field
from typing import Any

from bufferlink.core.errors import violation

MAX_BUFFER_SIZE = 2 ** 31 - 1
"""
Largest span a foreign byte buffer can describe: lengths cross the
boundary as signed 32-bit integers.
"""


@dataclass(eq=False)
class ByteBuffer:
    """
    A byte region owned by exactly one side of the boundary.

    ``data`` is the backing region (its length is the capacity) and
    ``length`` the number of meaningful bytes at its start. ``handle`` is
    whatever the allocator needs to release the region on the foreign side;
    the in-process allocator leaves it unset.

    A buffer is consumed exactly once. Once released (freed, or exported to
    the foreign side) any further access is a boundary violation.
    """
    data: bytes | bytearray | memoryview
    length: int
    handle: Any = None
    _released: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.length < 0 or self.length > len(self.data):
            violation(
                "ByteBuffer", "bytes",
                f"length {self.length} outside capacity {len(self.data)}"
            )

    @property
    def capacity(self) -> int:
        return len(self.data)

    @property
    def released(self) -> bool:
        return self._released

    def view(self) -> memoryview:
        """Return a read-only view over the first ``length`` bytes."""
        if self._released:
            violation("ByteBuffer.view", "bytes", "buffer used after release")
        return memoryview(self.data).toreadonly()[:self.length]

    def to_bytes(self) -> bytes:
        return bytes(self.view())

    def mark_released(self) -> None:
        if self._released:
            violation("ByteBuffer.release", "bytes", "buffer released twice")
        self._released = True
