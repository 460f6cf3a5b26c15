import ctypes
import logging
from pathlib import Path
from typing import Any

from bufferlink.core.errors import ForeignCallError, violation
from bufferlink.core.models.buffer import ByteBuffer, MAX_BUFFER_SIZE
from bufferlink.core.ports.allocator import BufferAllocator


class RawBuffer(ctypes.Structure):
    """A buffer owned by the foreign side, as passed by value across calls."""
    _fields_ = [
        ("len", ctypes.c_int32),
        ("data", ctypes.POINTER(ctypes.c_uint8)),
    ]

    def __str__(self):
        return f"RawBuffer(len={self.len}, data={ctypes.cast(self.data, ctypes.c_void_p).value})"


class ForeignBytes(ctypes.Structure):
    """A borrowed local span handed to the foreign allocator for copying."""
    _fields_ = [
        ("len", ctypes.c_int32),
        ("data", ctypes.POINTER(ctypes.c_uint8)),
    ]


class CallStatus(ctypes.Structure):
    """Out-parameter every foreign entry point fills; code 0 means success."""
    _fields_ = [
        ("code", ctypes.c_int32),
        ("message", ctypes.c_char_p),
    ]


def load_library(path: Path | str) -> ctypes.CDLL:
    return ctypes.CDLL(str(path))


def new_call_status() -> Any:
    return ctypes.pointer(CallStatus())


def check_call_status(function: str, status: Any) -> None:
    """Raise ForeignCallError if the callee reported a failure."""
    status = status.contents if hasattr(status, "contents") else status
    if status.code != 0:
        message = status.message.decode("utf-8", "replace") if status.message else ""
        raise ForeignCallError(function, status.code, message)


class CtypesAllocator(BufferAllocator):
    """
    Allocator backed by the two buffer entry points of a shared library:

        RawBuffer <from_bytes>(ForeignBytes bytes, CallStatus *status);
        void      <free>(RawBuffer buf, CallStatus *status);

    Any non-zero status from either entry point is a BoundaryViolation.
    Buffers taken into local ownership are exposed as a view over foreign
    memory, valid until they are freed.
    """

    def __init__(self, lib: Any, from_bytes_symbol: str, free_symbol: str) -> None:
        self._from_bytes = getattr(lib, from_bytes_symbol)
        self._from_bytes.argtypes = [ForeignBytes, ctypes.POINTER(CallStatus)]
        self._from_bytes.restype = RawBuffer

        self._free = getattr(lib, free_symbol)
        self._free.argtypes = [RawBuffer, ctypes.POINTER(CallStatus)]
        self._free.restype = None

        self._from_bytes_symbol = from_bytes_symbol
        self._free_symbol = free_symbol
        self._logger = logging.getLogger("infra.ctypes_allocator")

    def from_bytes(self, data: bytes | bytearray | memoryview) -> ByteBuffer:
        size = len(data)
        if size > MAX_BUFFER_SIZE:
            violation(self._from_bytes_symbol, "bytes", f"{size} bytes exceeds {MAX_BUFFER_SIZE}")

        if size:
            local = (ctypes.c_uint8 * size).from_buffer_copy(data)
            span = ForeignBytes(size, ctypes.cast(local, ctypes.POINTER(ctypes.c_uint8)))
        else:
            span = ForeignBytes(0, None)

        status = CallStatus()
        raw = self._from_bytes(span, ctypes.pointer(status))
        if status.code != 0:
            violation(
                self._from_bytes_symbol, "bytes",
                f"allocator failed with code {status.code}"
            )

        self._logger.debug(f"Allocated foreign buffer of {size} bytes")
        return self.adopt(raw)

    def free(self, buffer: ByteBuffer) -> None:
        if buffer.released:
            violation(self._free_symbol, "bytes", "buffer freed twice")

        buffer.mark_released()
        status = CallStatus()
        self._free(buffer.handle, ctypes.pointer(status))
        if status.code != 0:
            violation(
                self._free_symbol, "bytes",
                f"free failed with code {status.code}"
            )
        self._logger.debug(f"Freed foreign buffer of {buffer.length} bytes")

    def export(self, buffer: ByteBuffer) -> Any:
        buffer.mark_released()
        return buffer.handle

    def adopt(self, raw: Any) -> ByteBuffer:
        if not isinstance(raw, RawBuffer):
            violation("adopt", "bytes", f"expected RawBuffer, got {type(raw).__name__}")

        length = raw.len
        if length < 0:
            violation("adopt", "bytes", f"negative buffer length {length}")
        if length == 0:
            return ByteBuffer(data=b"", length=0, handle=raw)
        if not raw.data:
            violation("adopt", "bytes", f"null data pointer for {length} bytes")

        array = ctypes.cast(raw.data, ctypes.POINTER(ctypes.c_uint8 * length)).contents
        return ByteBuffer(data=memoryview(array).cast("B"), length=length, handle=raw)
