import logging
from typing import Any, Generic, Protocol, TypeVar

from bufferlink.core.codec.primitives import I8
from bufferlink.core.codec.reader import Reader
from bufferlink.core.codec.serializable import (
    BoolCodec,
    BytesStringCodec,
    PrimitiveCodec,
    Serializable,
    StringCodec,
    decode_utf8,
    encode_utf8,
)
from bufferlink.core.codec.writer import Writer
from bufferlink.core.errors import MalformedPayloadError, violation
from bufferlink.core.models.buffer import ByteBuffer, MAX_BUFFER_SIZE
from bufferlink.core.ports.allocator import BufferAllocator
from bufferlink.core.trace.recorder import TransferRecorder

T = TypeVar("T")
F = TypeVar("F")


class ViaFfi(Protocol[T, F]):
    """
    Moves a value of type ``T`` across the boundary as a foreign value of
    type ``F``.

    ``lower`` produces the foreign representation on the sending side;
    ``lift`` rebuilds the native value on the receiving side. When ``F`` is a
    ByteBuffer, ``lift`` takes ownership of the buffer and frees it.
    """
    name: str

    def lift(self, lowered: F) -> T:
        ...

    def lower(self, value: T) -> F:
        ...


class Direct(Generic[T]):
    """Fixed-width scalars cross unchanged; lowering checks the value fits."""

    def __init__(self, codec: PrimitiveCodec[T]) -> None:
        self._primitive = codec.primitive
        self.name = codec.name

    def lift(self, lowered: T) -> T:
        return lowered

    def lower(self, value: T) -> T:
        self._primitive.pack(value)
        return value


class BoolTransfer:
    """
    Booleans cross as a one-byte integer, 1 for True and 0 for False, since
    not every calling convention marshals single-bit booleans reliably.
    """
    name = "bool"

    def lift(self, lowered: int) -> bool:
        if isinstance(lowered, bool) or not isinstance(lowered, int):
            raise MalformedPayloadError(self.name, f"expected an integer, got {lowered!r}")
        try:
            I8.pack(lowered)
        except ValueError as ex:
            raise MalformedPayloadError(self.name, str(ex)) from ex
        return lowered != 0

    def lower(self, value: bool) -> int:
        return 1 if value else 0


class _BufferBacked:
    def __init__(self, allocator: BufferAllocator) -> None:
        self._allocator = allocator

    def _adopt(self, lowered: Any) -> ByteBuffer:
        if isinstance(lowered, ByteBuffer):
            return lowered
        return self._allocator.adopt(lowered)


class BufferTransfer(_BufferBacked, Generic[T]):
    """
    The generic buffer-mediated rule: any type with a Serializable codec
    becomes transferable as a ByteBuffer.

    ``lower`` sizes a Writer with ``codec.size``, encodes, and hands the
    written bytes to the foreign allocator. ``lift`` decodes the buffer,
    requires that every byte was consumed, and frees it whatever the outcome.
    """

    def __init__(
        self,
        codec: Serializable[T],
        allocator: BufferAllocator,
        recorder: TransferRecorder | None = None,
        max_size: int = MAX_BUFFER_SIZE,
    ) -> None:
        super().__init__(allocator)
        self._codec = codec
        self._recorder = recorder
        self._max_size = max_size
        self.name = codec.name
        self._logger = logging.getLogger("core.ffi.transfer")

    @property
    def codec(self) -> Serializable[T]:
        return self._codec

    def lower(self, value: T) -> ByteBuffer:
        size = self._codec.size(value)
        if size > self._max_size:
            violation("lower", self.name, f"encoded size {size} exceeds limit {self._max_size}")

        writer = Writer(size, self.name)
        self._codec.write_into(writer, value)
        buffer = writer.to_buffer(self._allocator)

        if self._recorder is not None:
            self._recorder.record("lower", self.name, buffer.to_bytes())

        return buffer

    def lift(self, lowered: ByteBuffer | Any) -> T:
        buffer = self._adopt(lowered)
        try:
            if self._recorder is not None:
                self._recorder.record("lift", self.name, buffer.to_bytes())

            reader = Reader(buffer, self.name)
            try:
                value = self._codec.read_from(reader)
            except MalformedPayloadError as ex:
                self._logger.warning(f"Failed to lift {self.name}: {ex}")
                raise

            if reader.has_remaining():
                violation(
                    "lift", self.name,
                    f"{reader.remaining} unread bytes left in buffer"
                )
            return value
        finally:
            self._allocator.free(buffer)


class StringTransfer(_BufferBacked):
    """
    A text string lifted or lowered as a whole value. The buffer holds its
    raw UTF-8 bytes with no length prefix; transcoding happens here, not in
    the codec.
    """
    name = "string"

    def lift(self, lowered: ByteBuffer | Any) -> str:
        buffer = self._adopt(lowered)
        try:
            return decode_utf8(buffer.view())
        finally:
            self._allocator.free(buffer)

    def lower(self, value: str) -> ByteBuffer:
        return self._allocator.from_bytes(encode_utf8(value))


class BytesStringTransfer(_BufferBacked):
    """Narrow (already UTF-8) strings as whole buffer-backed values."""
    name = "bytestring"

    def lift(self, lowered: ByteBuffer | Any) -> bytes:
        buffer = self._adopt(lowered)
        try:
            return buffer.to_bytes()
        finally:
            self._allocator.free(buffer)

    def lower(self, value: bytes) -> ByteBuffer:
        return self._allocator.from_bytes(value)


def transfer_for(
    codec: Serializable[Any],
    allocator: BufferAllocator,
    recorder: TransferRecorder | None = None,
    max_size: int = MAX_BUFFER_SIZE,
) -> ViaFfi[Any, Any]:
    """
    Pick the transfer rule for ``codec``: direct for fixed-width scalars,
    whole-buffer for strings, the generic buffer-mediated rule for any other
    Serializable. There is no fallback for anything else.
    """
    if isinstance(codec, PrimitiveCodec):
        return Direct(codec)
    if isinstance(codec, BoolCodec):
        return BoolTransfer()
    if isinstance(codec, StringCodec):
        return StringTransfer(allocator)
    if isinstance(codec, BytesStringCodec):
        return BytesStringTransfer(allocator)
    if all(hasattr(codec, attr) for attr in ("name", "size", "read_from", "write_into")):
        return BufferTransfer(codec, allocator, recorder, max_size)
    raise TypeError(f"{codec!r} has no boundary transfer rule")
