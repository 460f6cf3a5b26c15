import logging
import struct
from dataclasses import dataclass, asdict
from typing import Any, BinaryIO, Iterator

from bufferlink.core.ports.serializer import Serializer

FRAME_HEADER = struct.Struct("!I")


@dataclass
class TransferRecord:
    """
    One buffer-mediated transfer as seen on this side of the boundary.
    """
    op: str
    """
    "lower" for outbound buffers, "lift" for inbound ones
    """

    type: str
    """
    Name of the codec used for the transfer, e.g. "sequence<u16>"
    """

    payload: bytes
    """
    The exact bytes that crossed the boundary
    """

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TransferRecorder:
    """
    Appends TransferRecords to a binary stream.

    Each record is encoded with the configured Serializer and framed with a
    4-byte big-endian length prefix, so a trace can be read back record by
    record without knowing the payload types in advance.

    The recorder never takes part in the transfer itself: it only sees a copy
    of the bytes after lowering or before lifting.
    """

    def __init__(self, stream: BinaryIO, serializer: Serializer) -> None:
        self._stream = stream
        self._serializer = serializer
        self._logger = logging.getLogger("core.trace.recorder")

    def record(self, op: str, type_name: str, payload: bytes) -> None:
        frame = self._serializer.serialize(
            TransferRecord(op=op, type=type_name, payload=payload).to_dict()
        )
        self._stream.write(FRAME_HEADER.pack(len(frame)))
        self._stream.write(frame)
        self._stream.flush()

    def close(self) -> None:
        self._stream.close()


def read_trace(stream: BinaryIO, serializer: Serializer) -> Iterator[TransferRecord]:
    """
    Iterate over the records of a trace stream.

    A trailing frame cut short (e.g. the writer died mid-record) ends the
    iteration with a warning rather than an error.
    """
    logger = logging.getLogger("core.trace.recorder")

    while True:
        header = stream.read(FRAME_HEADER.size)
        if not header:
            return
        if len(header) < FRAME_HEADER.size:
            logger.warning("Truncated frame header at end of trace")
            return

        (length,) = FRAME_HEADER.unpack(header)
        frame = stream.read(length)
        if len(frame) < length:
            logger.warning("Truncated frame at end of trace")
            return

        data = serializer.deserialize(frame)
        yield TransferRecord(
            op=data["op"],
            type=data["type"],
            payload=bytes(data["payload"]),
        )
