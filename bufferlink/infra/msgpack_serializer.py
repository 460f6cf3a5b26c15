import msgpack
from typing import Any

from bufferlink.core.ports.serializer import Serializer


class MsgPackSerializer(Serializer):
    """
    MsgPack-based implementation of the Serializer interface, used for
    transfer trace records.

    Payloads are raw wire bytes, so ``bytes`` must come back as ``bytes``
    and never be confused with text: bin and str types are kept apart.
    """
    def serialize(self, message: Any) -> bytes:
        return msgpack.packb(message, use_bin_type=True, strict_types=True)

    def deserialize(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False, strict_map_key=True)
