from typing import Protocol, Any


class Serializer(Protocol):
    """
    Defines the interface for encoding/decoding transfer trace records.

    Implementations must be:
    - deterministic
    - pure (no side effects)
    - able to carry raw bytes values unchanged
    """

    def serialize(self, message: Any) -> bytes:
        """Encode a Python object into bytes suitable for a trace file."""

    def deserialize(self, data: bytes) -> Any:
        """Decode bytes read from a trace file into a Python object."""
