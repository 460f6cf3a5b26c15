from dataclasses import dataclass, asdict
from typing import Any

from bufferlink.core.codec.registry import CodecRegistry
from bufferlink.core.ports.allocator import BufferAllocator
from bufferlink.core.ports.serializer import Serializer


@dataclass
class CommandResult:
    type: str
    """
    "ok" or "ko"
    """

    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CodecContext:
    """Everything a command needs to resolve types and move bytes."""
    registry: CodecRegistry
    allocator: BufferAllocator
    serializer: Serializer
    max_buffer_size: int
