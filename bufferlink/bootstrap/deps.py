import atexit
import json
from functools import lru_cache
from typing import Any

from pydantic import ValidationError

from bufferlink.bootstrap.config.settings import BufferLinkConfig
from bufferlink.core.codec.registry import CodecRegistry
from bufferlink.core.ffi.transfer import ViaFfi, transfer_for
from bufferlink.core.ports.allocator import BufferAllocator
from bufferlink.core.ports.serializer import Serializer
from bufferlink.core.trace.recorder import TransferRecorder
from bufferlink.infra.ctypes_allocator import CtypesAllocator, load_library
from bufferlink.infra.memory_allocator import InProcessAllocator
from bufferlink.infra.msgpack_serializer import MsgPackSerializer


@lru_cache
def get_config() -> BufferLinkConfig:
    try:
        return BufferLinkConfig()
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(part) for part in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))


@lru_cache
def get_allocator() -> BufferAllocator:
    library = get_config().library
    if library.path is None:
        return InProcessAllocator()

    return CtypesAllocator(
        load_library(library.path),
        from_bytes_symbol=library.from_bytes_symbol,
        free_symbol=library.free_symbol,
    )


@lru_cache
def get_registry() -> CodecRegistry:
    return CodecRegistry.default()


@lru_cache
def get_serializer() -> Serializer:
    return MsgPackSerializer()


@lru_cache
def get_recorder() -> TransferRecorder | None:
    trace = get_config().trace
    if not trace.enabled:
        return None
    recorder = TransferRecorder(trace.file.open("ab"), get_serializer())
    atexit.register(recorder.close)
    return recorder


def get_transfer(expression: str) -> ViaFfi[Any, Any]:
    return transfer_for(
        get_registry().resolve(expression),
        get_allocator(),
        recorder=get_recorder(),
        max_size=get_config().limits.max_buffer_size,
    )
