from functools import lru_cache

from bufctl.core.cmd import BufCtl
from bufctl.core.model import CodecContext
from bufctl.infra.format_renderer import JsonRenderer, YamlRenderer
from bufferlink.bootstrap.deps import get_allocator, get_config, get_registry, get_serializer


def get_context() -> CodecContext:
    return CodecContext(
        registry=get_registry(),
        allocator=get_allocator(),
        serializer=get_serializer(),
        max_buffer_size=get_config().limits.max_buffer_size,
    )


@lru_cache
def get_cli() -> BufCtl:
    renderers = {
        "yaml": YamlRenderer(),
        "json": JsonRenderer(),
    }
    return BufCtl(get_context, renderers)
