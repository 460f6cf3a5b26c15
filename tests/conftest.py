import os
from typing import Generator

import pytest

from bufferlink.core.codec.registry import CodecRegistry
from bufferlink.infra.memory_allocator import InProcessAllocator
from bufferlink.infra.msgpack_serializer import MsgPackSerializer
from tests.fake.fake_library import FakeForeignLibrary


@pytest.fixture
def allocator() -> InProcessAllocator:
    return InProcessAllocator()


@pytest.fixture
def registry() -> CodecRegistry:
    return CodecRegistry.default()


@pytest.fixture
def serializer() -> MsgPackSerializer:
    return MsgPackSerializer()


@pytest.fixture
def foreign_lib() -> FakeForeignLibrary:
    return FakeForeignLibrary()


@pytest.fixture
def clean_env(tmp_path, monkeypatch) -> Generator[None, None, None]:
    """Run with no BUFFERLINK_* variables and a cwd without config file."""
    backup = os.environ.copy()
    try:
        for name in list(os.environ):
            if name.startswith("BUFFERLINK"):
                del os.environ[name]
        monkeypatch.chdir(tmp_path)
        yield
    finally:
        os.environ.clear()
        os.environ.update(backup)
