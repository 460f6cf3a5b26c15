import struct
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Primitive:
    """
    A fixed-width scalar: its wire name, its width in bytes and the
    big-endian ``struct`` format used to encode it.
    """
    name: str
    width: int
    fmt: str

    def pack(self, value: int | float) -> bytes:
        try:
            return struct.pack(self.fmt, value)
        except (struct.error, OverflowError) as ex:
            raise ValueError(f"{value!r} is not representable as {self.name}: {ex}") from ex

    def pack_into(self, region: bytearray, offset: int, value: int | float) -> None:
        try:
            struct.pack_into(self.fmt, region, offset, value)
        except (struct.error, OverflowError) as ex:
            raise ValueError(f"{value!r} is not representable as {self.name}: {ex}") from ex

    def unpack_from(self, region: memoryview | bytes, offset: int) -> int | float:
        return struct.unpack_from(self.fmt, region, offset)[0]


U8 = Primitive("u8", 1, ">B")
I8 = Primitive("i8", 1, ">b")
U16 = Primitive("u16", 2, ">H")
I16 = Primitive("i16", 2, ">h")
U32 = Primitive("u32", 4, ">I")
I32 = Primitive("i32", 4, ">i")
U64 = Primitive("u64", 8, ">Q")
I64 = Primitive("i64", 8, ">q")
F32 = Primitive("f32", 4, ">f")
F64 = Primitive("f64", 8, ">d")

PRIMITIVES: dict[str, Primitive] = {
    p.name: p for p in (U8, I8, U16, I16, U32, I32, U64, I64, F32, F64)
}
