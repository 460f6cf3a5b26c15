import pytest

from bufferlink.core.codec.writer import Writer
from bufferlink.core.errors import BoundaryViolation


@pytest.mark.ut
def test_writes_big_endian_u32():
    writer = Writer(4)
    writer.write_u32(0x01020304)

    assert bytes(writer.written()) == bytes.fromhex("01020304")


@pytest.mark.ut
def test_signed_and_float_writes():
    writer = Writer(1 + 2 + 4 + 8 + 4 + 8)
    writer.write_i8(-1)
    writer.write_i16(-2)
    writer.write_i32(-3)
    writer.write_i64(-4)
    writer.write_f32(1.5)
    writer.write_f64(-0.0)

    assert bytes(writer.written()) == bytes.fromhex(
        "ff fffe fffffffd fffffffffffffffc 3fc00000 8000000000000000"
    )


@pytest.mark.ut
def test_write_past_capacity_is_fatal():
    writer = Writer(3, "test")

    with pytest.raises(BoundaryViolation) as exc:
        writer.write_u32(1)

    assert exc.value.operation == "Writer.write_u32"
    assert writer.offset == 0


@pytest.mark.ut
def test_unrepresentable_value_is_value_error_and_rolls_back():
    writer = Writer(2)

    with pytest.raises(ValueError):
        writer.write_u8(256)
    assert writer.offset == 0

    writer.write_u8(255)
    assert bytes(writer.written()) == b"\xff"


@pytest.mark.ut
def test_float_too_large_for_f32_is_value_error_and_rolls_back():
    writer = Writer(4)

    with pytest.raises(ValueError):
        writer.write_f32(1e40)
    assert writer.offset == 0

    writer.write_f32(1.5)
    assert bytes(writer.written()) == b"\x3f\xc0\x00\x00"


@pytest.mark.ut
def test_capacity_out_of_range_is_fatal():
    with pytest.raises(BoundaryViolation):
        Writer(-1)
    with pytest.raises(BoundaryViolation):
        Writer(2 ** 31)


@pytest.mark.ut
def test_raw_string_exact_fill():
    writer = Writer(6)

    def produce(span):
        span[:] = b"hi"
        return 2

    assert writer.write_raw_string(2, produce) == 2
    assert bytes(writer.written()) == bytes.fromhex("00000002 6869")


@pytest.mark.ut
def test_raw_string_backpatches_actual_length_and_reclaims_slack():
    writer = Writer(4 + 9 + 1)

    def produce(span):
        assert len(span) == 9
        span[:3] = b"abc"
        return 3

    writer.write_raw_string(9, produce)
    assert writer.offset == 7

    writer.write_u8(0xEE)
    assert bytes(writer.written()) == bytes.fromhex("00000003 616263 ee")


@pytest.mark.ut
def test_raw_string_hint_past_capacity_is_fatal():
    writer = Writer(5)

    with pytest.raises(BoundaryViolation):
        writer.write_raw_string(2, lambda span: 0)


@pytest.mark.ut
def test_raw_string_producer_overreporting_is_fatal():
    writer = Writer(10)

    with pytest.raises(BoundaryViolation):
        writer.write_raw_string(2, lambda span: 3)


@pytest.mark.ut
def test_to_buffer_copies_written_span_only(allocator):
    writer = Writer(8)
    writer.write_u16(7)

    buf = writer.to_buffer(allocator)

    assert buf.to_bytes() == b"\x00\x07"
    assert buf.length == 2
    assert allocator.live_count == 1
