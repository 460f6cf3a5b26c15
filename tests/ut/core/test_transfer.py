import io

import pytest

from bufferlink.core.codec import serializable
from bufferlink.core.errors import BoundaryViolation, MalformedPayloadError
from bufferlink.core.ffi.transfer import (
    BoolTransfer,
    BufferTransfer,
    BytesStringTransfer,
    Direct,
    StringTransfer,
    transfer_for,
)
from bufferlink.core.models.buffer import ByteBuffer
from bufferlink.core.trace.recorder import TransferRecorder, read_trace


@pytest.mark.ut
@pytest.mark.parametrize("codec, value", [
    (serializable.sequence(serializable.u16), [1, 2, 3]),
    (serializable.optional(serializable.sequence(serializable.string)), ["a", "ü", ""]),
    (serializable.optional(serializable.sequence(serializable.string)), None),
    (serializable.mapping(serializable.string, serializable.optional(serializable.i64)),
     {"a": -(2 ** 63), "b": None}),
    (serializable.u32, 0x01020304),
    (serializable.string, "héllo"),
])
def test_buffer_roundtrip_consumes_and_frees(allocator, codec, value):
    transfer = BufferTransfer(codec, allocator)

    buffer = transfer.lower(value)
    assert buffer.length <= codec.size(value)
    assert allocator.live_count == 1

    assert transfer.lift(buffer) == value
    assert allocator.live_count == 0
    assert buffer.released


@pytest.mark.ut
def test_lower_produces_wire_bytes(allocator):
    transfer = BufferTransfer(serializable.sequence(serializable.u16), allocator)

    buffer = transfer.lower([1, 2, 3])

    assert buffer.to_bytes() == bytes.fromhex("00000003 0001 0002 0003")


@pytest.mark.ut
def test_lowered_wide_string_is_not_overallocated(allocator):
    transfer = BufferTransfer(serializable.string, allocator)

    buffer = transfer.lower("€€")

    assert serializable.string.size("€€") == 4 + 6
    assert buffer.length == 4 + 6
    buffer = transfer.lower("a€")
    assert buffer.length == 4 + 4
    assert buffer.capacity == buffer.length


@pytest.mark.ut
def test_trailing_bytes_are_fatal_and_buffer_still_freed(allocator):
    transfer = BufferTransfer(serializable.u16, allocator)
    buffer = allocator.from_bytes(b"\x00\x01\x02")

    with pytest.raises(BoundaryViolation) as exc:
        transfer.lift(buffer)

    assert exc.value.operation == "lift"
    assert allocator.live_count == 0


@pytest.mark.ut
def test_malformed_payload_is_recoverable_and_buffer_freed(allocator):
    transfer = BufferTransfer(serializable.optional(serializable.u8), allocator)
    buffer = allocator.from_bytes(b"\x02")

    with pytest.raises(MalformedPayloadError):
        transfer.lift(buffer)

    assert allocator.live_count == 0


@pytest.mark.ut
def test_short_sequence_is_fatal(allocator):
    transfer = BufferTransfer(serializable.sequence(serializable.u16), allocator)
    buffer = allocator.from_bytes(bytes.fromhex("00000005 0001 0002"))

    with pytest.raises(BoundaryViolation):
        transfer.lift(buffer)

    assert allocator.live_count == 0


@pytest.mark.ut
def test_lifting_twice_is_fatal(allocator):
    transfer = BufferTransfer(serializable.u8, allocator)
    buffer = transfer.lower(1)
    transfer.lift(buffer)

    with pytest.raises(BoundaryViolation):
        transfer.lift(buffer)


@pytest.mark.ut
def test_size_above_limit_is_fatal(allocator):
    transfer = BufferTransfer(serializable.bytestring, allocator, max_size=8)

    with pytest.raises(BoundaryViolation):
        transfer.lower(b"12345")

    assert allocator.live_count == 0


@pytest.mark.ut
def test_direct_transfer_is_identity_and_checks_range():
    transfer = Direct(serializable.i16)

    assert transfer.lower(-5) == -5
    assert transfer.lift(-5) == -5
    with pytest.raises(ValueError):
        transfer.lower(40000)


@pytest.mark.ut
def test_float_out_of_f32_range_is_value_error(allocator):
    with pytest.raises(ValueError):
        Direct(serializable.f32).lower(1e40)
    with pytest.raises(ValueError):
        BufferTransfer(serializable.f32, allocator).lower(1e40)

    assert Direct(serializable.f32).lower(0.5) == 0.5
    assert allocator.live_count == 0


@pytest.mark.ut
def test_bool_transfer():
    transfer = BoolTransfer()

    assert transfer.lower(True) == 1
    assert transfer.lower(False) == 0
    assert transfer.lift(1) is True
    assert transfer.lift(0) is False
    assert transfer.lift(-1) is True


@pytest.mark.ut
@pytest.mark.parametrize("lowered", [128, -129, "1", True, 1.0])
def test_bool_transfer_rejects_non_int8(lowered):
    with pytest.raises(MalformedPayloadError):
        BoolTransfer().lift(lowered)


@pytest.mark.ut
def test_string_transfer_uses_raw_utf8(allocator):
    transfer = StringTransfer(allocator)

    buffer = transfer.lower("hé")

    assert buffer.to_bytes() == "hé".encode("utf-8")
    assert transfer.lift(buffer) == "hé"
    assert allocator.live_count == 0


@pytest.mark.ut
def test_empty_string_transfer(allocator):
    transfer = StringTransfer(allocator)

    assert transfer.lift(transfer.lower("")) == ""
    assert allocator.live_count == 0


@pytest.mark.ut
def test_bytestring_transfer(allocator):
    transfer = BytesStringTransfer(allocator)

    assert transfer.lift(transfer.lower(b"\x00abc")) == b"\x00abc"
    assert allocator.live_count == 0


@pytest.mark.ut
def test_transfer_for_selects_rule(allocator):
    assert isinstance(transfer_for(serializable.u8, allocator), Direct)
    assert isinstance(transfer_for(serializable.boolean, allocator), BoolTransfer)
    assert isinstance(transfer_for(serializable.string, allocator), StringTransfer)
    assert isinstance(transfer_for(serializable.bytestring, allocator), BytesStringTransfer)

    composite = serializable.optional(serializable.u8)
    transfer = transfer_for(composite, allocator)
    assert isinstance(transfer, BufferTransfer)
    assert transfer.codec is composite


@pytest.mark.ut
def test_transfer_for_has_no_fallback(allocator):
    with pytest.raises(TypeError):
        transfer_for(object(), allocator)


@pytest.mark.ut
def test_recorder_sees_both_directions(allocator, serializer):
    stream = io.BytesIO()
    recorder = TransferRecorder(stream, serializer)
    transfer = BufferTransfer(serializable.sequence(serializable.u8), allocator, recorder)

    transfer.lift(transfer.lower([9]))

    stream.seek(0)
    records = list(read_trace(stream, serializer))
    assert [r.op for r in records] == ["lower", "lift"]
    assert all(r.type == "sequence<u8>" for r in records)
    assert records[0].payload == bytes.fromhex("00000001 09")


@pytest.mark.ut
def test_foreign_buffer_must_come_from_allocator(allocator):
    transfer = BufferTransfer(serializable.u8, allocator)

    with pytest.raises(BoundaryViolation):
        transfer.lift(ByteBuffer(data=b"\x01", length=1))
