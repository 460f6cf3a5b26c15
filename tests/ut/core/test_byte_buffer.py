import pytest

from bufferlink.core.errors import BoundaryViolation
from bufferlink.core.models.buffer import ByteBuffer


@pytest.mark.ut
def test_view_covers_logical_length_only():
    buf = ByteBuffer(data=b"\x01\x02\x03\x04", length=2)

    assert buf.capacity == 4
    assert bytes(buf.view()) == b"\x01\x02"
    assert buf.to_bytes() == b"\x01\x02"


@pytest.mark.ut
def test_view_is_read_only():
    buf = ByteBuffer(data=bytearray(b"ab"), length=2)

    with pytest.raises(TypeError):
        buf.view()[0] = 0


@pytest.mark.ut
def test_length_beyond_capacity_is_fatal():
    with pytest.raises(BoundaryViolation):
        ByteBuffer(data=b"ab", length=3)


@pytest.mark.ut
def test_negative_length_is_fatal():
    with pytest.raises(BoundaryViolation):
        ByteBuffer(data=b"ab", length=-1)


@pytest.mark.ut
def test_use_after_release_is_fatal():
    buf = ByteBuffer(data=b"ab", length=2)
    buf.mark_released()

    assert buf.released
    with pytest.raises(BoundaryViolation):
        buf.view()


@pytest.mark.ut
def test_double_release_is_fatal():
    buf = ByteBuffer(data=b"ab", length=2)
    buf.mark_released()

    with pytest.raises(BoundaryViolation):
        buf.mark_released()


@pytest.mark.ut
def test_violation_is_not_an_exception():
    # Ordinary handlers must not swallow fatal violations
    assert not issubclass(BoundaryViolation, Exception)
