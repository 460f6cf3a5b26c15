import pytest

from bufferlink.core.codec import serializable
from bufferlink.core.codec.registry import TypeExpressionError
from bufferlink.core.codec.serializable import RecordCodec


@pytest.mark.ut
def test_default_registry_knows_leaf_types(registry):
    assert registry.names == sorted([
        "u8", "i8", "u16", "i16", "u32", "i32", "u64", "i64",
        "f32", "f64", "bool", "string", "bytestring",
    ])
    assert registry.resolve("u16") is serializable.u16


@pytest.mark.ut
def test_resolves_nested_expression(registry):
    codec = registry.resolve("optional<sequence<string>>")

    assert codec.name == "optional<sequence<string>>"
    assert codec.inner.element is serializable.string


@pytest.mark.ut
def test_resolves_map_with_whitespace(registry):
    codec = registry.resolve(" map< string ,sequence<i32> > ")

    assert codec.name == "map<string, sequence<i32>>"


@pytest.mark.ut
def test_resolution_is_cached(registry):
    assert registry.resolve("sequence<u8>") is registry.resolve("sequence<u8>")


@pytest.mark.ut
def test_registered_record_is_usable_in_composites(registry):
    point = RecordCodec("Point", [("x", serializable.i32), ("y", serializable.i32)])
    registry.register(point)

    codec = registry.resolve("sequence<Point>")

    assert codec.element is point
    assert "Point" in registry.names


@pytest.mark.ut
@pytest.mark.parametrize("expression", [
    "unknown",
    "sequence<>",
    "sequence<u8",
    "map<u8>",
    "optional<u8, u8>",
    "u8 u8",
    "sequence<u8>>",
    "",
    "u8$",
])
def test_invalid_expressions_are_rejected(registry, expression):
    with pytest.raises(TypeExpressionError):
        registry.resolve(expression)


@pytest.mark.ut
def test_duplicate_and_reserved_names_are_rejected(registry):
    with pytest.raises(TypeExpressionError):
        registry.register(serializable.u8)

    with pytest.raises(TypeExpressionError):
        registry.register(RecordCodec("map", [("x", serializable.u8)]))


@pytest.mark.ut
@pytest.mark.parametrize("expression", [
    "map<sequence<u8>, u8>",
    "map<map<u8, u8>, u8>",
    "map<optional<sequence<string>>, u8>",
    "sequence<map<sequence<u8>, u8>>",
])
def test_unhashable_map_keys_do_not_resolve(registry, expression):
    with pytest.raises(TypeExpressionError):
        registry.resolve(expression)


@pytest.mark.ut
def test_record_key_needs_hashable_factory(registry):
    registry.register(RecordCodec("Pair", [("a", serializable.u8)]))

    with pytest.raises(TypeExpressionError):
        registry.resolve("map<Pair, u8>")
    assert registry.resolve("map<u8, sequence<Pair>>").name == "map<u8, sequence<Pair>>"
