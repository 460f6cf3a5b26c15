from typing import Any

import yaml

from bufferlink.core.codec.primitives import F32, F64
from bufferlink.core.codec.serializable import (
    BoolCodec,
    BytesStringCodec,
    MappingCodec,
    OptionalCodec,
    PrimitiveCodec,
    RecordCodec,
    SequenceCodec,
    Serializable,
    StringCodec,
)


def parse_value(codec: Serializable[Any], raw: str) -> Any:
    """
    Parse a YAML literal typed on the command line and shape it to what
    ``codec`` expects, e.g. ``"[1, 2, 3]"`` for ``sequence<u16>``.
    """
    try:
        loaded = yaml.safe_load(raw)
    except yaml.YAMLError as ex:
        raise ValueError(f"value is not valid YAML: {ex}") from ex
    return coerce(codec, loaded)


def coerce(codec: Serializable[Any], value: Any) -> Any:
    if isinstance(codec, OptionalCodec):
        return None if value is None else coerce(codec.inner, value)

    if value is None:
        raise ValueError(f"{codec.name} does not accept null")

    if isinstance(codec, PrimitiveCodec):
        if codec.primitive in (F32, F64):
            return _expect(codec, value, (int, float), float)
        return _expect(codec, value, (int,), int)

    if isinstance(codec, BoolCodec):
        return _expect(codec, value, (bool,), bool)

    if isinstance(codec, StringCodec):
        return _expect(codec, value, (str,), str)

    if isinstance(codec, BytesStringCodec):
        return _expect(codec, value, (str,), str).encode("utf-8")

    if isinstance(codec, SequenceCodec):
        items = _expect(codec, value, (list,), list)
        return [coerce(codec.element, item) for item in items]

    if isinstance(codec, MappingCodec):
        entries = _expect(codec, value, (dict,), dict)
        return {
            coerce(codec.key, k): coerce(codec.value, v)
            for k, v in entries.items()
        }

    if isinstance(codec, RecordCodec):
        fields = _expect(codec, value, (dict,), dict)
        missing = [name for name, _ in codec.fields if name not in fields]
        if missing:
            raise ValueError(f"{codec.name} is missing fields: {', '.join(missing)}")
        return codec.factory(**{name: coerce(field, fields[name]) for name, field in codec.fields})

    return value


def _expect(codec: Serializable[Any], value: Any, accepted: tuple[type, ...], convert: type) -> Any:
    # bool is an int subclass; only BoolCodec accepts it
    if isinstance(value, bool) and bool not in accepted:
        raise ValueError(f"{codec.name} expects {convert.__name__}, got {value!r}")
    if not isinstance(value, accepted):
        raise ValueError(f"{codec.name} expects {convert.__name__}, got {value!r}")
    return convert(value)
