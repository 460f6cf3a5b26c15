import logging
import re
from typing import Any

from bufferlink.core.codec import serializable
from bufferlink.core.codec.serializable import Serializable

_TOKEN = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_.]*|[<>,])")


class TypeExpressionError(ValueError):
    pass


class CodecRegistry:
    """
    Explicit mapping from type expressions to composed codecs.

    Named types (primitives, ``bool``, ``string``, ``bytestring`` and any
    registered record) are leaves; ``optional<T>``, ``sequence<T>`` and
    ``map<K, V>`` compose them. Nothing is looked up implicitly: a name that
    was never registered is an error.

        >>> registry = CodecRegistry.default()
        >>> registry.resolve("optional<sequence<string>>").name
        'optional<sequence<string>>'
    """

    def __init__(self) -> None:
        self._named: dict[str, Serializable[Any]] = {}
        self._cache: dict[str, Serializable[Any]] = {}
        self._logger = logging.getLogger("core.codec.registry")

    @classmethod
    def default(cls) -> "CodecRegistry":
        registry = cls()
        for codec in (
            serializable.u8, serializable.i8,
            serializable.u16, serializable.i16,
            serializable.u32, serializable.i32,
            serializable.u64, serializable.i64,
            serializable.f32, serializable.f64,
            serializable.boolean,
            serializable.string,
            serializable.bytestring,
        ):
            registry.register(codec)
        return registry

    @property
    def names(self) -> list[str]:
        return sorted(self._named)

    def register(self, codec: Serializable[Any], name: str | None = None) -> None:
        name = name or codec.name
        if name in ("optional", "sequence", "map"):
            raise TypeExpressionError(f"'{name}' is reserved")
        if name in self._named:
            raise TypeExpressionError(f"type '{name}' is already registered")
        self._named[name] = codec
        self._cache.clear()
        self._logger.debug(f"Registered codec '{name}'")

    def resolve(self, expression: str) -> Serializable[Any]:
        cached = self._cache.get(expression)
        if cached is not None:
            return cached

        tokens = _tokenize(expression)
        codec, pos = self._parse(tokens, 0)
        if pos != len(tokens):
            raise TypeExpressionError(
                f"unexpected '{tokens[pos]}' in type expression '{expression}'"
            )

        self._cache[expression] = codec
        return codec

    def _parse(self, tokens: list[str], pos: int) -> tuple[Serializable[Any], int]:
        if pos >= len(tokens):
            raise TypeExpressionError("unexpected end of type expression")

        head = tokens[pos]
        pos += 1

        if head == "optional":
            inner, pos = self._parse_arguments(tokens, pos, 1)
            return serializable.optional(inner[0]), pos
        if head == "sequence":
            inner, pos = self._parse_arguments(tokens, pos, 1)
            return serializable.sequence(inner[0]), pos
        if head == "map":
            inner, pos = self._parse_arguments(tokens, pos, 2)
            try:
                return serializable.mapping(inner[0], inner[1]), pos
            except TypeError as ex:
                raise TypeExpressionError(str(ex)) from ex

        codec = self._named.get(head)
        if codec is None:
            raise TypeExpressionError(f"unknown type '{head}'")
        return codec, pos

    def _parse_arguments(
        self,
        tokens: list[str],
        pos: int,
        arity: int
    ) -> tuple[list[Serializable[Any]], int]:
        pos = _expect(tokens, pos, "<")
        args = []
        for i in range(arity):
            if i:
                pos = _expect(tokens, pos, ",")
            codec, pos = self._parse(tokens, pos)
            args.append(codec)
        pos = _expect(tokens, pos, ">")
        return args, pos


def _tokenize(expression: str) -> list[str]:
    tokens = []
    pos = 0
    stripped = expression.rstrip()
    while pos < len(stripped):
        match = _TOKEN.match(stripped, pos)
        if match is None:
            raise TypeExpressionError(
                f"invalid character at {pos} in type expression '{expression}'"
            )
        tokens.append(match.group(1))
        pos = match.end()
    return tokens


def _expect(tokens: list[str], pos: int, token: str) -> int:
    if pos >= len(tokens) or tokens[pos] != token:
        found = tokens[pos] if pos < len(tokens) else "end of expression"
        raise TypeExpressionError(f"expected '{token}', found '{found}'")
    return pos + 1
