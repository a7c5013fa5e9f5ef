"""Type IR shared by the type graph builder, the route analyzer and emitters.

Named types are leaves (NamedType) looked up by name in the TypeMap, so a
self-referential schema never becomes a cyclic object graph.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Union

from .errors import DuplicateName, EmptyStruct
from .naming import Identifier, TypeName


@dataclass(frozen=True)
class Meta:
    description: str = ""
    nullable: bool = False


NO_META = Meta()


class Primitive(enum.Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class PrimitiveType:
    primitive: Primitive
    meta: Meta = field(default=NO_META, compare=False)


@dataclass(frozen=True)
class ArrayType:
    item: "Type"
    meta: Meta = field(default=NO_META, compare=False)


@dataclass(frozen=True)
class OptionalType:
    inner: "Type"
    meta: Meta = field(default=NO_META, compare=False)


@dataclass(frozen=True)
class NamedType:
    name: TypeName
    meta: Meta = field(default=NO_META, compare=False)


@dataclass(frozen=True)
class AnyType:
    meta: Meta = field(default=NO_META, compare=False)


Type = Union[PrimitiveType, ArrayType, OptionalType, NamedType, AnyType]


def optional(inner: Type, meta: Meta | None = None) -> OptionalType:
    """Wrap inner in OptionalType, never nesting two OptionalTypes."""
    if isinstance(inner, OptionalType):
        return inner
    return OptionalType(inner, meta or inner.meta)


def describe(typ: Type) -> str:
    """Short human-readable rendering, used in error messages and logs."""
    if isinstance(typ, PrimitiveType):
        return typ.primitive.value
    if isinstance(typ, ArrayType):
        return f"array<{describe(typ.item)}>"
    if isinstance(typ, OptionalType):
        return f"optional<{describe(typ.inner)}>"
    if isinstance(typ, NamedType):
        return str(typ.name)
    return "any"


@dataclass(frozen=True)
class Field:
    name: Identifier
    type: Type
    required: bool
    description: str = ""
    # Key used on the wire; may be mixedCase while name is snake_case
    wire_name: str = ""

    @property
    def key(self) -> str:
        return self.wire_name or self.name.value


class Struct:
    """Ordered, non-empty set of fields."""

    def __init__(self, fields: Iterable[Field], description: str = "") -> None:
        ordered: dict[Identifier, Field] = {}
        for f in fields:
            if f.name in ordered:
                raise DuplicateName(f.name.value)
            ordered[f.name] = f
        if not ordered:
            raise EmptyStruct(description or "object schema has no properties")
        self._fields = MappingProxyType(ordered)
        self.description = description

    @property
    def fields(self) -> Mapping[Identifier, Field]:
        return self._fields

    def __iter__(self):
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Struct):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        inner = ", ".join(f"{f.name}: {describe(f.type)}" for f in self)
        return f"Struct({inner})"


Definition = Union[Struct, PrimitiveType, ArrayType, OptionalType, NamedType, AnyType]

TypeMap = Mapping[TypeName, Definition]


def freeze_type_map(entries: Mapping[TypeName, Definition]) -> TypeMap:
    return MappingProxyType(dict(entries))
