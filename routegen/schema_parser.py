"""Build the type IR from OpenAPI schema objects.

Handles:
- string/number/integer/boolean primitives
- arrays (items must not be inline objects)
- objects with properties -> Struct
- untyped schemas without properties -> Any
- $ref -> Named, without building the referenced schema
- allOf merging of object constituents
- nullable (3.0 flag or 3.1 ["T", "null"] type lists) -> Optional

oneOf/anyOf/not are rejected.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from .errors import BadReference, EmptyStruct, NotStructurallyTyped, Unsupported, UnsupportedKind
from .ir import (
    AnyType,
    ArrayType,
    Definition,
    Field,
    Meta,
    NamedType,
    Primitive,
    PrimitiveType,
    Struct,
    Type,
    TypeMap,
    describe,
    freeze_type_map,
    optional,
)
from .naming import parse_identifier, parse_type_name
from .references import MAX_REF_DEPTH, Components, is_reference, resolve

logger = logging.getLogger(__name__)

_PRIMITIVES: dict[str, Primitive] = {
    "string": Primitive.STRING,
    "number": Primitive.NUMBER,
    "integer": Primitive.INTEGER,
    "boolean": Primitive.BOOLEAN,
}

_UNSUPPORTED_COMBINATORS = ("oneOf", "anyOf", "not")


def clean_description(text: str) -> str:
    """Strip HTML tags and collapse whitespace."""
    text = re.sub(r"<[^>]+>", "", text or "")
    return re.sub(r"\s+", " ", text).strip()


def _meta(schema: Mapping[str, Any], nullable: bool = False) -> Meta:
    return Meta(
        description=clean_description(schema.get("description", "")),
        nullable=nullable or bool(schema.get("nullable", False)),
    )


def _split_type(schema: Mapping[str, Any]) -> tuple[Any, bool]:
    """Return (type keyword, nullable), unpacking 3.1-style type lists."""
    kind = schema.get("type")
    nullable = bool(schema.get("nullable", False))
    if isinstance(kind, list):
        kinds = [k for k in kind if k != "null"]
        nullable = nullable or len(kinds) != len(kind)
        if len(kinds) != 1:
            raise UnsupportedKind(kind)
        kind = kinds[0]
    return kind, nullable


def _maybe_nullable(typ: Type, nullable: bool) -> Type:
    return optional(typ) if nullable else typ


def build_type(schema: Any, components: Components) -> Definition:
    """Convert one schema node into a Struct or a Type."""
    if not isinstance(schema, Mapping):
        raise UnsupportedKind(schema)

    if is_reference(schema):
        name, target = resolve(schema["$ref"], components)
        return NamedType(name, _meta(target))

    if "allOf" in schema:
        return merge_all_of(schema, components)

    for key in _UNSUPPORTED_COMBINATORS:
        if key in schema:
            raise UnsupportedKind(key)

    kind, nullable = _split_type(schema)
    meta = _meta(schema, nullable)

    if kind is None:
        if schema.get("properties") or schema.get("required"):
            return struct_from_object(schema, components)
        return _maybe_nullable(AnyType(meta), nullable)

    if kind in _PRIMITIVES:
        return _maybe_nullable(PrimitiveType(_PRIMITIVES[kind], meta), nullable)

    if kind == "array":
        if "items" not in schema:
            raise UnsupportedKind("array without items")
        item = discard_struct(build_type(schema["items"], components), "array items")
        return _maybe_nullable(ArrayType(item, meta), nullable)

    if kind == "object":
        return struct_from_object(schema, components)

    raise UnsupportedKind(kind)


def discard_struct(definition: Definition, where: str = "") -> Type:
    """Return definition as a Type, rejecting inline (anonymous) structs."""
    if isinstance(definition, Struct):
        raise NotStructurallyTyped(where or repr(definition))
    return definition


def struct_from_object(obj: Mapping[str, Any], components: Components) -> Struct:
    """Collect an object schema's properties into a Struct, in declared order."""
    required = set(obj.get("required") or [])
    fields = []
    for raw_name, prop in (obj.get("properties") or {}).items():
        name = parse_identifier(raw_name)
        typ = discard_struct(build_type(prop, components), f"property {raw_name!r}")
        is_required = raw_name in required
        if not is_required:
            typ = optional(typ)
        description = ""
        if isinstance(prop, Mapping) and not is_reference(prop):
            description = clean_description(prop.get("description", ""))
        fields.append(Field(name, typ, is_required, description, wire_name=raw_name))
    if not fields:
        raise EmptyStruct(obj.get("title") or "object schema has no properties")
    return Struct(fields, clean_description(obj.get("description", "")))


def merge_all_of(schema: Mapping[str, Any], components: Components, depth: int = 0) -> Struct:
    """Merge every allOf constituent's fields into one Struct.

    A field declared twice raises DuplicateName. A constituent that is not an
    object (primitive, array, Any) raises Unsupported.
    """
    if depth > MAX_REF_DEPTH:
        raise BadReference("allOf nesting too deep")
    fields: list[Field] = []
    for part in schema["allOf"]:
        fields.extend(_constituent_struct(part, components, depth))
    return Struct(fields, clean_description(schema.get("description", "")))


def _constituent_struct(part: Any, components: Components, depth: int) -> Struct:
    if is_reference(part):
        _, part = resolve(part["$ref"], components)
    if isinstance(part, Mapping) and "allOf" in part:
        built: Definition = merge_all_of(part, components, depth + 1)
    else:
        built = build_type(part, components)
    if not isinstance(built, Struct):
        raise Unsupported(f"structural merge of {describe(built)} in allOf")
    return built


def gather_types(components: Components) -> TypeMap:
    """Build every component schema into the TypeMap, in declaration order."""
    types = {}
    for raw_name, schema in components.schemas.items():
        logger.info("Processing schema: %s", raw_name)
        name = parse_type_name(raw_name)
        types[name] = build_type(schema, components)
    return freeze_type_map(types)
