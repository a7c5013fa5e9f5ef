"""Resolve $ref pointers against the document's component tables.

Only local pointers of the exact form

    #/components/<namespace>/<Name>

are accepted, and a pointer is only ever resolved in the namespace its
use site expects. Schema references may chain (bounded by MAX_REF_DEPTH);
parameters, responses and request bodies are single-hop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .errors import BadReference
from .naming import TypeName, parse_type_name

SCHEMAS = "schemas"
PARAMETERS = "parameters"
RESPONSES = "responses"
REQUEST_BODIES = "requestBodies"

# Longest reference chain followed before giving up (cycle guard)
MAX_REF_DEPTH = 20

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _frozen(table: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(table or {}))


@dataclass(frozen=True)
class Components:
    """Read-only lookup tables for one compilation run."""

    schemas: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    parameters: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    responses: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    request_bodies: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> "Components":
        components = spec.get("components") or {}
        return cls(
            schemas=_frozen(components.get(SCHEMAS)),
            parameters=_frozen(components.get(PARAMETERS)),
            responses=_frozen(components.get(RESPONSES)),
            request_bodies=_frozen(components.get(REQUEST_BODIES)),
        )

    def table(self, namespace: str) -> Mapping[str, Any]:
        if namespace == SCHEMAS:
            return self.schemas
        if namespace == PARAMETERS:
            return self.parameters
        if namespace == RESPONSES:
            return self.responses
        if namespace == REQUEST_BODIES:
            return self.request_bodies
        raise ValueError(f"unknown namespace {namespace!r}")


def is_reference(node: Any) -> bool:
    return isinstance(node, Mapping) and "$ref" in node


def split_ref(ref: str, namespace: str) -> str:
    """Return the entry key named by ref, checking the pointer grammar."""
    if not isinstance(ref, str) or not ref.startswith("#"):
        raise BadReference(ref)
    parts = ref.split("/")
    if not (
        len(parts) == 4
        and parts[0] == "#"
        and parts[1] == "components"
        and parts[2] == namespace
        and parts[3]
    ):
        raise BadReference(ref)
    return parts[3]


def parse_ref(ref: str, namespace: str = SCHEMAS) -> TypeName:
    """Extract the TypeName a schema pointer refers to."""
    return parse_type_name(split_ref(ref, namespace))


def _lookup(ref: str, namespace: str, components: Components) -> Any:
    key = split_ref(ref, namespace)
    table = components.table(namespace)
    if key not in table:
        raise BadReference(ref)
    return table[key]


def resolve(
    ref: str,
    components: Components,
    namespace: str = SCHEMAS,
) -> tuple[TypeName, Mapping[str, Any]]:
    """Resolve a schema reference.

    Returns the name of the directly referenced entry and the terminal
    non-reference node at the end of the chain. The terminal node's
    ``description`` and ``nullable`` keys are its metadata.
    """
    name = parse_ref(ref, namespace)
    current = ref
    for _ in range(MAX_REF_DEPTH):
        node = _lookup(current, namespace, components)
        if not is_reference(node):
            return name, node
        current = node["$ref"]
    raise BadReference(ref)


def dereference(node: Any, namespace: str, components: Components) -> Mapping[str, Any]:
    """Return node itself, or the entry it points at (single hop)."""
    if not is_reference(node):
        return node
    ref = node["$ref"]
    target = _lookup(ref, namespace, components)
    if is_reference(target):
        raise BadReference(ref)
    return target
