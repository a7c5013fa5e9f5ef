"""Build the Jinja2 template contexts from the IR.

This is the naming and signature contract shared by every emitter:
  - how IR types render as Python annotations
  - argument order: path params, query params, then the body
  - the body argument's name (snake_case of its TypeName, else "payload")
  - the return annotation: T, None, or Result[T, <Op>Error]
  - per-route error variant class names: <Op><Variant>, e.g. GetPetNotFound

The operation identifier is used verbatim as the interface method, the
dispatcher function, the routing table entry and the client method.
"""

from __future__ import annotations

import keyword
from typing import Any, Iterable, Mapping

from .errors import DuplicateName
from .ir import (
    AnyType,
    ArrayType,
    Definition,
    NamedType,
    OptionalType,
    Primitive,
    PrimitiveType,
    Struct,
    Type,
    TypeMap,
)
from .naming import Identifier, TypeName
from .routes import ErrorVariant, LiteralSegment, Route, RouteParameter, RouteTable, iter_routes

_PRIMITIVE_NAMES: dict[Primitive, str] = {
    Primitive.STRING: "str",
    Primitive.NUMBER: "float",
    Primitive.INTEGER: "int",
    Primitive.BOOLEAN: "bool",
}

# Names the emitted models module defines or imports itself
RESERVED_TYPE_NAMES = frozenset({
    "Any", "BaseModel", "ClassVar", "ConfigDict", "E", "Err", "Field",
    "Generic", "Ok", "Optional", "Result", "T", "TypeVar", "Union",
})

# Names an emitted field or argument must not shadow: client method locals,
# module names, and names used inside rendered annotations and defaults
_RESERVED_ARGS = frozenset({
    "self", "response", "value", "models", "httpx", "aclose",
    "str", "int", "float", "bool", "list",
    "Optional", "Any", "Field",
})

# Attributes of pydantic.BaseModel that a field would shadow
_BASE_MODEL_ATTRS = frozenset({
    "construct", "copy", "dict", "fields", "from_orm", "json", "parse_file",
    "parse_obj", "parse_raw", "schema", "schema_json", "update_forward_refs",
    "validate",
})

# Prefix for names that cannot be used as they are (leading digit, model_*)
_NAME_PREFIX = "field_"


def render_type(typ: Type, prefix: str = "", defined: Iterable[TypeName] | None = None) -> str:
    """Render an IR type as a Python annotation.

    prefix qualifies named types (e.g. "models."). When defined is given,
    named types outside it are emitted as quoted forward references.
    """
    if isinstance(typ, PrimitiveType):
        return _PRIMITIVE_NAMES[typ.primitive]
    if isinstance(typ, ArrayType):
        return f"list[{render_type(typ.item, prefix, defined)}]"
    if isinstance(typ, OptionalType):
        return f"Optional[{render_type(typ.inner, prefix, defined)}]"
    if isinstance(typ, NamedType):
        name = f"{prefix}{typ.name}"
        if defined is not None and typ.name not in defined:
            return repr(name)
        return name
    if isinstance(typ, AnyType):
        return "Any"
    raise TypeError(f"not an IR type: {typ!r}")


def named_refs(typ: Type) -> list[TypeName]:
    if isinstance(typ, ArrayType):
        return named_refs(typ.item)
    if isinstance(typ, OptionalType):
        return named_refs(typ.inner)
    if isinstance(typ, NamedType):
        return [typ.name]
    return []


def is_list(typ: Type) -> bool:
    if isinstance(typ, OptionalType):
        return is_list(typ.inner)
    return isinstance(typ, ArrayType)


def docstring(text: str) -> str:
    """Make text safe inside a triple-quoted docstring."""
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"').strip()
    if text.endswith('"'):
        text += " "
    return text


def arg_name(name: Identifier) -> str:
    """Python name for a field, argument or operation.

    The wire name stays available as a pydantic alias or query key, so the
    escaped form only has to be a safe Python identifier.
    """
    value = name.value
    if not value.isidentifier() or value.startswith("model_"):
        return f"{_NAME_PREFIX}{value}"
    if keyword.iskeyword(value) or value in _RESERVED_ARGS or value in _BASE_MODEL_ATTRS:
        return f"{value}_"
    return value


def _check_unique(names: Iterable[str], where: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise DuplicateName(f"{where}: {name}")
        seen.add(name)


def error_union_name(route: Route) -> str:
    return f"{route.operation_id.camel}Error"


def variant_class_name(route: Route, variant: ErrorVariant) -> str:
    return f"{route.operation_id.camel}{variant.name}"


def generated_type_names(route: Route) -> list[str]:
    """Type names the models module defines for this route."""
    if not route.errors:
        return []
    return [error_union_name(route)] + [variant_class_name(route, v) for v in route.errors]


def check_names(types: TypeMap, table: RouteTable) -> None:
    """Reject names that collide in the emitted code.

    Covers schema names against helper and error names, and the escaped
    Python names of fields, operations and arguments.
    """
    taken = {str(name) for name in types}
    for name in taken & RESERVED_TYPE_NAMES:
        raise DuplicateName(name)
    for route in iter_routes(table):
        for name in generated_type_names(route):
            if name in taken:
                raise DuplicateName(name)
            taken.add(name)

    # Escaped Python names must stay distinct as well
    for name, definition in types.items():
        if isinstance(definition, Struct):
            _check_unique((arg_name(f.name) for f in definition), str(name))
    _check_unique((arg_name(r.operation_id) for r in iter_routes(table)), "operations")
    for route in iter_routes(table):
        args = [arg_name(p.name) for p in route.path_params + route.query_params]
        if route.body is not None:
            args.append(body_arg_name(route))
        _check_unique(args, str(route.operation_id))


# ---------------------------------------------------------------------------
# Type definitions
# ---------------------------------------------------------------------------

def _field_line(field_name: str, annotation: str, required: bool, alias: str, description: str) -> str:
    kwargs = []
    if not required:
        kwargs.append("default=None")
    if alias:
        kwargs.append(f"alias={alias!r}")
    if description:
        kwargs.append(f"description={description!r}")
    if not kwargs:
        return f"{field_name}: {annotation}"
    if kwargs == ["default=None"]:
        return f"{field_name}: {annotation} = None"
    return f"{field_name}: {annotation} = Field({', '.join(kwargs)})"


def _struct_context(name: TypeName, struct: Struct) -> dict[str, Any]:
    fields = []
    needs_alias = False
    for f in struct:
        python_name = arg_name(f.name)
        alias = f.key if f.key != python_name else ""
        needs_alias = needs_alias or bool(alias)
        fields.append(_field_line(
            python_name, render_type(f.type), f.required, alias, f.description,
        ))
    return {
        "name": str(name),
        "doc": docstring(struct.description),
        "fields": fields,
        "populate_by_name": needs_alias,
    }


def _alias_order(aliases: Mapping[TypeName, Type]) -> list[TypeName]:
    """Order aliases so each one follows the aliases it refers to."""
    ordered: list[TypeName] = []
    state: dict[TypeName, str] = {}

    def visit(name: TypeName) -> None:
        if name in state:
            return
        state[name] = "active"
        for dep in named_refs(aliases[name]):
            if dep in aliases:
                visit(dep)
        state[name] = "done"
        ordered.append(name)

    for name in aliases:
        visit(name)
    return ordered


def types_context(types: TypeMap, table: RouteTable) -> dict[str, Any]:
    structs = [_struct_context(name, d) for name, d in types.items() if isinstance(d, Struct)]

    alias_defs: dict[TypeName, Definition] = {
        name: d for name, d in types.items() if not isinstance(d, Struct)
    }
    defined = {name for name, d in types.items() if isinstance(d, Struct)}
    aliases = []
    for name in _alias_order(alias_defs):
        aliases.append({
            "name": str(name),
            "type": render_type(alias_defs[name], defined=defined),
            "doc": alias_defs[name].meta.description,
        })
        defined.add(name)

    error_routes = []
    for route in iter_routes(table):
        if not route.errors:
            continue
        error_routes.append({
            "operation": str(route.operation_id),
            "union": error_union_name(route),
            "variants": [
                {
                    "class": variant_class_name(route, v),
                    "status": v.status,
                    "reason": str(v.name),
                    "body": render_type(v.type) if v.type is not None else None,
                    "doc": docstring(v.description),
                }
                for v in route.errors
            ],
        })

    return {
        "structs": structs,
        "aliases": aliases,
        "error_routes": error_routes,
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _param_context(param: RouteParameter) -> dict[str, Any]:
    return {
        "name": arg_name(param.name),
        "wire": param.wire_name,
        "type": render_type(param.type, "models."),
        "is_list": is_list(param.type),
        "required": param.required,
    }


def body_arg_name(route: Route) -> str:
    taken = {arg_name(p.name) for p in route.path_params + route.query_params}
    candidates = []
    if isinstance(route.body, NamedType):
        candidates.append(route.body.name.snake)
    candidates += ["payload", "body", "request_body"]
    for candidate in candidates:
        if candidate not in taken and not keyword.iskeyword(candidate) and candidate not in _RESERVED_ARGS:
            return candidate
    raise DuplicateName(f"{route.operation_id}: no free name for the request body")


def return_annotation(route: Route, prefix: str = "models.") -> str:
    ok = render_type(route.success.type, prefix) if route.success.type is not None else "None"
    if not route.errors:
        return ok
    return f"{prefix}Result[{ok}, {prefix}{error_union_name(route)}]"


def client_url(route: Route) -> str:
    """Python f-string expression building the request path."""
    parts = []
    for segment in route.path.segments:
        if isinstance(segment, LiteralSegment):
            parts.append(segment.text)
        else:
            param = next(p for p in route.path_params if p.wire_name == segment.name)
            parts.append("{_segment(" + arg_name(param.name) + ")}")
    return 'f"/' + "/".join(parts) + '"'


def route_context(route: Route) -> dict[str, Any]:
    path_params = [_param_context(p) for p in route.path_params]
    query_params = [_param_context(p) for p in route.query_params]
    body = None
    if route.body is not None:
        body = {"name": body_arg_name(route), "type": render_type(route.body, "models.")}

    args = [f"{p['name']}: {p['type']}" for p in path_params + query_params]
    if body:
        args.append(f"{body['name']}: {body['type']}")

    success_type = route.success.type
    return {
        "name": arg_name(route.operation_id),
        "operation_id": str(route.operation_id),
        "verb": route.method.verb,
        "template": route.path.template,
        "doc": docstring(route.summary) or f"{route.method.verb} {route.path.template}",
        "path_params": path_params,
        "query_params": query_params,
        "body": body,
        "args": args,
        "call_args": [p["name"] for p in path_params + query_params] + ([body["name"]] if body else []),
        "returns": return_annotation(route),
        "url": client_url(route),
        "success": {
            "status": route.success.status,
            "type": render_type(success_type, "models.") if success_type is not None else None,
        },
        "has_errors": route.has_errors,
        "errors": [
            {
                "class": f"models.{variant_class_name(route, v)}",
                "status": v.status,
                "body": render_type(v.type, "models.") if v.type is not None else None,
            }
            for v in route.errors
        ],
    }


def routes_context(table: RouteTable) -> dict[str, Any]:
    return {
        "routes": [route_context(r) for r in iter_routes(table)],
        "table": [
            {
                "template": template,
                "bindings": [(r.method.verb, arg_name(r.operation_id)) for r in routes],
            }
            for template, routes in table.items()
        ],
    }


def build_context(types: TypeMap, table: RouteTable, **settings: Any) -> dict[str, Any]:
    """Build the full template context shared by all emitters."""
    context = types_context(types, table)
    context.update(routes_context(table))
    context.update(settings)
    return context
