"""Analyse the paths section into a validated, typed route table.

A Route only exists once every check below has passed:
  - the path template matches the segment grammar
  - the operation has an operationId, unique across the table
  - path parameters are required and match the template placeholders
  - query parameters have schemas (Optional when not required)
  - request bodies only on body-carrying verbs, application/json only
  - exactly one 2xx response, any number of 4xx responses, nothing else
"""

from __future__ import annotations

import enum
import http
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence, Union

from .errors import (
    AmbiguousSuccess,
    BadIdentifier,
    BadStatusCode,
    BadTypeName,
    DuplicateName,
    MalformedPath,
    NoOperationId,
    UnexpectedReference,
    Unsupported,
    UnsupportedContentType,
)
from .ir import Type, optional
from .naming import Identifier, TypeName, parse_identifier, parse_type_name
from .references import PARAMETERS, REQUEST_BODIES, RESPONSES, Components, dereference, is_reference
from .schema_parser import build_type, clean_description, discard_struct

logger = logging.getLogger(__name__)

JSON = "application/json"

SUCCESS_RANGE = range(200, 301)
ERROR_RANGE = range(400, 501)


class Method(enum.Enum):
    """HTTP verbs, in the order routes are emitted for a path."""

    GET = "get"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"

    @property
    def has_body(self) -> bool:
        return self in _BODY_METHODS

    @property
    def verb(self) -> str:
        return self.value.upper()


_BODY_METHODS = frozenset({Method.POST, Method.PUT, Method.PATCH, Method.DELETE})


# ---------------------------------------------------------------------------
# Path templates
# ---------------------------------------------------------------------------

_LITERAL_RE = re.compile(r"^[A-Za-z]+$")
_PARAM_RE = re.compile(r"^\{([A-Za-z]+)\}$")


@dataclass(frozen=True)
class LiteralSegment:
    text: str

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class ParameterSegment:
    name: str

    def render(self) -> str:
        return "{" + self.name + "}"


PathSegment = Union[LiteralSegment, ParameterSegment]


@dataclass(frozen=True)
class RoutePath:
    segments: tuple[PathSegment, ...]

    @property
    def template(self) -> str:
        return "/" + "/".join(s.render() for s in self.segments)

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.segments if isinstance(s, ParameterSegment))

    def __str__(self) -> str:
        return self.template


def analyse_path(raw: str) -> RoutePath:
    """Parse a path template into segments.

    Each segment is either alphabetic text or a single {alphabeticName}.
    Digits are rejected in both (known restriction). A single trailing
    slash is ignored.
    """
    if not isinstance(raw, str) or not raw.startswith("/"):
        raise MalformedPath(raw)
    parts = raw.split("/")[1:]
    if parts and parts[-1] == "":
        parts = parts[:-1]

    segments: list[PathSegment] = []
    seen: set[str] = set()
    for part in parts:
        if _LITERAL_RE.match(part):
            segments.append(LiteralSegment(part))
            continue
        match = _PARAM_RE.match(part)
        if not match:
            raise MalformedPath(raw)
        name = match.group(1)
        if name in seen:
            raise MalformedPath(raw)
        try:
            parse_identifier(name)
        except BadIdentifier as exc:
            raise MalformedPath(raw) from exc
        seen.add(name)
        segments.append(ParameterSegment(name))
    return RoutePath(tuple(segments))


# ---------------------------------------------------------------------------
# Route model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteParameter:
    name: Identifier
    wire_name: str
    type: Type
    required: bool
    description: str = ""


@dataclass(frozen=True)
class Response:
    status: int
    type: Type | None
    description: str = ""


@dataclass(frozen=True)
class ErrorVariant:
    status: int
    name: TypeName
    type: Type | None
    description: str = ""


@dataclass(frozen=True)
class Route:
    operation_id: Identifier
    method: Method
    path: RoutePath
    path_params: tuple[RouteParameter, ...]
    query_params: tuple[RouteParameter, ...]
    body: Type | None
    success: Response
    errors: tuple[ErrorVariant, ...]
    summary: str = ""

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


RouteTable = Mapping[str, tuple[Route, ...]]


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------

def error_variant_name(status: int) -> TypeName:
    """Name an error status after its reason phrase, e.g. 404 -> NotFound.

    Falls back to E<code> for unknown codes and phrases that do not
    normalize to a clean CamelCase name (e.g. "I'm a Teapot").
    """
    fallback = parse_type_name(f"E{status}")
    try:
        phrase = http.HTTPStatus(status).phrase
    except ValueError:
        return fallback
    words = phrase.replace("-", " ").split()
    if not words or not all(w.isalpha() for w in words):
        return fallback
    candidate = "".join(w.capitalize() for w in words)
    try:
        return parse_type_name(candidate)
    except BadTypeName:
        return fallback


# ---------------------------------------------------------------------------
# Route construction
# ---------------------------------------------------------------------------

def _json_type(content: Mapping[str, Any], where: str, components: Components) -> Type:
    if list(content) != [JSON]:
        raise UnsupportedContentType(f"{where}: {', '.join(content) or 'none'}")
    media = content[JSON] or {}
    if is_reference(media):
        raise UnexpectedReference(media["$ref"])
    if "schema" not in media:
        raise Unsupported(f"{where}: media type does not contain a schema")
    return discard_struct(build_type(media["schema"], components), where)


def _request_body_type(request_body: Any, where: str, components: Components) -> Type:
    body = dereference(request_body, REQUEST_BODIES, components)
    content = body.get("content") or {}
    return _json_type(content, f"{where} request body", components)


def _response(
    raw: Any, status: int, where: str, components: Components,
) -> tuple[Type | None, str]:
    resp = dereference(raw, RESPONSES, components) or {}
    if resp.get("headers"):
        raise Unsupported(f"{where} {status}: response headers")
    if resp.get("links"):
        raise Unsupported(f"{where} {status}: response links")
    description = clean_description(resp.get("description", ""))
    content = resp.get("content") or {}
    if not content:
        return None, description
    return _json_type(content, f"{where} {status} response", components), description


def parse_status_code(code: Any) -> int:
    if isinstance(code, bool):
        raise BadStatusCode(code)
    if isinstance(code, int):
        return code
    if isinstance(code, str) and code.isascii() and code.isdigit():
        return int(code)
    raise BadStatusCode(code)


def classify_responses(
    responses: Mapping[Any, Any], where: str, components: Components,
) -> tuple[Response, tuple[ErrorVariant, ...]]:
    """Split a response table into one success response and error variants."""
    success: list[int] = []
    errors: list[int] = []
    raw_by_code: dict[int, Any] = {}
    for key, raw in responses.items():
        code = parse_status_code(key)
        if code in raw_by_code:
            raise DuplicateName(f"{where} status {code}")
        raw_by_code[code] = raw
        if code in SUCCESS_RANGE:
            success.append(code)
        elif code in ERROR_RANGE:
            errors.append(code)
        else:
            raise BadStatusCode(code)

    if len(success) != 1:
        found = ", ".join(str(c) for c in success) or "none"
        raise AmbiguousSuccess(f"{where} (found {found})")

    code = success[0]
    typ, description = _response(raw_by_code[code], code, where, components)
    ok = Response(code, typ, description)

    variants = []
    for code in errors:
        typ, description = _response(raw_by_code[code], code, where, components)
        variants.append(ErrorVariant(code, error_variant_name(code), typ, description))
    return ok, tuple(variants)


def _merge_parameters(
    path_level: Iterable[Any], operation_level: Iterable[Any], components: Components,
) -> list[Mapping[str, Any]]:
    """Resolve path-item and operation parameters; the operation wins on (name, in)."""
    merged: dict[tuple[str, str], Mapping[str, Any]] = {}
    for raw in list(path_level) + list(operation_level):
        param = dereference(raw, PARAMETERS, components)
        merged[(param.get("name", ""), param.get("in", ""))] = param
    return list(merged.values())


def _parameter_type(param: Mapping[str, Any], where: str, components: Components) -> Type:
    if "schema" not in param:
        raise Unsupported(f"{where}: parameter {param.get('name')!r} without schema")
    return discard_struct(
        build_type(param["schema"], components), f"{where} parameter {param.get('name')!r}"
    )


def build_route(
    path: RoutePath,
    method: Method,
    operation: Mapping[str, Any],
    components: Components,
    path_parameters: Sequence[Any] = (),
) -> Route:
    """Validate one operation and build its Route."""
    where = f"{method.verb} {path.template}"
    raw_id = operation.get("operationId")
    if not raw_id:
        raise NoOperationId(where)
    operation_id = parse_identifier(raw_id)

    path_params: list[RouteParameter] = []
    query_params: list[RouteParameter] = []
    for param in _merge_parameters(path_parameters, operation.get("parameters") or [], components):
        location = param.get("in")
        wire_name = param.get("name", "")
        name = parse_identifier(wire_name)
        required = bool(param.get("required", False))
        description = clean_description(param.get("description", ""))
        typ = _parameter_type(param, where, components)
        if location == "path":
            if not required:
                raise Unsupported(f"{where}: path parameter {wire_name} must be required")
            path_params.append(RouteParameter(name, wire_name, typ, True, description))
        elif location == "query":
            if not required:
                typ = optional(typ)
            query_params.append(RouteParameter(name, wire_name, typ, required, description))
        else:
            raise Unsupported(f"{where}: {location} parameter {wire_name}")

    seen_names: set[Identifier] = set()
    for param in path_params + query_params:
        if param.name in seen_names:
            raise DuplicateName(f"{where}: parameter {param.name}")
        seen_names.add(param.name)

    declared = sorted(p.wire_name for p in path_params)
    if declared != sorted(path.parameter_names):
        raise MalformedPath(
            f"{path.template} (placeholders {list(path.parameter_names)}, "
            f"declared path parameters {[p.wire_name for p in path_params]})"
        )

    body = None
    if "requestBody" in operation:
        if not method.has_body:
            raise Unsupported(f"{where}: request body on a {method.verb} operation")
        body = _request_body_type(operation["requestBody"], where, components)

    responses = operation.get("responses") or {}
    success, errors = classify_responses(responses, where, components)

    return Route(
        operation_id=operation_id,
        method=method,
        path=path,
        path_params=tuple(path_params),
        query_params=tuple(query_params),
        body=body,
        success=success,
        errors=errors,
        summary=clean_description(operation.get("summary") or operation.get("description") or ""),
    )


def gather_routes(paths: Mapping[str, Any], components: Components) -> RouteTable:
    """Build the route table from the paths section, in document order."""
    table: dict[str, tuple[Route, ...]] = {}
    seen_paths: set[str] = set()
    seen_ids: dict[Identifier, str] = {}
    logger.debug("Found paths: %s", list(paths))

    for raw_path, item in paths.items():
        logger.debug("Processing path: %s", raw_path)
        item = item or {}
        if is_reference(item):
            raise UnexpectedReference(item["$ref"])
        path = analyse_path(raw_path)
        if path.template in seen_paths:
            raise DuplicateName(raw_path)
        seen_paths.add(path.template)

        routes = []
        for method in Method:
            operation = item.get(method.value)
            if operation is None:
                continue
            route = build_route(path, method, operation, components, item.get("parameters") or [])
            if route.operation_id in seen_ids:
                raise DuplicateName(
                    f"operation {route.operation_id} "
                    f"({seen_ids[route.operation_id]} and {method.verb} {path.template})"
                )
            seen_ids[route.operation_id] = f"{method.verb} {path.template}"
            logger.debug("Add route: %s %s -> %s", method.verb, path.template, route.operation_id)
            routes.append(route)
        if not routes:
            logger.debug("No operations on path: %s", raw_path)
            continue
        table[path.template] = tuple(routes)

    return MappingProxyType(table)


def iter_routes(table: RouteTable) -> Iterable[Route]:
    for routes in table.values():
        yield from routes
