"""Tests for the context_builder module."""

import pytest

from conftest import make_spec, operation
from routegen.context_builder import (
    arg_name,
    body_arg_name,
    build_context,
    check_names,
    docstring,
    render_type,
    route_context,
    types_context,
)
from routegen.errors import DuplicateName
from routegen.ir import AnyType, ArrayType, NamedType, OptionalType, Primitive, PrimitiveType
from routegen.naming import Identifier, TypeName
from routegen.references import Components
from routegen.routes import gather_routes, iter_routes
from routegen.schema_parser import gather_types

STRING = PrimitiveType(Primitive.STRING)
PET = NamedType(TypeName("Pet"))

_JSON_STRING = {"content": {"application/json": {"schema": {"type": "string"}}}}


def _only_route(paths):
    spec = make_spec(paths)
    table = gather_routes(spec["paths"], Components.from_spec(spec))
    return next(iter_routes(table))


class TestRenderType:
    """Test IR types rendered as annotations."""

    @pytest.mark.parametrize("typ, expected", [
        (STRING, "str"),
        (PrimitiveType(Primitive.NUMBER), "float"),
        (PrimitiveType(Primitive.INTEGER), "int"),
        (PrimitiveType(Primitive.BOOLEAN), "bool"),
        (AnyType(), "Any"),
        (ArrayType(OptionalType(STRING)), "list[Optional[str]]"),
        (PET, "Pet"),
    ])
    def test_render(self, typ, expected):
        assert render_type(typ) == expected

    def test_prefix(self):
        assert render_type(OptionalType(ArrayType(PET)), "models.") == "Optional[list[models.Pet]]"

    def test_forward_reference(self):
        assert render_type(ArrayType(PET), defined=set()) == "list['Pet']"
        assert render_type(ArrayType(PET), defined={TypeName("Pet")}) == "list[Pet]"


class TestNames:
    """Test argument names and docstring escaping."""

    @pytest.mark.parametrize("raw, expected", [
        ("pet_id", "pet_id"),
        ("class", "class_"),
        ("from", "from_"),
        ("self", "self_"),
        ("response", "response_"),
        ("2fa", "field_2fa"),
        ("model_config", "field_model_config"),
        ("json", "json_"),
        ("copy", "copy_"),
        ("schema", "schema_"),
        ("str", "str_"),
        ("int", "int_"),
        ("list", "list_"),
        ("models", "models_"),
        ("httpx", "httpx_"),
    ])
    def test_arg_name(self, raw, expected):
        assert arg_name(Identifier(raw)) == expected

    def test_docstring_quotes(self):
        assert docstring('a """b""" c') == 'a \\"\\"\\"b\\"\\"\\" c'

    def test_docstring_trailing_quote(self):
        assert docstring('Say "hi"') == 'Say "hi" '

    def test_docstring_backslash(self):
        assert docstring("C:\\path") == "C:\\\\path"


class TestPetstoreContext:
    """Test the context built from the petstore fixture."""

    @pytest.fixture
    def context(self, petstore, petstore_components):
        types = gather_types(petstore_components)
        table = gather_routes(petstore["paths"], petstore_components)
        return build_context(types, table, server_host="0.0.0.0")

    @pytest.fixture
    def routes(self, context):
        return {r["operation_id"]: r for r in context["routes"]}

    def test_settings_passed_through(self, context):
        assert context["server_host"] == "0.0.0.0"

    def test_structs(self, context):
        pet = context["structs"][0]
        assert [s["name"] for s in context["structs"]] == ["Pet", "NewPet", "Error"]
        assert pet["fields"] == ["id: int", "name: str", "tag: Optional[str] = None"]
        assert not pet["populate_by_name"]

    def test_aliases(self, context):
        assert context["aliases"] == [{"name": "Pets", "type": "list[Pet]", "doc": ""}]

    def test_error_routes(self, context):
        by_op = {r["operation"]: r for r in context["error_routes"]}
        assert set(by_op) == {"create_pet", "get_pet"}
        get_pet = by_op["get_pet"]
        assert get_pet["union"] == "GetPetError"
        assert [(v["class"], v["status"], v["body"]) for v in get_pet["variants"]] == [
            ("GetPetNotFound", 404, "Error"),
        ]
        assert by_op["create_pet"]["variants"][0]["class"] == "CreatePetBadRequest"

    def test_get_pet_signature(self, routes):
        route = routes["get_pet"]
        assert route["args"] == ["pet_id: int"]
        assert route["returns"] == "models.Result[models.Pet, models.GetPetError]"
        assert route["url"] == 'f"/pets/{_segment(pet_id)}"'
        assert route["errors"] == [{"class": "models.GetPetNotFound", "status": 404, "body": "models.Error"}]

    def test_list_signature(self, routes):
        route = routes["get_all_pets"]
        assert route["args"] == ["limit: Optional[int]"]
        assert route["returns"] == "models.Pets"
        assert route["query_params"][0]["wire"] == "limit"
        assert route["url"] == 'f"/pets"'

    def test_body_named_after_type(self, routes):
        route = routes["create_pet"]
        assert route["args"] == ["new_pet: models.NewPet"]
        assert route["call_args"] == ["new_pet"]
        assert route["returns"] == "models.Result[None, models.CreatePetError]"
        assert route["success"] == {"status": 201, "type": None}

    def test_no_content_no_errors(self, routes):
        route = routes["delete_pet"]
        assert route["returns"] == "None"
        assert not route["has_errors"]
        assert route["verb"] == "DELETE"

    def test_operation_id_everywhere(self, context):
        """Every route appears under one name in the route list and the table."""
        names = [r["name"] for r in context["routes"]]
        bound = [name for entry in context["table"] for _, name in entry["bindings"]]
        assert names == bound == ["get_all_pets", "create_pet", "get_pet", "delete_pet"]

    def test_table(self, context):
        assert context["table"][0] == {
            "template": "/pets",
            "bindings": [("GET", "get_all_pets"), ("POST", "create_pet")],
        }


class TestRouteContext:
    """Test argument naming on hand-built routes."""

    def test_unnamed_body_is_payload(self):
        route = _only_route({"/a": {"post": operation(requestBody=_JSON_STRING)}})
        assert body_arg_name(route) == "payload"

    def test_body_name_avoids_parameters(self):
        param = {"name": "payload", "in": "query", "schema": {"type": "string"}}
        route = _only_route({"/a": {"post": operation(parameters=[param], requestBody=_JSON_STRING)}})
        assert body_arg_name(route) == "body"

    def test_keyword_query_parameter(self):
        param = {"name": "from", "in": "query", "required": True, "schema": {"type": "string"}}
        context = route_context(_only_route({"/a": {"get": operation(parameters=[param])}}))
        assert context["args"] == ["from_: str"]
        assert context["query_params"][0]["wire"] == "from"

    def test_list_query_parameter(self):
        param = {"name": "ids", "in": "query", "schema": {"type": "array", "items": {"type": "integer"}}}
        context = route_context(_only_route({"/a": {"get": operation(parameters=[param])}}))
        assert context["query_params"][0]["is_list"]

    def test_argument_order(self):
        params = [
            {"name": "q", "in": "query", "schema": {"type": "string"}},
            {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}},
        ]
        route = _only_route({"/a/{id}": {"put": operation(parameters=params, requestBody=_JSON_STRING)}})
        assert route_context(route)["call_args"] == ["id", "q", "payload"]

    def test_default_doc(self):
        route = _only_route({"/a": {"get": operation()}})
        assert route_context(route)["doc"] == "GET /a"


class TestTypesContext:
    """Test struct fields and alias ordering."""

    def test_aliased_field(self):
        components = Components(schemas={"Stamp": {"properties": {
            "createdAt": {"type": "string", "description": "When"},
        }}})
        struct = types_context(gather_types(components), {})["structs"][0]
        assert struct["populate_by_name"]
        assert struct["fields"] == [
            "created_at: Optional[str] = Field(default=None, alias='createdAt', description='When')",
        ]

    def test_keyword_field(self):
        components = Components(schemas={"Range": {"required": ["from"], "properties": {
            "from": {"type": "integer"},
        }}})
        struct = types_context(gather_types(components), {})["structs"][0]
        assert struct["fields"] == ["from_: int = Field(alias='from')"]

    def test_escaped_fields_keep_wire_alias(self):
        components = Components(schemas={"Thing": {"properties": {
            "str": {"type": "string"},
            "2fa": {"type": "boolean"},
            "model_config": {"type": "string"},
            "json": {"type": "string"},
        }}})
        struct = types_context(gather_types(components), {})["structs"][0]
        assert struct["populate_by_name"]
        assert struct["fields"] == [
            "str_: Optional[str] = Field(default=None, alias='str')",
            "field_2fa: Optional[bool] = Field(default=None, alias='2fa')",
            "field_model_config: Optional[str] = Field(default=None, alias='model_config')",
            "json_: Optional[str] = Field(default=None, alias='json')",
        ]

    def test_alias_follows_dependency(self):
        types = {TypeName("Outer"): ArrayType(NamedType(TypeName("Inner"))), TypeName("Inner"): STRING}
        aliases = types_context(types, {})["aliases"]
        assert [a["name"] for a in aliases] == ["Inner", "Outer"]
        assert aliases[1]["type"] == "list[Inner]"

    def test_alias_cycle_quoted(self):
        types = {
            TypeName("A"): ArrayType(NamedType(TypeName("B"))),
            TypeName("B"): ArrayType(NamedType(TypeName("A"))),
        }
        aliases = types_context(types, {})["aliases"]
        assert [(a["name"], a["type"]) for a in aliases] == [("B", "list['A']"), ("A", "list[B]")]


class TestCheckNames:
    """Test collisions between schema names and emitted names."""

    def test_reserved(self):
        with pytest.raises(DuplicateName):
            check_names({TypeName("Result"): STRING}, {})

    def test_variant_collision(self, petstore, petstore_components):
        table = gather_routes(petstore["paths"], petstore_components)
        with pytest.raises(DuplicateName):
            check_names({TypeName("GetPetNotFound"): STRING}, table)

    def test_union_collision(self, petstore, petstore_components):
        table = gather_routes(petstore["paths"], petstore_components)
        with pytest.raises(DuplicateName):
            check_names({TypeName("GetPetError"): STRING}, table)

    def test_petstore_clean(self, petstore, petstore_components):
        check_names(gather_types(petstore_components), gather_routes(petstore["paths"], petstore_components))

    def test_escaped_field_collision(self):
        components = Components(schemas={"Thing": {"properties": {
            "2fa": {"type": "string"},
            "field_2fa": {"type": "string"},
        }}})
        with pytest.raises(DuplicateName):
            check_names(gather_types(components), {})

    def test_escaped_operation_collision(self):
        paths = {
            "/a": {"get": operation("2fa")},
            "/b": {"get": operation("field_2fa")},
        }
        spec = make_spec(paths)
        components = Components.from_spec(spec)
        with pytest.raises(DuplicateName):
            check_names({}, gather_routes(spec["paths"], components))

    def test_escaped_names_clean(self):
        components = Components(schemas={"Thing": {"properties": {
            "str": {"type": "string"},
            "str_value": {"type": "string"},
        }}})
        check_names(gather_types(components), {})
