import pytest

from routespec.builder.input import DetailedInput, InputComposer
from routespec.builder.params import PathParamBuilder, join_path, placeholders, render_template
from routespec.domain.errors import ContractConfigError
from routespec.schema import factory as s
from routespec.schema.nodes import StreamSchema, VoidSchema


def test_placeholders_in_order():
    assert placeholders("/orgs/{orgId}/users/{userId}") == ["orgId", "userId"]
    assert placeholders("/health") == []


def test_render_template_rejects_undeclared_placeholders():
    with pytest.raises(ContractConfigError, match="undeclared param"):
        render_template(lambda p: "/users/{id}")
    with pytest.raises(ContractConfigError, match="must return a string"):
        render_template(lambda p: 42)


def test_path_param_builder_lookup_forms():
    p = PathParamBuilder({"orgId": s.uuid()})
    assert str(p.orgId) == "{orgId}"
    assert str(p["orgId"]) == "{orgId}"
    assert join_path("/orgs/", p.orgId, "/users/", p("userId")) == "/orgs/{orgId}/users/{userId}"
    assert render_template(lambda q: join_path("/teams/", q("teamId", int)))[1] == {"teamId": s.integer()}


def test_params_named_like_builder_helpers():
    for name in ("path", "ref", "knows", "declared"):
        c = InputComposer().params({name: str}, lambda p: f"/files/{getattr(p, name)}")
        assert c.path == "/files/{" + name + "}"
        assert list(c.params_schema.shape) == [name]

    c = InputComposer().params(lambda p: f"/files/{p('path')}/{p.path}")
    assert c.path == "/files/{path}/{path}"


def test_nothing_set_builds_void():
    assert isinstance(InputComposer().build(), VoidSchema)


def test_body_only_is_simple_mode():
    body = s.obj(name=s.string())
    assert InputComposer().body(body).build() == body


def test_detailed_mode_fills_unset_fields_with_empty_objects():
    built = InputComposer().query({"q": str}).build()
    assert isinstance(built, DetailedInput)
    assert built.query == s.obj(q=str)
    assert built.params == s.empty_object()
    assert built.body == s.empty_object()
    assert built.headers == s.empty_object()

    value = {"params": {}, "query": {"q": "x"}, "body": {}, "headers": {}}
    assert built.schema.validate(value) == value
    assert not built.schema.is_valid({**value, "body": {"sneaky": 1}})


def test_composition_is_order_independent():
    body, query, headers = s.obj(name=str), s.obj(page=int), s.obj(auth=str)
    a = InputComposer().body(body).query(query).headers(headers).build()
    b = InputComposer().headers(headers).query(query).body(body).build()
    assert a == b


def test_params_template_declares_params_and_path():
    c = InputComposer().params(lambda p: f"/orgs/{p('orgId', s.uuid())}/users/{p('userId')}")
    assert c.path == "/orgs/{orgId}/users/{userId}"
    assert list(c.params_schema.shape) == ["orgId", "userId"]
    assert c.params_schema.shape["orgId"] == s.uuid()
    assert c.params_schema.shape["userId"] == s.string()


def test_chained_templates_reference_earlier_params():
    c = (
        InputComposer()
        .params(lambda p: f"/orgs/{p('orgId')}")
        .params(lambda p: f"/orgs/{p.orgId}/users/{p('userId')}")
    )
    assert c.path == "/orgs/{orgId}/users/{userId}"
    assert list(c.params_schema.shape) == ["orgId", "userId"]


def test_shape_then_template():
    c = InputComposer().params({"id": int}, lambda p: f"/items/{p.id}")
    assert c.path == "/items/{id}"
    assert c.params_schema == s.obj(id=int)


def test_shape_only_merges_without_touching_path():
    c = InputComposer().params(lambda p: f"/a/{p('x')}").params({"y": int})
    assert c.path == "/a/{x}"
    assert list(c.params_schema.shape) == ["x", "y"]


def test_template_with_unknown_reference_fails():
    with pytest.raises(ContractConfigError, match="referenced before it is declared"):
        InputComposer().params(lambda p: f"/a/{p.missing}")


def test_body_restructuring_falls_back_to_entity():
    entity = s.obj(id=int, name=str, email=str)
    c = InputComposer(entity=entity).omit("id").partial("email")
    assert list(c.body_schema.shape) == ["name", "email"]
    assert c.body_schema.validate({"name": "ada"}) == {"name": "ada"}

    with pytest.raises(ContractConfigError, match="needs a body or an entity"):
        InputComposer().pick("a")


def test_streamed_body():
    built = InputComposer().streamed_body(int).build()
    assert isinstance(built, StreamSchema)
    assert list(built.validate(iter(["1", 2]))) == [1, 2]


def test_update_helpers_receive_current_schema():
    c = InputComposer().query({"a": int}).update_query(lambda q: q.extend({"b": str}))
    assert list(c.query_schema.shape) == ["a", "b"]

    h = InputComposer().update_headers(lambda h: h.extend({"auth": str}))
    assert list(h.headers_schema.shape) == ["auth"]


def test_identity_update_equals_unset_field():
    base = InputComposer().query({"q": str})
    updated = base.update_params(lambda p: p).update_headers(lambda h: h)
    assert updated.build() == base.build()
    assert updated.build().params.validate({}) == {}
    assert not updated.build().headers.is_valid({"x": "1"})

    only_body = InputComposer().body(s.obj(a=int))
    assert only_body.update_query(lambda q: q).build().query == s.empty_object()


def test_seeded_from_simple_input_keeps_body():
    body = s.obj(name=str)
    built = InputComposer.seeded(body).headers({"auth": str}).build()
    assert isinstance(built, DetailedInput)
    assert built.body == body
