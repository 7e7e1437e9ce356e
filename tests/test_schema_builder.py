import pytest

from routespec.domain.errors import ContractConfigError
from routespec.schema import factory as s
from routespec.schema.builder import schema


def test_builder_chains_restructuring_operations():
    user = s.obj(id=s.uuid(), name=s.string(), email=s.string(), createdAt=s.datetime())
    built = schema(user).omit("id", "createdAt").partial("email").build()

    assert list(built.shape) == ["name", "email"]
    assert built.validate({"name": "ada"}) == {"name": "ada"}
    assert list(user.shape) == ["id", "name", "email", "createdAt"]


def test_builder_rejects_object_operations_on_other_schemas():
    with pytest.raises(ContractConfigError, match=r"omit\(\) can only be called on object schemas"):
        schema(s.string()).omit("a")
    with pytest.raises(ContractConfigError, match=r"extend\(\) can only be called on object schemas"):
        schema(int).extend({"a": int})
    with pytest.raises(ContractConfigError, match=r"required\(\)"):
        schema(s.array(int)).required()


def test_builder_accepts_shapes():
    assert schema({"a": int}).build() == s.obj(a=int)
    assert list(schema({"a": int}).shape) == ["a"]


def test_builder_merge_accepts_other_builders():
    merged = schema({"a": int}).merge(schema({"b": str})).build()
    assert list(merged.shape) == ["a", "b"]


def test_custom_transform_must_return_a_schema():
    assert schema(s.string()).custom(lambda x: x.nullable()).build().validate(None) is None
    with pytest.raises(ContractConfigError):
        schema(s.string()).custom(lambda x: "nope")


def test_wrapping_and_defaults():
    size = schema(s.integer()).default(5).describe("page size").build()
    assert size.description == "page size"
    assert s.obj(size=size).validate({}) == {"size": 5}

    maybe = schema(s.string()).nullish().build()
    assert s.obj(v=maybe).validate({}) == {}
    assert s.obj(v=maybe).validate({"v": None}) == {"v": None}


def test_add_defaults_and_required_through_builder():
    built = (
        schema(s.obj(limit=s.integer().optional(), q=s.string()))
        .required("limit")
        .add_defaults({"limit": 20})
        .build()
    )
    assert built.validate({"q": "x"}) == {"limit": 20, "q": "x"}
