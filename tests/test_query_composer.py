import pytest
from pydantic import ValidationError

from routespec.domain.errors import ContractConfigError
from routespec.query.composer import QueryComposer, query
from routespec.query.filtering import (
    FieldFilter,
    FilteringConfig,
    filtering_schema,
    number_filter_schema,
    simple_filter_schema,
)
from routespec.query.pagination import (
    CURSOR,
    PaginationConfig,
    paginated_response_schema,
    pagination_meta_schema,
    pagination_schema,
)
from routespec.query.search import SearchConfig, search_schema
from routespec.query.sorting import SortingConfig, simple_sort_schema, sorting_schema
from routespec.schema import factory as s


def test_pagination_defaults_and_bounds():
    schema = pagination_schema()
    assert schema.validate({}) == {"limit": 10, "offset": 0}
    assert schema.validate({"limit": "25"}) == {"limit": 25, "offset": 0}
    assert not schema.is_valid({"limit": 101})
    assert not schema.is_valid({"limit": 0})


def test_pagination_flags_shape_request_and_meta():
    config = PaginationConfig(include_offset=False, include_page=True, include_cursor=True)
    request = pagination_schema(config)
    assert list(request.shape) == ["limit", "page", "cursor", "cursorDirection"]
    assert request.validate({}) == {"limit": 10, "page": 1, "cursorDirection": "forward"}

    meta = pagination_meta_schema(config)
    assert list(meta.shape) == ["total", "limit", "hasMore", "page", "totalPages", "nextCursor", "prevCursor"]


def test_cursor_preset():
    assert list(pagination_schema(CURSOR).shape) == ["limit", "cursor", "cursorDirection"]


def test_pagination_config_checks_limits():
    with pytest.raises(ValidationError):
        PaginationConfig(default_limit=500)
    with pytest.raises(ValidationError):
        PaginationConfig(min_limit=0)


def test_paginated_response():
    schema = paginated_response_schema(s.obj(id=int))
    value = {"items": [{"id": "1"}], "meta": {"total": 1, "limit": 10, "hasMore": False, "offset": 0}}
    assert schema.validate(value)["items"] == [{"id": 1}]


def test_sorting_requires_fields():
    with pytest.raises(ContractConfigError, match="At least one sortable field must be provided"):
        sorting_schema(SortingConfig(fields=()))
    with pytest.raises(ContractConfigError, match="not sortable"):
        sorting_schema(SortingConfig(fields=("name",), default_field="price"))


def test_single_field_sorting():
    schema = sorting_schema(
        SortingConfig(fields=("name", "createdAt"), default_field="createdAt", default_direction="desc")
    )
    assert schema.validate({}) == {"sortBy": "createdAt", "sortDirection": "desc"}
    assert schema.validate({"sortBy": "name"}) == {"sortBy": "name", "sortDirection": "desc"}
    assert not schema.is_valid({"sortBy": "price"})


def test_multiple_sorting_with_nulls_handling():
    schema = sorting_schema(SortingConfig(fields=("name",), allow_multiple=True, allow_nulls_handling=True))
    assert schema.validate({}) == {}
    assert schema.validate({"sortBy": [{"field": "name"}], "nullsHandling": "last"}) == {
        "sortBy": [{"field": "name", "direction": "asc"}],
        "nullsHandling": "last",
    }
    assert not schema.is_valid({"sortBy": []})


def test_simple_sort_schema():
    assert simple_sort_schema(["a", "b"]).validate({}) == {"sortDirection": "asc"}


def test_filtering_operator_keys():
    config = FilteringConfig(
        fields={
            "name": FieldFilter(schema=s.string(), operators=("eq", "like")),
            "price": {"schema": s.number(), "operators": ["gte", "between", "in"]},
            "inStock": s.boolean(),
        }
    )
    schema = filtering_schema(config)
    assert list(schema.shape) == ["name", "name_like", "price_gte", "price_between", "price_in", "inStock"]
    assert schema.validate({"price_between": {"from": 1, "to": 5}, "price_in": [1, 2]}) == {
        "price_between": {"from": 1.0, "to": 5.0},
        "price_in": [1.0, 2.0],
    }
    assert schema.validate({}) == {}


def test_filtering_prefix_and_logical_operators():
    config = FilteringConfig(
        fields={"status": s.string()},
        prefix="f",
        allow_logical_operators=True,
        allow_nested=True,
    )
    assert list(filtering_schema(config).shape) == ["f_status", "_and", "_or"]

    flat = FilteringConfig(fields={"status": s.string()}, allow_logical_operators=True)
    assert list(filtering_schema(flat).shape) == ["status"]


def test_filter_helpers():
    assert simple_filter_schema({"a": int}).validate({}) == {}
    assert "price_between" in number_filter_schema("price").shape


def test_search_schema():
    schema = search_schema(SearchConfig(fields=("name", "email"), min_query_length=2, allow_field_selection=True))
    assert schema.validate({"q": "ab", "searchFields": ["name"]}) == {"q": "ab", "searchFields": ["name"]}
    assert not schema.is_valid({"q": "a"})
    assert not schema.is_valid({"q": "ab", "searchFields": ["phone"]})
    with pytest.raises(ContractConfigError):
        search_schema(SearchConfig(fields=()))


def test_empty_composer():
    qc = query()
    assert dict(qc.input_schema().shape) == {}
    assert list(qc.meta_schema().shape) == ["total"]
    assert qc.meta_schema().validate({}) == {}


def test_query_composer_merges_parts():
    qc = (
        QueryComposer()
        .with_pagination(include_page=True)
        .with_sorting(fields=("name",))
        .with_search(fields=("name",))
        .with_custom_fields({"archived": s.boolean().optional()})
    )
    assert list(qc.input_schema().shape) == ["limit", "offset", "page", "sortBy", "sortDirection", "q", "archived"]
    assert set(qc.meta_schema().shape) == {
        "total",
        "limit",
        "hasMore",
        "offset",
        "page",
        "totalPages",
        "nextCursor",
        "prevCursor",
        "sortBy",
        "sortDirection",
        "searchQuery",
        "searchFields",
    }

    meta = {"total": 1, "limit": 10, "hasMore": False, "offset": 0, "page": 1, "totalPages": 1}
    out = qc.output_schema(s.obj(id=int)).validate({"items": [{"id": "1"}], "meta": meta})
    assert out == {"items": [{"id": 1}], "meta": meta}


def test_composer_is_immutable():
    base = QueryComposer()
    base.with_pagination()
    assert base.pagination is None
