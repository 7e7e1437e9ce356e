from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema, as_schema

FilterOperator = Literal[
    "eq",
    "ne",
    "gt",
    "gte",
    "lt",
    "lte",
    "in",
    "nin",
    "like",
    "ilike",
    "regex",
    "exists",
    "between",
    "startsWith",
    "endsWith",
    "contains",
]


class FieldFilter(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    value_schema: Any = Field(alias="schema")
    operators: Optional[tuple[FilterOperator, ...]] = None  # None: equality only
    description: Optional[str] = None

    @field_validator("value_schema", mode="before")
    @classmethod
    def _coerce_schema(cls, value: Any) -> Any:
        return as_schema(value)


class FilteringConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    fields: dict[str, FieldFilter]
    allow_logical_operators: bool = False
    allow_nested: bool = False
    prefix: str = ""

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: Any) -> Any:
        return {
            name: spec if _is_filter_spec(spec) else FieldFilter(schema=spec)
            for name, spec in dict(value).items()
        }


def _is_filter_spec(spec: Any) -> bool:
    return isinstance(spec, FieldFilter) or (isinstance(spec, Mapping) and "schema" in spec)


def _operator_schema(op: str, name: str, value: Schema) -> Schema:
    if op in ("in", "nin"):
        return s.array(value).optional().describe(f"Filter {name} ({op})")
    if op == "exists":
        return s.boolean().optional().describe(f"Check if {name} exists")
    if op == "between":
        return s.obj({"from": value, "to": value}).optional().describe(f"Filter {name} between two values")
    return value.optional().describe(f"Filter {name} ({op})")


def filtering_schema(config: FilteringConfig) -> ObjectSchema:
    """
    Flat filter params: `name` for equality and `name_<op>` for every other
    operator, e.g. price_gte, tags_in, createdAt_between. With a prefix the
    base key becomes `<prefix>_<name>`.
    """
    fields: dict[str, Schema] = {}
    for name, spec in config.fields.items():
        key = f"{config.prefix}_{name}" if config.prefix else name
        operators = spec.operators

        if operators is None or "eq" in operators:
            fields[key] = spec.value_schema.optional().describe(spec.description or f"Filter by {name}")
        for op in operators or ():
            if op == "eq":
                continue
            fields[f"{key}_{op}"] = _operator_schema(op, name, spec.value_schema)

    if config.allow_logical_operators and config.allow_nested:
        fields["_and"] = s.array(s.record()).optional().describe("Combine filters with AND")
        fields["_or"] = s.array(s.record()).optional().describe("Combine filters with OR")
    return ObjectSchema(fields)


def simple_filter_schema(fields: dict[str, Any]) -> ObjectSchema:
    return ObjectSchema({name: as_schema(value).optional() for name, value in fields.items()})


def string_filter_schema(name: str) -> ObjectSchema:
    return ObjectSchema(
        {
            name: s.string().optional(),
            f"{name}_like": s.string().optional().describe("Contains (case-sensitive)"),
            f"{name}_ilike": s.string().optional().describe("Contains (case-insensitive)"),
            f"{name}_startsWith": s.string().optional(),
            f"{name}_endsWith": s.string().optional(),
            f"{name}_in": s.array(s.string()).optional(),
        }
    )


def number_filter_schema(name: str) -> ObjectSchema:
    return ObjectSchema(
        {
            name: s.number().optional(),
            f"{name}_gt": s.number().optional().describe("Greater than"),
            f"{name}_gte": s.number().optional().describe("Greater than or equal"),
            f"{name}_lt": s.number().optional().describe("Less than"),
            f"{name}_lte": s.number().optional().describe("Less than or equal"),
            f"{name}_between": s.obj({"from": s.number(), "to": s.number()}).optional(),
            f"{name}_in": s.array(s.number()).optional(),
        }
    )


def date_filter_schema(name: str) -> ObjectSchema:
    return ObjectSchema(
        {
            name: s.datetime().optional(),
            f"{name}_gt": s.datetime().optional().describe("After"),
            f"{name}_gte": s.datetime().optional().describe("On or after"),
            f"{name}_lt": s.datetime().optional().describe("Before"),
            f"{name}_lte": s.datetime().optional().describe("On or before"),
            f"{name}_between": s.obj({"from": s.datetime(), "to": s.datetime()}).optional(),
        }
    )


def enum_filter_schema(name: str, values: list[str] | tuple[str, ...]) -> ObjectSchema:
    choice = s.enum(values)
    return ObjectSchema(
        {
            name: choice.optional(),
            f"{name}_in": s.array(choice).optional(),
            f"{name}_nin": s.array(choice).optional(),
        }
    )
