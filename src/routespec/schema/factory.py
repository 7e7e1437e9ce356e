from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Callable, Iterable, Literal, Mapping, Optional
from uuid import UUID

import annotated_types as at
from pydantic import StringConstraints

from routespec.domain.errors import ContractConfigError
from routespec.schema.nodes import (
    ArraySchema,
    CustomSchema,
    LiteralSchema,
    ObjectSchema,
    RecordSchema,
    Schema,
    StreamSchema,
    TypeSchema,
    UnionSchema,
    UnknownKeys,
    VoidSchema,
    as_schema,
    from_model,
)

__all__ = [
    "any_",
    "array",
    "as_schema",
    "boolean",
    "custom",
    "datetime",
    "empty_object",
    "enum",
    "from_model",
    "integer",
    "literal",
    "number",
    "obj",
    "of",
    "record",
    "stream",
    "string",
    "union",
    "uuid",
    "void",
]


def _bounded(base: Any, ge: Optional[float], le: Optional[float], gt: Optional[float], lt: Optional[float]) -> Any:
    metadata = [
        c
        for c in (
            at.Ge(ge) if ge is not None else None,
            at.Le(le) if le is not None else None,
            at.Gt(gt) if gt is not None else None,
            at.Lt(lt) if lt is not None else None,
        )
        if c is not None
    ]
    if not metadata:
        return base
    return Annotated[(base, *metadata)]


def string(
    *,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
    pattern: Optional[str] = None,
    strip: bool = False,
    description: Optional[str] = None,
) -> TypeSchema:
    if min_length is None and max_length is None and pattern is None and not strip:
        return TypeSchema(str, description=description)
    constraints = StringConstraints(
        min_length=min_length, max_length=max_length, pattern=pattern, strip_whitespace=strip or None
    )
    return TypeSchema(Annotated[str, constraints], description=description)


def integer(
    *,
    ge: Optional[int] = None,
    le: Optional[int] = None,
    gt: Optional[int] = None,
    lt: Optional[int] = None,
    description: Optional[str] = None,
) -> TypeSchema:
    return TypeSchema(_bounded(int, ge, le, gt, lt), description=description)


def number(
    *,
    ge: Optional[float] = None,
    le: Optional[float] = None,
    gt: Optional[float] = None,
    lt: Optional[float] = None,
    description: Optional[str] = None,
) -> TypeSchema:
    return TypeSchema(_bounded(float, ge, le, gt, lt), description=description)


def boolean(*, description: Optional[str] = None) -> TypeSchema:
    return TypeSchema(bool, description=description)


def uuid(*, description: Optional[str] = None) -> TypeSchema:
    return TypeSchema(UUID, description=description)


def datetime(*, description: Optional[str] = None) -> TypeSchema:
    return TypeSchema(dt.datetime, description=description)


def literal(value: Any, *, description: Optional[str] = None) -> LiteralSchema:
    return LiteralSchema(value, description=description)


def enum(values: Iterable[str], *, description: Optional[str] = None) -> TypeSchema:
    values = tuple(values)
    if not values:
        raise ContractConfigError("enum() needs at least one value")
    return TypeSchema(Literal[values], description=description)


def array(
    item: Any,
    *,
    min_items: Optional[int] = None,
    max_items: Optional[int] = None,
    description: Optional[str] = None,
) -> ArraySchema:
    return ArraySchema(as_schema(item), min_items, max_items, description=description)


def record(values: Any = Any, *, description: Optional[str] = None) -> RecordSchema:
    return RecordSchema(as_schema(values), description=description)


def obj(
    fields: Optional[Mapping[str, Any]] = None,
    *,
    unknown: UnknownKeys = "strip",
    description: Optional[str] = None,
    **kwargs: Any,
) -> ObjectSchema:
    shape = {**(fields or {}), **kwargs}
    return ObjectSchema({k: as_schema(v) for k, v in shape.items()}, unknown=unknown, description=description)


def empty_object() -> ObjectSchema:
    """Object schema that only validates `{}`."""
    return ObjectSchema({}, unknown="forbid")


def union(*options: Any, discriminator: Optional[str] = None, description: Optional[str] = None) -> UnionSchema:
    return UnionSchema(tuple(as_schema(o) for o in options), discriminator, description=description)


def any_(*, description: Optional[str] = None) -> TypeSchema:
    return TypeSchema(Any, description=description)


def void() -> VoidSchema:
    return VoidSchema()


def custom(
    predicate: Callable[[Any], bool] = lambda _: True,
    *,
    message: str = "Invalid value",
    description: Optional[str] = None,
) -> CustomSchema:
    return CustomSchema(predicate, message, description=description)


def stream(yields: Any, returns: Any = None, *, description: Optional[str] = None) -> StreamSchema:
    return StreamSchema(
        as_schema(yields),
        as_schema(returns) if returns is not None else None,
        description=description,
    )


def of(annotation: Any, *, description: Optional[str] = None) -> Schema:
    schema = as_schema(annotation)
    return schema.describe(description) if description else schema
