from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from functools import cached_property, partial
from types import FunctionType, MappingProxyType, MethodType
from typing import Any, AsyncIterator, Callable, Iterable, Iterator, Literal, Mapping, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticInvalidForJsonSchema
from pydantic_core import InitErrorDetails, PydanticCustomError

from routespec.domain.errors import ContractConfigError

Loc = tuple[Any, ...]
UnknownKeys = Literal["strip", "forbid", "allow"]


class _Missing:
    """Marker for a key that is absent from its parent mapping."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _line(kind: str, message: str, loc: Loc, value: Any, context: Optional[dict[str, Any]] = None) -> InitErrorDetails:
    return {
        "type": PydanticCustomError(kind, message, context),
        "loc": loc,
        "input": None if value is MISSING else value,
    }


def _extend(errors: list[InitErrorDetails], exc: ValidationError, loc: Loc) -> None:
    for err in exc.errors():
        errors.append(
            {
                "type": PydanticCustomError(err["type"], err["msg"]),
                "loc": loc + tuple(err["loc"]),
                "input": err.get("input"),
            }
        )


def _raise(title: str, errors: list[InitErrorDetails]) -> None:
    raise ValidationError.from_exception_data(title, errors)


@dataclass(frozen=True)
class Schema:
    """
    Immutable structural validator.

    Every wrapping or restructuring method returns a new schema; the receiver
    is never modified. Object-only operations fail with ContractConfigError on
    any other node kind.
    """

    description: Optional[str] = field(default=None, kw_only=True)

    # validation

    def validate(self, value: Any) -> Any:
        errors: list[InitErrorDetails] = []
        result = self._check(value, (), errors)
        if errors:
            _raise(type(self).__name__, errors)
        return result

    def is_valid(self, value: Any) -> bool:
        try:
            self.validate(value)
        except ValidationError:
            return False
        return True

    def accepts_missing(self) -> bool:
        return False

    def _check(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if value is MISSING:
            errors.append(_line("missing", "Field required", loc, value))
            return MISSING
        return self._check_value(value, loc, errors)

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        raise NotImplementedError

    # wrapping

    def optional(self) -> "OptionalSchema":
        return OptionalSchema(self)

    def nullable(self) -> "NullableSchema":
        return NullableSchema(self)

    def nullish(self) -> "OptionalSchema":
        return OptionalSchema(NullableSchema(self))

    def default(self, value: Any = MISSING, *, factory: Optional[Callable[[], Any]] = None) -> "DefaultSchema":
        return DefaultSchema(self, value, factory)

    def describe(self, text: str) -> "Schema":
        return replace(self, description=text)

    # object-only restructuring

    def _object_only(self, op: str) -> ContractConfigError:
        return ContractConfigError(f"{op}() can only be called on object schemas")

    def pick(self, *keys: str) -> "ObjectSchema":
        raise self._object_only("pick")

    def omit(self, *keys: str) -> "ObjectSchema":
        raise self._object_only("omit")

    def extend(self, shape: Mapping[str, Any]) -> "ObjectSchema":
        raise self._object_only("extend")

    def merge(self, other: "Schema") -> "ObjectSchema":
        raise self._object_only("merge")

    def partial(self, *keys: str) -> "ObjectSchema":
        raise self._object_only("partial")

    def required(self, *keys: str) -> "ObjectSchema":
        raise self._object_only("required")

    def nullish_fields(self, *keys: str) -> "ObjectSchema":
        raise self._object_only("nullish")

    def add_defaults(self, defaults: Mapping[str, Any]) -> "ObjectSchema":
        raise self._object_only("add_defaults")

    # json schema

    def json_schema(self) -> dict[str, Any]:
        out = self._json()
        if self.description:
            out["description"] = self.description
        return out

    def _json(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class TypeSchema(Schema):
    """Leaf node validated by a pydantic TypeAdapter over a Python annotation."""

    annotation: Any = Any

    @cached_property
    def _adapter(self) -> TypeAdapter:
        return TypeAdapter(self.annotation)

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        try:
            return self._adapter.validate_python(value)
        except ValidationError as exc:
            _extend(errors, exc, loc)
            return value

    def _json(self) -> dict[str, Any]:
        try:
            return dict(self._adapter.json_schema())
        except PydanticInvalidForJsonSchema:
            return {}


@dataclass(frozen=True)
class LiteralSchema(Schema):
    value: Any = None

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if type(value) is type(self.value) and value == self.value:
            return value
        errors.append(
            _line("literal_error", "Input should be {expected}", loc, value, {"expected": repr(self.value)})
        )
        return value

    def _json(self) -> dict[str, Any]:
        return {"const": self.value}


@dataclass(frozen=True)
class VoidSchema(Schema):
    """Absence of a value: accepts a missing key or None."""

    def accepts_missing(self) -> bool:
        return True

    def _check(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if value is MISSING or value is None:
            return value
        errors.append(_line("none_required", "Input should be None", loc, value))
        return value

    def _json(self) -> dict[str, Any]:
        return {"type": "null"}


def _unwrap(schema: Schema, kinds: tuple[type, ...]) -> Schema:
    while isinstance(schema, kinds):
        schema = schema.inner  # type: ignore[attr-defined]
    return schema


@dataclass(frozen=True)
class ObjectSchema(Schema):
    fields: Mapping[str, Schema] = field(default_factory=dict)
    unknown: UnknownKeys = "strip"

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def shape(self) -> Mapping[str, Schema]:
        return self.fields

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True)
        if not isinstance(value, Mapping):
            errors.append(_line("dict_type", "Input should be a valid dictionary", loc, value))
            return value

        out: dict[str, Any] = {}
        for key, schema in self.fields.items():
            result = schema._check(value.get(key, MISSING), loc + (key,), errors)
            if result is not MISSING:
                out[key] = result

        extra = [k for k in value if k not in self.fields]
        if self.unknown == "forbid":
            for key in extra:
                errors.append(_line("extra_forbidden", "Extra inputs are not permitted", loc + (key,), value[key]))
        elif self.unknown == "allow":
            for key in extra:
                out[key] = value[key]
        return out

    def _known(self, op: str, keys: Iterable[str]) -> list[str]:
        keys = list(keys)
        unknown = [k for k in keys if k not in self.fields]
        if unknown:
            raise ContractConfigError(f"{op}() references undeclared field(s): {', '.join(unknown)}")
        return keys

    def _with_fields(self, fields: Mapping[str, Schema]) -> "ObjectSchema":
        return replace(self, fields=fields)

    def _map(self, op: str, keys: tuple[str, ...], fn: Callable[[Schema], Schema]) -> "ObjectSchema":
        targets = set(self._known(op, keys)) if keys else set(self.fields)
        return self._with_fields({k: fn(v) if k in targets else v for k, v in self.fields.items()})

    def pick(self, *keys: str) -> "ObjectSchema":
        wanted = set(self._known("pick", keys))
        return self._with_fields({k: v for k, v in self.fields.items() if k in wanted})

    def omit(self, *keys: str) -> "ObjectSchema":
        dropped = set(self._known("omit", keys))
        return self._with_fields({k: v for k, v in self.fields.items() if k not in dropped})

    def extend(self, shape: Mapping[str, Any]) -> "ObjectSchema":
        fields = dict(self.fields)
        for key, value in shape.items():
            fields[key] = as_schema(value)
        return self._with_fields(fields)

    def merge(self, other: Schema) -> "ObjectSchema":
        if not isinstance(other, ObjectSchema):
            raise ContractConfigError("merge() can only be called with another object schema")
        return self.extend(other.fields)

    def partial(self, *keys: str) -> "ObjectSchema":
        return self._map("partial", keys, lambda s: s if isinstance(s, OptionalSchema) else s.optional())

    def required(self, *keys: str) -> "ObjectSchema":
        if keys:
            return self._map("required", keys, lambda s: _unwrap(s, (OptionalSchema, NullableSchema)))
        return self._map("required", keys, lambda s: _unwrap(s, (OptionalSchema,)))

    def nullish_fields(self, *keys: str) -> "ObjectSchema":
        return self._map("nullish", keys, lambda s: s.nullish())

    def add_defaults(self, defaults: Mapping[str, Any]) -> "ObjectSchema":
        self._known("add_defaults", defaults)
        return self._with_fields(
            {k: v.default(defaults[k]) if k in defaults else v for k, v in self.fields.items()}
        )

    def strict(self) -> "ObjectSchema":
        return replace(self, unknown="forbid")

    def passthrough(self) -> "ObjectSchema":
        return replace(self, unknown="allow")

    def strip(self) -> "ObjectSchema":
        return replace(self, unknown="strip")

    def _json(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": "object",
            "properties": {k: v.json_schema() for k, v in self.fields.items()},
        }
        required = [k for k, v in self.fields.items() if not v.accepts_missing()]
        if required:
            out["required"] = required
        if self.unknown == "forbid":
            out["additionalProperties"] = False
        return out


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


@dataclass(frozen=True)
class ArraySchema(Schema):
    item: Schema = field(default_factory=lambda: TypeSchema(Any))
    min_items: Optional[int] = None
    max_items: Optional[int] = None

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if not _is_sequence(value):
            errors.append(_line("list_type", "Input should be a valid list", loc, value))
            return value
        if self.min_items is not None and len(value) < self.min_items:
            errors.append(
                _line("too_short", "List should have at least {min} items", loc, value, {"min": self.min_items})
            )
        if self.max_items is not None and len(value) > self.max_items:
            errors.append(
                _line("too_long", "List should have at most {max} items", loc, value, {"max": self.max_items})
            )
        return [self.item._check(v, loc + (i,), errors) for i, v in enumerate(value)]

    def _json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": "array", "items": self.item.json_schema()}
        if self.min_items is not None:
            out["minItems"] = self.min_items
        if self.max_items is not None:
            out["maxItems"] = self.max_items
        return out


@dataclass(frozen=True)
class RecordSchema(Schema):
    values: Schema = field(default_factory=lambda: TypeSchema(Any))

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if not isinstance(value, Mapping):
            errors.append(_line("dict_type", "Input should be a valid dictionary", loc, value))
            return value
        out = {}
        for key, item in value.items():
            if not isinstance(key, str):
                errors.append(_line("string_type", "Keys should be strings", loc + (str(key),), key))
                continue
            out[key] = self.values._check(item, loc + (key,), errors)
        return out

    def _json(self) -> dict[str, Any]:
        return {"type": "object", "additionalProperties": self.values.json_schema()}


@dataclass(frozen=True)
class UnionSchema(Schema):
    options: tuple[Schema, ...] = ()
    discriminator: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))

    def _tag_of(self, option: Schema) -> Any:
        if isinstance(option, ObjectSchema):
            tag = option.fields.get(self.discriminator or "")
            if isinstance(tag, LiteralSchema):
                return tag.value
        return MISSING

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if self.discriminator is not None:
            return self._check_tagged(value, loc, errors)

        collected: list[InitErrorDetails] = []
        for option in self.options:
            attempt: list[InitErrorDetails] = []
            result = option._check(value, loc, attempt)
            if not attempt:
                return result
            collected.extend(attempt)
        errors.extend(collected or [_line("union_error", "No union option matched", loc, value)])
        return value

    def _check_tagged(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        key = self.discriminator or ""
        if not isinstance(value, Mapping) or key not in value:
            errors.append(
                _line("union_tag_not_found", "Unable to find discriminator '{key}'", loc, value, {"key": key})
            )
            return value
        for option in self.options:
            if self._tag_of(option) == value[key]:
                return option._check(value, loc, errors)
        expected = ", ".join(repr(self._tag_of(o)) for o in self.options)
        errors.append(
            _line(
                "union_tag_invalid",
                "Discriminator '{key}' should be one of {expected}",
                loc + (key,),
                value[key],
                {"key": key, "expected": expected},
            )
        )
        return value

    def _json(self) -> dict[str, Any]:
        variants = [o.json_schema() for o in self.options]
        if self.discriminator is not None:
            return {"oneOf": variants, "discriminator": {"propertyName": self.discriminator}}
        return {"anyOf": variants}


@dataclass(frozen=True)
class OptionalSchema(Schema):
    inner: Schema = field(default_factory=VoidSchema)

    def accepts_missing(self) -> bool:
        return True

    def _check(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if value is MISSING:
            return MISSING
        return self.inner._check(value, loc, errors)

    def _json(self) -> dict[str, Any]:
        return self.inner.json_schema()


@dataclass(frozen=True)
class NullableSchema(Schema):
    inner: Schema = field(default_factory=VoidSchema)

    def accepts_missing(self) -> bool:
        return self.inner.accepts_missing()

    def _check(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if value is None:
            return None
        return self.inner._check(value, loc, errors)

    def _json(self) -> dict[str, Any]:
        return {"anyOf": [self.inner.json_schema(), {"type": "null"}]}


@dataclass(frozen=True)
class DefaultSchema(Schema):
    """Substitutes a default (deep-copied on each use) when the value is absent."""

    inner: Schema = field(default_factory=VoidSchema)
    value: Any = MISSING
    factory: Optional[Callable[[], Any]] = None

    def __post_init__(self) -> None:
        if self.value is MISSING and self.factory is None:
            raise ContractConfigError("default() needs a value or a factory")

    def accepts_missing(self) -> bool:
        return True

    def make_default(self) -> Any:
        if self.factory is not None:
            return self.factory()
        return copy.deepcopy(self.value)

    def _check(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if value is MISSING:
            value = self.make_default()
        return self.inner._check(value, loc, errors)

    def _json(self) -> dict[str, Any]:
        out = self.inner.json_schema()
        if self.factory is None:
            out["default"] = self.value
        return out


@dataclass(frozen=True)
class CustomSchema(Schema):
    """Accepts any value the predicate returns truthy for."""

    predicate: Callable[[Any], bool] = bool
    message: str = "Invalid value"

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        try:
            ok = self.predicate(value)
        except (TypeError, ValueError) as exc:
            errors.append(_line("custom", "{error}", loc, value, {"error": str(exc)}))
            return value
        if not ok:
            errors.append(_line("custom", self.message, loc, value))
        return value


@dataclass(frozen=True)
class StreamSchema(Schema):
    """
    Lazily validated stream of chunks.

    The validated value is a single-use generator: each chunk is checked
    against `yields` as it is pulled, and the terminal return value of a
    sync generator is checked against `returns` when one is given.
    Async iterables produce async generators and carry no return value.
    """

    yields: Schema = field(default_factory=lambda: TypeSchema(Any))
    returns: Optional[Schema] = None

    def _check_value(self, value: Any, loc: Loc, errors: list[InitErrorDetails]) -> Any:
        if hasattr(value, "__aiter__"):
            return self._aiter(value, loc)
        if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
            errors.append(_line("iterable_type", "Input should be iterable", loc, value))
            return value
        return self._iter(iter(value), loc)

    def _validate_at(self, schema: Schema, value: Any, loc: Loc) -> Any:
        errors: list[InitErrorDetails] = []
        result = schema._check(value, loc, errors)
        if errors:
            _raise(type(self).__name__, errors)
        return result

    def _iter(self, source: Iterator[Any], loc: Loc) -> Iterator[Any]:
        index = 0
        while True:
            try:
                item = next(source)
            except StopIteration as stop:
                if self.returns is not None:
                    return self._validate_at(self.returns, stop.value, loc + ("return",))
                return stop.value
            yield self._validate_at(self.yields, item, loc + (index,))
            index += 1

    async def _aiter(self, source: Any, loc: Loc) -> AsyncIterator[Any]:
        index = 0
        async for item in source:
            yield self._validate_at(self.yields, item, loc + (index,))
            index += 1

    def _json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": "array", "items": self.yields.json_schema(), "x-stream": True}
        if self.returns is not None:
            out["x-stream-returns"] = self.returns.json_schema()
        return out


def shape_of(schema: Schema) -> Mapping[str, Schema]:
    if isinstance(schema, ObjectSchema):
        return schema.fields
    return MappingProxyType({})


def from_model(model: type[BaseModel]) -> ObjectSchema:
    """Object schema mirroring the fields of a pydantic model class."""
    fields: dict[str, Schema] = {}
    for name, info in model.model_fields.items():
        leaf: Schema = TypeSchema(info.rebuild_annotation(), description=info.description)
        if not info.is_required():
            if info.default_factory is not None:
                leaf = DefaultSchema(leaf, factory=info.default_factory)
            else:
                leaf = DefaultSchema(leaf, info.default)
        fields[info.alias or name] = leaf

    extra = model.model_config.get("extra")
    unknown: UnknownKeys = extra if extra in ("forbid", "allow") else "strip"
    return ObjectSchema(fields, unknown=unknown)


def as_schema(value: Any) -> Schema:
    """
    Coerce a schema-like value.

    Accepts a Schema, a mapping of field name to schema-like values, a pydantic
    model class, None (void) or any annotation a TypeAdapter understands.
    """
    if isinstance(value, Schema):
        return value
    if value is None:
        return VoidSchema()
    if isinstance(value, Mapping):
        return ObjectSchema({k: as_schema(v) for k, v in value.items()})
    if isinstance(value, type) and issubclass(value, BaseModel):
        return from_model(value)
    return TypeSchema(value)


def is_callback(value: Any) -> bool:
    """True for plain functions and methods; types and typing constructs are schema-like instead."""
    return isinstance(value, (FunctionType, MethodType, partial))
