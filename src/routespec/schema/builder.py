from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from routespec.domain.errors import ContractConfigError
from routespec.schema.nodes import MISSING, ObjectSchema, Schema, as_schema


@dataclass(frozen=True)
class SchemaBuilder:
    """
    Fluent wrapper over a schema value.

    Each call returns a new builder around a new schema. Restructuring calls
    (pick/omit/partial/...) require the wrapped schema to be an object schema.
    """

    current: Schema

    def _object(self, op: str) -> ObjectSchema:
        if not isinstance(self.current, ObjectSchema):
            raise ContractConfigError(f"{op}() can only be called on object schemas")
        return self.current

    def _next(self, value: Schema) -> "SchemaBuilder":
        return SchemaBuilder(value)

    @property
    def shape(self) -> Mapping[str, Schema]:
        return self._object("shape").shape

    # object restructuring

    def pick(self, *keys: str) -> "SchemaBuilder":
        return self._next(self._object("pick").pick(*keys))

    def omit(self, *keys: str) -> "SchemaBuilder":
        return self._next(self._object("omit").omit(*keys))

    def partial(self, *keys: str) -> "SchemaBuilder":
        return self._next(self._object("partial").partial(*keys))

    def required(self, *keys: str) -> "SchemaBuilder":
        return self._next(self._object("required").required(*keys))

    def nullish_fields(self, *keys: str) -> "SchemaBuilder":
        return self._next(self._object("nullish").nullish_fields(*keys))

    def add_defaults(self, defaults: Mapping[str, Any]) -> "SchemaBuilder":
        return self._next(self._object("add_defaults").add_defaults(defaults))

    def extend(self, shape: Mapping[str, Any]) -> "SchemaBuilder":
        return self._next(self._object("extend").extend(shape))

    def merge(self, other: Any) -> "SchemaBuilder":
        if isinstance(other, SchemaBuilder):
            other = other.current
        return self._next(self._object("merge").merge(as_schema(other)))

    # wrapping

    def nullable(self) -> "SchemaBuilder":
        return self._next(self.current.nullable())

    def optional(self) -> "SchemaBuilder":
        return self._next(self.current.optional())

    def nullish(self) -> "SchemaBuilder":
        return self._next(self.current.nullish())

    def default(self, value: Any = MISSING, *, factory: Optional[Callable[[], Any]] = None) -> "SchemaBuilder":
        return self._next(self.current.default(value, factory=factory))

    def describe(self, text: str) -> "SchemaBuilder":
        return self._next(self.current.describe(text))

    def custom(self, fn: Callable[[Schema], Schema]) -> "SchemaBuilder":
        result = fn(self.current)
        if not isinstance(result, Schema):
            raise ContractConfigError("custom() transform must return a schema")
        return self._next(result)

    def build(self) -> Schema:
        return self.current


def schema(value: Any) -> SchemaBuilder:
    if isinstance(value, SchemaBuilder):
        return value
    return SchemaBuilder(as_schema(value))
