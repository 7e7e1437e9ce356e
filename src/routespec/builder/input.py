from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Union

from routespec.builder.params import PathTemplateFn, render_template
from routespec.domain.errors import ContractConfigError
from routespec.schema.factory import empty_object
from routespec.schema.nodes import ObjectSchema, Schema, StreamSchema, VoidSchema, as_schema, is_callback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetailedInput:
    """Normalized input with all four sub-schemas present."""

    params: Schema
    query: Schema
    body: Schema
    headers: Schema

    @property
    def schema(self) -> ObjectSchema:
        return ObjectSchema(
            {"params": self.params, "query": self.query, "body": self.body, "headers": self.headers}
        )


InputDescriptor = Union[Schema, DetailedInput]


@dataclass(frozen=True)
class InputComposer:
    """
    Immutable accumulator for a route's input.

    Each sub-field is None until set. `path` holds the path rendered by the
    last params template; the route builder copies it into its metadata.
    """

    params_schema: Optional[Schema] = None
    query_schema: Optional[Schema] = None
    body_schema: Optional[Schema] = None
    headers_schema: Optional[Schema] = None
    path: Optional[str] = None
    entity: Optional[Schema] = None

    @classmethod
    def seeded(cls, current: Optional[InputDescriptor], entity: Optional[Schema] = None) -> "InputComposer":
        if isinstance(current, DetailedInput):
            return cls(current.params, current.query, current.body, current.headers, entity=entity)
        if current is None or isinstance(current, VoidSchema):
            return cls(entity=entity)
        return cls(body_schema=current, entity=entity)

    # params

    def _params_object(self) -> ObjectSchema:
        if self.params_schema is None:
            return ObjectSchema({})
        if not isinstance(self.params_schema, ObjectSchema):
            raise ContractConfigError("params() can only merge into object schemas")
        return self.params_schema

    def params(self, spec: Any, template: Optional[PathTemplateFn] = None) -> "InputComposer":
        """
        Declare path params.

        - params(fn): fn receives a PathParamBuilder and returns the path.
        - params(shape, fn): declare params first, then reference them in fn.
        - params(shape): merge params without touching the path.
        - params(schema): set the params schema as-is.
        """
        if is_callback(spec):
            return self._params_template(spec, {})

        if isinstance(spec, Schema):
            if template is None:
                return replace(self, params_schema=spec)
            if not isinstance(spec, ObjectSchema):
                raise ContractConfigError("params() with a path template needs an object schema")
            shape = spec.shape
        else:
            shape = {k: as_schema(v) for k, v in spec.items()}
            if template is None:
                return replace(self, params_schema=self._params_object().extend(shape))
        return self._params_template(template, shape)

    def _params_template(self, fn: PathTemplateFn, shape: Mapping[str, Schema]) -> "InputComposer":
        base = self._params_object().extend(shape)
        path, declared = render_template(fn, base.shape)
        logger.debug("path template rendered %s with params %s", path, sorted(declared))
        return replace(self, params_schema=base.extend(declared), path=path)

    # other sub-fields

    def query(self, spec: Any) -> "InputComposer":
        return replace(self, query_schema=as_schema(spec))

    def body(self, spec: Any) -> "InputComposer":
        return replace(self, body_schema=as_schema(spec))

    def streamed_body(self, yields: Any, returns: Any = None) -> "InputComposer":
        stream = StreamSchema(as_schema(yields), as_schema(returns) if returns is not None else None)
        return replace(self, body_schema=stream)

    def headers(self, spec: Any) -> "InputComposer":
        return replace(self, headers_schema=as_schema(spec))

    def update_params(self, fn: Callable[[Schema], Any]) -> "InputComposer":
        return replace(self, params_schema=_transformed(fn, self.params_schema or empty_object()))

    def update_query(self, fn: Callable[[Schema], Any]) -> "InputComposer":
        return replace(self, query_schema=_transformed(fn, self.query_schema or empty_object()))

    def update_headers(self, fn: Callable[[Schema], Any]) -> "InputComposer":
        return replace(self, headers_schema=_transformed(fn, self.headers_schema or empty_object()))

    def update_body(self, fn: Callable[[Schema], Any]) -> "InputComposer":
        return replace(self, body_schema=_transformed(fn, self._body_base("update_body")))

    # body restructuring, falling back to the entity schema

    def _body_base(self, op: str) -> Schema:
        if self.body_schema is not None:
            return self.body_schema
        if self.entity is not None:
            return self.entity
        raise ContractConfigError(f"{op}() needs a body or an entity schema")

    def pick(self, *keys: str) -> "InputComposer":
        return replace(self, body_schema=self._body_base("pick").pick(*keys))

    def omit(self, *keys: str) -> "InputComposer":
        return replace(self, body_schema=self._body_base("omit").omit(*keys))

    def partial(self, *keys: str) -> "InputComposer":
        return replace(self, body_schema=self._body_base("partial").partial(*keys))

    def extend(self, shape: Mapping[str, Any]) -> "InputComposer":
        return replace(self, body_schema=self._body_base("extend").extend(shape))

    def build(self) -> InputDescriptor:
        others = (self.params_schema, self.query_schema, self.headers_schema)
        if all(s is None for s in others):
            return self.body_schema if self.body_schema is not None else VoidSchema()
        return DetailedInput(
            params=self.params_schema if self.params_schema is not None else empty_object(),
            query=self.query_schema if self.query_schema is not None else empty_object(),
            body=self.body_schema if self.body_schema is not None else empty_object(),
            headers=self.headers_schema if self.headers_schema is not None else empty_object(),
        )


def _transformed(fn: Callable[[Schema], Any], current: Schema) -> Schema:
    result = fn(current)
    if not isinstance(result, Schema):
        result = as_schema(result)
    return result
