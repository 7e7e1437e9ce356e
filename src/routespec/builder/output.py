from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Optional, Union

from routespec.domain.errors import ContractConfigError
from routespec.schema.nodes import (
    MISSING,
    LiteralSchema,
    ObjectSchema,
    Schema,
    StreamSchema,
    UnionSchema,
    VoidSchema,
    as_schema,
    is_callback,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimpleOutput:
    """Bare schema; status 200 and no headers are implied."""

    value: Schema

    @property
    def status(self) -> int:
        return 200

    @property
    def schema(self) -> Schema:
        return self.value


@dataclass(frozen=True)
class DetailedOutput:
    status: int = 200
    headers: Optional[Schema] = None  # None: never set, omitted
    body: Optional[Schema] = None  # None: no body, omitted

    @property
    def schema(self) -> ObjectSchema:
        fields: dict[str, Schema] = {"status": LiteralSchema(self.status)}
        if self.headers is not None:
            fields["headers"] = self.headers
        if self.body is not None:
            fields["body"] = self.body
        return ObjectSchema(fields)


@dataclass(frozen=True)
class UnionOutput:
    variants: tuple[DetailedOutput, ...]

    @property
    def statuses(self) -> tuple[int, ...]:
        return tuple(v.status for v in self.variants)

    @property
    def schema(self) -> UnionSchema:
        return UnionSchema(tuple(v.schema for v in self.variants), discriminator="status")


OutputDescriptor = Union[SimpleOutput, DetailedOutput, UnionOutput]


def _check_status(code: int) -> int:
    if isinstance(code, bool) or not isinstance(code, int) or not 100 <= code <= 599:
        raise ContractConfigError(f"Invalid HTTP status code: {code!r}")
    return code


def as_detailed(state: SimpleOutput | DetailedOutput) -> DetailedOutput:
    if isinstance(state, DetailedOutput):
        return state
    body = None if isinstance(state.value, VoidSchema) else state.value
    return DetailedOutput(200, None, body)


def to_descriptor(value: Any) -> OutputDescriptor:
    if isinstance(value, OutputComposer):
        return value.build()
    if isinstance(value, (SimpleOutput, DetailedOutput, UnionOutput)):
        return value
    return SimpleOutput(as_schema(value))


@dataclass(frozen=True)
class OutputComposer:
    """
    Immutable accumulator for a route's output.

    Starts in simple mode. status/headers/body/streamed switch to detailed
    mode and only touch their own field. union() replaces the whole state.
    """

    state: OutputDescriptor = field(default_factory=lambda: SimpleOutput(VoidSchema()))

    def _detailed(self, op: str) -> DetailedOutput:
        if isinstance(self.state, UnionOutput):
            raise ContractConfigError(f"{op}() cannot modify a union output; configure each variant instead")
        return as_detailed(self.state)

    def _next(self, state: OutputDescriptor) -> "OutputComposer":
        return replace(self, state=state)

    def status(self, code: int, body: Any = MISSING) -> "OutputComposer":
        current = self._detailed("status")
        if body is MISSING:
            new_body = current.body
        elif body is None:
            new_body = None
        else:
            new_body = as_schema(body)
        return self._next(replace(current, status=_check_status(code), body=new_body))

    def headers(self, spec: Any) -> "OutputComposer":
        current = self._detailed("headers")
        if is_callback(spec):
            headers = _schema_result(spec(current.headers if current.headers is not None else ObjectSchema({})))
        else:
            headers = as_schema(spec)
        return self._next(replace(current, headers=headers))

    def body(self, spec: Any) -> "OutputComposer":
        current = self._detailed("body")
        if is_callback(spec):
            body = _schema_result(spec(current.body if current.body is not None else VoidSchema()))
        else:
            body = as_schema(spec)
        return self._next(replace(current, body=body))

    def streamed(self, spec: Any, returns: Any = None) -> "OutputComposer":
        current = self._detailed("streamed")
        if is_callback(spec):
            spec = spec(current.body if current.body is not None else VoidSchema())
        if isinstance(spec, StreamSchema):
            stream = spec
        else:
            stream = StreamSchema(as_schema(spec), as_schema(returns) if returns is not None else None)
        return self._next(replace(current, body=stream))

    def custom(self, fn: Callable[[Schema], Schema]) -> "OutputComposer":
        if isinstance(self.state, UnionOutput):
            raise ContractConfigError("custom() cannot modify a union output; configure each variant instead")
        if isinstance(self.state, SimpleOutput):
            return self._next(SimpleOutput(_schema_result(fn(self.state.value))))
        current = self.state.body if self.state.body is not None else VoidSchema()
        return self._next(replace(self.state, body=_schema_result(fn(current))))

    def union(self, variants: Iterable[Any]) -> "OutputComposer":
        descriptors = [to_descriptor(v) for v in variants]
        if not descriptors:
            raise ContractConfigError("union() needs at least one variant")
        if len(descriptors) == 1:
            return self._next(descriptors[0])

        flat: list[DetailedOutput] = []
        for d in descriptors:
            if isinstance(d, UnionOutput):
                flat.extend(d.variants)
            else:
                flat.append(as_detailed(d))

        seen: set[int] = set()
        for v in flat:
            if v.status in seen:
                raise ContractConfigError(f"union() has more than one variant with status {v.status}")
            seen.add(v.status)

        logger.debug("output union with statuses %s", [v.status for v in flat])
        return self._next(UnionOutput(tuple(flat)))

    def build(self) -> OutputDescriptor:
        return self.state


def _schema_result(value: Any) -> Schema:
    return value if isinstance(value, Schema) else as_schema(value)


def output() -> OutputComposer:
    return OutputComposer()
