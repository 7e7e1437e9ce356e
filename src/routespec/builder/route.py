from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from pydantic import ValidationError

from routespec.builder.errors import ErrorDefinition, error, merge_errors
from routespec.builder.input import DetailedInput, InputComposer, InputDescriptor
from routespec.builder.output import OutputComposer, OutputDescriptor, SimpleOutput, to_descriptor
from routespec.builder.params import PathTemplateFn, placeholders
from routespec.domain.contract import Contract
from routespec.domain.errors import ContractConfigError
from routespec.domain.models import ErrorEntry, HttpMethod, RouteMetadata
from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema, VoidSchema, as_schema

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _checked_meta(fields: Mapping[str, Any]) -> Mapping[str, Any]:
    """Validate metadata fields eagerly; returns them normalized (method upper-cased, tags as tuple)."""
    try:
        meta = RouteMetadata(**fields)
    except ValidationError as exc:
        raise ContractConfigError(f"Invalid route metadata: {exc}") from exc
    return MappingProxyType(meta.model_dump(include=set(fields)))


@dataclass(frozen=True)
class _RouteState:
    method: HttpMethod = "GET"
    meta: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)  # explicitly set RouteMetadata fields
    input: Optional[InputComposer] = None  # normalized by build()
    output: Optional[OutputDescriptor] = None
    entity: Optional[Schema] = None
    errors: Mapping[str, ErrorEntry] = field(default_factory=lambda: _EMPTY)


class RouteBuilder:
    """
    Fluent, immutable builder for one route contract.

    Every method returns a new RouteBuilder, so partially configured builders
    can be shared and branched. build() normalizes the state into a Contract.
    """

    def __init__(
        self,
        method: str = "GET",
        path: Optional[str] = None,
        *,
        summary: Optional[str] = None,
        description: Optional[str] = None,
        tags: Iterable[str] = (),
        deprecated: Optional[bool] = None,
        entity: Any = None,
    ) -> None:
        fields: dict[str, Any] = {"path": path, "summary": summary, "description": description, "deprecated": deprecated}
        fields = {k: v for k, v in fields.items() if v is not None}
        if tags:
            fields["tags"] = tuple(tags)
        method = _checked_meta({"method": method})["method"]
        self._state = _RouteState(
            method=method,
            meta=_checked_meta(fields),
            entity=as_schema(entity) if entity is not None else None,
        )

    @classmethod
    def _from_state(cls, state: _RouteState) -> "RouteBuilder":
        builder = cls.__new__(cls)
        builder._state = state
        return builder

    def _evolve(self, **changes: Any) -> "RouteBuilder":
        return self._from_state(replace(self._state, **changes))

    def _with_meta(self, **fields: Any) -> "RouteBuilder":
        return self._evolve(meta=_checked_meta({**self._state.meta, **fields}))

    def __repr__(self) -> str:
        meta = self.metadata
        return f"RouteBuilder({meta.method} {meta.path})"

    # metadata

    @property
    def metadata(self) -> RouteMetadata:
        return RouteMetadata(**{"method": self._state.method, **self._state.meta})

    def route(self, **fields: Any) -> "RouteBuilder":
        return self._with_meta(**fields)

    def update_route(self, fn: Callable[[RouteMetadata], Any]) -> "RouteBuilder":
        result = fn(self.metadata)
        if isinstance(result, RouteMetadata):
            result = result.model_dump()
        return self._with_meta(**result)

    def method(self, value: str) -> "RouteBuilder":
        fields = _checked_meta({**self._state.meta, "method": value})
        return self._evolve(method=fields["method"], meta=fields)

    def path(self, value: str) -> "RouteBuilder":
        return self._with_meta(path=value)

    def summary(self, value: str) -> "RouteBuilder":
        return self._with_meta(summary=value)

    def description(self, value: str) -> "RouteBuilder":
        return self._with_meta(description=value)

    def tags(self, *values: str) -> "RouteBuilder":
        return self._with_meta(tags=tuple(self._state.meta.get("tags", ())) + values)

    def deprecated(self, flag: bool = True) -> "RouteBuilder":
        return self._with_meta(deprecated=flag)

    def entity(self, spec: Any) -> "RouteBuilder":
        return self._evolve(entity=as_schema(spec))

    # input

    def _apply_input(self, composer: InputComposer) -> "RouteBuilder":
        builder = self._evolve(input=replace(composer, path=None, entity=None))
        if composer.path is not None:
            builder = builder.path(composer.path)
        return builder

    def input(self, spec: Any) -> "RouteBuilder":
        """Replace the input entirely with a schema, a DetailedInput or an InputComposer."""
        if isinstance(spec, InputComposer):
            return self._apply_input(spec)
        if isinstance(spec, DetailedInput):
            return self._evolve(input=InputComposer.seeded(spec))
        return self._evolve(input=InputComposer.seeded(as_schema(spec)))

    def configure_input(self, fn: Callable[[InputComposer], InputComposer]) -> "RouteBuilder":
        current = self._state.input or InputComposer()
        composer = fn(replace(current, entity=self._state.entity))
        if not isinstance(composer, InputComposer):
            raise ContractConfigError("configure_input() callback must return the input composer")
        return self._apply_input(composer)

    @property
    def input_builder(self) -> "InputAccess":
        return InputAccess(self)

    # output

    def output(self, spec: Any) -> "RouteBuilder":
        return self._evolve(output=to_descriptor(spec))

    def configure_output(self, fn: Callable[[OutputComposer], OutputComposer]) -> "RouteBuilder":
        current = self._state.output or SimpleOutput(VoidSchema())
        composer = fn(OutputComposer(current))
        if not isinstance(composer, OutputComposer):
            raise ContractConfigError("configure_output() callback must return the output composer")
        return self._evolve(output=composer.build())

    @property
    def output_builder(self) -> "OutputAccess":
        return OutputAccess(self)

    # errors

    def errors(self, *items: Any) -> "RouteBuilder":
        """Add catalog entries; a code declared again replaces its earlier entry."""
        return self._evolve(errors=merge_errors(self._state.errors, items))

    def configure_errors(self, fn: Callable[[Callable[..., ErrorDefinition]], Iterable[Any]]) -> "RouteBuilder":
        return self.errors(*fn(error))

    # build

    def build(self) -> Contract:
        state = self._state
        meta = RouteMetadata(**{"method": state.method, **state.meta})
        input_value = state.input.build() if state.input is not None else VoidSchema()
        output_value = state.output if state.output is not None else SimpleOutput(VoidSchema())
        _check_placeholders(meta.path, input_value)

        contract = Contract(
            route=meta,
            input=input_value,
            output=output_value,
            errors=state.errors,
            method_tag=state.method,
        )
        logger.debug("built contract %s %s (%d error codes)", meta.method, meta.path, len(state.errors))
        return contract

    # presets

    @classmethod
    def health(cls, path: str = "/health") -> "RouteBuilder":
        return (
            cls("GET", path, summary="Health check", tags=("health",))
            .input(ObjectSchema({}))
            .output(
                s.obj(
                    status=s.enum(["healthy", "unhealthy", "degraded"]),
                    timestamp=s.datetime(),
                    details=s.record().optional(),
                )
            )
        )

    @classmethod
    def ready(cls, path: str = "/ready") -> "RouteBuilder":
        return (
            cls("GET", path, summary="Readiness check", tags=("health",))
            .input(ObjectSchema({}))
            .output(s.obj(ready=s.boolean(), checks=s.record(bool).optional()))
        )

    @classmethod
    def live(cls, path: str = "/live") -> "RouteBuilder":
        return (
            cls("GET", path, summary="Liveness check", tags=("health",))
            .input(ObjectSchema({}))
            .output(s.obj(alive=s.boolean()))
        )

    @classmethod
    def check_exists(cls, input: Any, path: str = "/check-exists", method: str = "POST") -> "RouteBuilder":
        return (
            cls(method, path, summary="Check if resource exists")
            .input(input)
            .output(s.obj(exists=s.boolean()))
        )

    @classmethod
    def action(
        cls,
        input: Any,
        output: Any,
        path: Optional[str] = None,
        action_name: Optional[str] = None,
    ) -> "RouteBuilder":
        if path is None:
            path = f"/{action_name}" if action_name else "/action"
        summary = f"Execute {action_name}" if action_name else "Execute action"
        return cls("POST", path, summary=summary).input(input).output(output)

    @classmethod
    def trigger_job(cls, input: Any = None) -> "RouteBuilder":
        builder = cls("POST", "/jobs/trigger", summary="Trigger background job", tags=("jobs",))
        if input is not None:
            builder = builder.input(input)
        return builder.output(
            s.obj(
                jobId=s.uuid(),
                status=s.enum(["pending", "queued", "running"]),
                estimatedTime=s.number().optional(),
            )
        )

    @classmethod
    def job_status(cls, result: Any = None) -> "RouteBuilder":
        result_schema = as_schema(result) if result is not None else s.any_()
        return (
            cls("GET", summary="Get job status", tags=("jobs",))
            .input_builder.params(_job_path("status"))
            .output(
                s.obj(
                    jobId=s.uuid(),
                    status=s.enum(["pending", "queued", "running", "completed", "failed"]),
                    progress=s.number(ge=0, le=100).optional(),
                    result=result_schema.optional(),
                    error=s.string().optional(),
                )
            )
        )

    @classmethod
    def stream_job_progress(cls, result: Any = None) -> "RouteBuilder":
        result_schema = as_schema(result) if result is not None else s.any_()
        chunk = s.obj(
            progress=s.number(ge=0, le=100),
            message=s.string().optional(),
            result=result_schema.optional(),
        )
        return (
            cls("GET", summary="Stream job progress", tags=("jobs",))
            .input_builder.params(_job_path("progress"))
            .output_builder.streamed(chunk)
        )

    @classmethod
    def upload(cls) -> "RouteBuilder":
        return (
            cls("POST", "/upload", summary="Upload file", tags=("files",))
            .input(s.obj(file=s.custom(), metadata=s.record().optional()))
            .output(
                s.obj(
                    fileId=s.string(),
                    filename=s.string(),
                    size=s.integer(ge=0),
                    mimeType=s.string(),
                    url=s.string().optional(),
                )
            )
        )

    @classmethod
    def download(cls) -> "RouteBuilder":
        return (
            cls("GET", summary="Download file", tags=("files",))
            .input_builder.params(lambda p: f"/download/{p('fileId', s.string())}")
            .output(
                s.obj(
                    data=s.custom(),
                    filename=s.string(),
                    mimeType=s.string(),
                    size=s.integer(ge=0),
                )
            )
        )

    @classmethod
    def webhook(cls, payload: Any) -> "RouteBuilder":
        return (
            cls("POST", "/webhook", summary="Receive webhook", tags=("webhooks",))
            .input(payload)
            .output(s.obj(received=s.boolean(), processedAt=s.datetime()))
        )

    @classmethod
    def metrics(cls) -> "RouteBuilder":
        metric = s.obj(name=s.string(), value=s.number(), labels=s.record(str).optional())
        return (
            cls("GET", "/metrics", summary="Get metrics", tags=("monitoring",))
            .input(ObjectSchema({}))
            .output(s.obj(metrics=s.array(metric), timestamp=s.datetime()))
        )

    @classmethod
    def config(cls, schema: Any) -> "RouteBuilder":
        return (
            cls("GET", "/config", summary="Get configuration", tags=("config",))
            .input(ObjectSchema({}))
            .output(schema)
        )

    @classmethod
    def version(cls) -> "RouteBuilder":
        return (
            cls("GET", "/version", summary="Get version information", tags=("system",))
            .input(ObjectSchema({}))
            .output(
                s.obj(
                    version=s.string(),
                    commit=s.string().optional(),
                    buildDate=s.string().optional(),
                    environment=s.string().optional(),
                )
            )
        )


def _job_path(suffix: str) -> PathTemplateFn:
    return lambda p: f"/jobs/{p('jobId', s.uuid())}/{suffix}"


def _check_placeholders(path: str, input_value: InputDescriptor) -> None:
    if not isinstance(input_value, DetailedInput) or not isinstance(input_value.params, ObjectSchema):
        return
    in_path = set(placeholders(path))
    declared = set(input_value.params.shape)
    missing = sorted(in_path - declared)
    extra = sorted(declared - in_path)
    if missing or extra:
        parts = []
        if missing:
            parts.append(f"placeholders without a params schema: {', '.join(missing)}")
        if extra:
            parts.append(f"params missing from path: {', '.join(extra)}")
        raise ContractConfigError(f"Path {path!r} does not match params ({'; '.join(parts)})")


class InputAccess:
    """Chainable view of a route's input composer; each call returns a new RouteBuilder."""

    def __init__(self, route: RouteBuilder) -> None:
        self._route = route

    def params(self, spec: Any, template: Optional[PathTemplateFn] = None) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.params(spec, template))

    def query(self, spec: Any) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.query(spec))

    def body(self, spec: Any) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.body(spec))

    def streamed_body(self, yields: Any, returns: Any = None) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.streamed_body(yields, returns))

    def headers(self, spec: Any) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.headers(spec))

    def pick(self, *keys: str) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.pick(*keys))

    def omit(self, *keys: str) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.omit(*keys))

    def partial(self, *keys: str) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.partial(*keys))

    def extend(self, shape: Mapping[str, Any]) -> RouteBuilder:
        return self._route.configure_input(lambda c: c.extend(shape))


class OutputAccess:
    """Chainable view of a route's output composer; each call returns a new RouteBuilder."""

    def __init__(self, route: RouteBuilder) -> None:
        self._route = route

    def status(self, code: int, *body: Any) -> RouteBuilder:
        return self._route.configure_output(lambda c: c.status(code, *body))

    def headers(self, spec: Any) -> RouteBuilder:
        return self._route.configure_output(lambda c: c.headers(spec))

    def body(self, spec: Any) -> RouteBuilder:
        return self._route.configure_output(lambda c: c.body(spec))

    def streamed(self, spec: Any, returns: Any = None) -> RouteBuilder:
        return self._route.configure_output(lambda c: c.streamed(spec, returns))

    def custom(self, fn: Callable[[Schema], Schema]) -> RouteBuilder:
        return self._route.configure_output(lambda c: c.custom(fn))

    def union(self, variants: Iterable[Any]) -> RouteBuilder:
        variants = list(variants)
        return self._route.configure_output(lambda c: c.union(variants))


def route(method: str = "GET", path: Optional[str] = None, **kwargs: Any) -> RouteBuilder:
    return RouteBuilder(method, path, **kwargs)
