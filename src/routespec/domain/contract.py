from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping

from routespec.builder.input import DetailedInput, InputDescriptor
from routespec.builder.output import OutputDescriptor
from routespec.domain.models import QUERY_METHODS, ErrorEntry, HttpMethod, RouteMetadata
from routespec.schema.nodes import Schema


@dataclass(frozen=True)
class Contract:
    """
    Canonical, immutable result of RouteBuilder.build().

    `method_tag` is the builder's own method; `route.method` may differ when
    metadata was overridden through route().
    """

    route: RouteMetadata
    input: InputDescriptor
    output: OutputDescriptor
    errors: Mapping[str, ErrorEntry]
    method_tag: HttpMethod

    @property
    def kind(self) -> Literal["query", "mutation"]:
        return "query" if self.method_tag in QUERY_METHODS else "mutation"

    @property
    def input_schema(self) -> Schema:
        if isinstance(self.input, DetailedInput):
            return self.input.schema
        return self.input

    @property
    def output_schema(self) -> Schema:
        return self.output.schema
