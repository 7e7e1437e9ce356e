from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from routespec.domain.errors import ContractConfigError
from routespec.domain.models import ErrorEntry
from routespec.schema.nodes import Schema, as_schema


def _entry(code: str, **fields: Any) -> ErrorEntry:
    try:
        return ErrorEntry(code=code, **fields)
    except ValidationError as exc:
        raise ContractConfigError(f"Invalid error definition '{code}': {exc}") from exc


@dataclass(frozen=True)
class ErrorDefinition:
    """Chainable description of one catalog entry; fields may be set in any order."""

    error_code: Optional[str] = None
    error_message: Optional[str] = None
    error_status: Optional[int] = None
    error_data: Optional[Schema] = None

    def code(self, value: str) -> "ErrorDefinition":
        return replace(self, error_code=value)

    def message(self, value: str) -> "ErrorDefinition":
        return replace(self, error_message=value)

    def status(self, value: int) -> "ErrorDefinition":
        return replace(self, error_status=value)

    def data(self, value: Any) -> "ErrorDefinition":
        return replace(self, error_data=as_schema(value))

    def entry(self) -> ErrorEntry:
        if not self.error_code:
            raise ContractConfigError("Error code is required")
        return _entry(
            code=self.error_code,
            message=self.error_message,
            status=self.error_status,
            data=self.error_data,
        )


def error(
    code: Optional[str] = None,
    message: Optional[str] = None,
    status: Optional[int] = None,
    data: Any = None,
) -> ErrorDefinition:
    return ErrorDefinition(code, message, status, as_schema(data) if data is not None else None)


def _entries(items: Iterable[Any]) -> Iterable[ErrorEntry]:
    for item in items:
        if isinstance(item, ErrorDefinition):
            yield item.entry()
        elif isinstance(item, ErrorEntry):
            yield item
        elif isinstance(item, Mapping):
            for code, spec in item.items():
                if isinstance(spec, ErrorDefinition):
                    yield spec.code(code).entry()
                elif isinstance(spec, Mapping):
                    fields = dict(spec)
                    if fields.pop("code", code) != code:
                        raise ContractConfigError(f"Error '{code}' declares a different code: {spec['code']!r}")
                    yield _entry(code=code, **fields)
                else:
                    raise ContractConfigError(f"Unsupported definition for error '{code}': {spec!r}")
        else:
            raise ContractConfigError(f"Unsupported error definition: {item!r}")


def merge_errors(catalog: Mapping[str, ErrorEntry], items: Iterable[Any]) -> Mapping[str, ErrorEntry]:
    """New catalog with `items` added; a repeated code replaces the earlier entry."""
    merged = dict(catalog)
    for entry in _entries(items):
        merged[entry.code] = entry
    return MappingProxyType(merged)
