from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from routespec.schema.nodes import as_schema

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

QUERY_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class RouteMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: HttpMethod = "GET"
    path: str = "/"  # may contain {name} placeholders
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    deprecated: Optional[bool] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class ErrorEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: Optional[str] = None
    status: Optional[int] = None
    data: Any = None  # Schema or None

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> Any:
        return None if value is None else as_schema(value)
