from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from routespec.domain.errors import ContractConfigError
from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema

SortDirection = Literal["asc", "desc"]


class SortingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    fields: tuple[str, ...]
    default_field: Optional[str] = None
    default_direction: SortDirection = "asc"
    allow_multiple: bool = False
    allow_nulls_handling: bool = False


def sorting_schema(config: SortingConfig) -> ObjectSchema:
    if not config.fields:
        raise ContractConfigError("At least one sortable field must be provided")
    if config.default_field is not None and config.default_field not in config.fields:
        raise ContractConfigError(f"Default sort field {config.default_field!r} is not sortable")

    direction = s.enum(["asc", "desc"]).default(config.default_direction)
    sort_field = s.enum(config.fields)

    sort_by: Schema
    if config.allow_multiple:
        criteria = s.array(s.obj(field=sort_field, direction=direction), min_items=1)
        if config.default_field is not None:
            sort_by = criteria.default([{"field": config.default_field, "direction": config.default_direction}])
        else:
            sort_by = criteria.optional()
        fields: dict[str, Schema] = {"sortBy": sort_by.describe("Array of sort criteria")}
    else:
        if config.default_field is not None:
            sort_by = sort_field.default(config.default_field)
        else:
            sort_by = sort_field.optional()
        fields = {
            "sortBy": sort_by.describe("Field to sort by"),
            "sortDirection": direction.describe("Sort direction"),
        }

    if config.allow_nulls_handling:
        fields["nullsHandling"] = (
            s.enum(["first", "last"]).optional().describe("How to handle null values in sorting")
        )
    return ObjectSchema(fields)


def simple_sort_schema(fields: tuple[str, ...] | list[str], default_field: Optional[str] = None) -> ObjectSchema:
    return sorting_schema(SortingConfig(fields=tuple(fields), default_field=default_field))
