from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from routespec.domain.errors import ContractConfigError
from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema


class SearchConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    fields: tuple[str, ...]
    min_query_length: int = 1
    max_query_length: Optional[int] = None
    allow_field_selection: bool = False


def search_schema(config: SearchConfig) -> ObjectSchema:
    if not config.fields:
        raise ContractConfigError("At least one searchable field must be provided")
    schema: dict[str, Schema] = {
        "q": s.string(
            min_length=config.min_query_length,
            max_length=config.max_query_length,
            description="Search query",
        ),
    }
    if config.allow_field_selection:
        schema["searchFields"] = s.array(s.enum(config.fields)).optional().describe(
            "Restrict the search to these fields"
        )
    return ObjectSchema(schema)
