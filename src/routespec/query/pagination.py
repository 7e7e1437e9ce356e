from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema


class PaginationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_limit: int = 10
    max_limit: int = 100
    min_limit: int = 1
    include_offset: bool = True
    include_cursor: bool = False
    include_page: bool = False

    @model_validator(mode="after")
    def _limits_in_order(self) -> "PaginationConfig":
        if not 1 <= self.min_limit <= self.default_limit <= self.max_limit:
            raise ValueError("expected 1 <= min_limit <= default_limit <= max_limit")
        return self


OFFSET = PaginationConfig(include_offset=True)
PAGE = PaginationConfig(include_offset=False, include_page=True)
CURSOR = PaginationConfig(include_offset=False, include_cursor=True)
FULL = PaginationConfig(include_offset=True, include_cursor=True, include_page=True)


def pagination_schema(config: Optional[PaginationConfig] = None) -> ObjectSchema:
    """Query params for a paginated request; every field has a default or is optional."""
    config = config or PaginationConfig()
    fields: dict[str, Schema] = {
        "limit": s.integer(
            ge=config.min_limit,
            le=config.max_limit,
            description=f"Number of items per page ({config.min_limit}-{config.max_limit})",
        ).default(config.default_limit),
    }
    if config.include_offset:
        fields["offset"] = s.integer(ge=0, description="Number of items to skip").default(0)
    if config.include_page:
        fields["page"] = s.integer(ge=1, description="Page number (1-indexed)").default(1)
    if config.include_cursor:
        fields["cursor"] = s.string(description="Cursor for cursor-based pagination").optional()
        fields["cursorDirection"] = (
            s.enum(["forward", "backward"], description="Direction for cursor pagination").default("forward")
        )
    return ObjectSchema(fields)


def pagination_meta_schema(config: Optional[PaginationConfig] = None) -> ObjectSchema:
    config = config or PaginationConfig()
    fields: dict[str, Schema] = {
        "total": s.integer(ge=0, description="Total number of items"),
        "limit": s.integer(ge=1, description="Items per page"),
        "hasMore": s.boolean(description="Whether there are more items"),
    }
    if config.include_offset:
        fields["offset"] = s.integer(ge=0, description="Current offset")
    if config.include_page:
        fields["page"] = s.integer(ge=1, description="Current page number")
        fields["totalPages"] = s.integer(ge=0, description="Total number of pages")
    if config.include_cursor:
        fields["nextCursor"] = s.string(description="Cursor for next page").nullable()
        fields["prevCursor"] = s.string(description="Cursor for previous page").nullable()
    return ObjectSchema(fields)


def paginated_response_schema(item: Schema, config: Optional[PaginationConfig] = None) -> ObjectSchema:
    return ObjectSchema({"items": s.array(item), "meta": pagination_meta_schema(config)})
