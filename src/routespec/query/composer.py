from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from routespec.query.filtering import FilteringConfig, filtering_schema
from routespec.query.pagination import PaginationConfig, pagination_schema
from routespec.query.search import SearchConfig, search_schema
from routespec.query.sorting import SortingConfig, sorting_schema
from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema, as_schema


@dataclass(frozen=True)
class QueryComposer:
    """
    Combines pagination, sorting, filtering and search into one query schema.

    Input fields from every configured part are merged into a single flat
    object (later parts win on key clashes). The output wraps items as
    `{items: [...], meta: {...}}`, where meta only carries the fields the
    configured parts can report.
    """

    pagination: Optional[PaginationConfig] = None
    sorting: Optional[SortingConfig] = None
    filtering: Optional[FilteringConfig] = None
    search: Optional[SearchConfig] = None
    custom_fields: Optional[Mapping[str, Schema]] = None

    def with_pagination(self, config: Optional[PaginationConfig] = None, **options: Any) -> "QueryComposer":
        return replace(self, pagination=config or PaginationConfig(**options))

    def with_sorting(self, config: Optional[SortingConfig] = None, **options: Any) -> "QueryComposer":
        return replace(self, sorting=config or SortingConfig(**options))

    def with_filtering(self, config: Optional[FilteringConfig] = None, **options: Any) -> "QueryComposer":
        return replace(self, filtering=config or FilteringConfig(**options))

    def with_search(self, config: Optional[SearchConfig] = None, **options: Any) -> "QueryComposer":
        return replace(self, search=config or SearchConfig(**options))

    def with_custom_fields(self, fields: Mapping[str, Any]) -> "QueryComposer":
        merged = {**(self.custom_fields or {}), **{k: as_schema(v) for k, v in fields.items()}}
        return replace(self, custom_fields=merged)

    def input_schema(self) -> ObjectSchema:
        parts: list[ObjectSchema] = []
        if self.pagination is not None:
            parts.append(pagination_schema(self.pagination))
        if self.sorting is not None:
            parts.append(sorting_schema(self.sorting))
        if self.filtering is not None:
            parts.append(filtering_schema(self.filtering))
        if self.search is not None:
            parts.append(search_schema(self.search))
        if self.custom_fields:
            parts.append(ObjectSchema(self.custom_fields))

        merged = ObjectSchema({})
        for part in parts:
            merged = merged.merge(part)
        return merged

    def meta_schema(self) -> ObjectSchema:
        fields: dict[str, Schema] = {}
        if self.pagination is not None:
            p = self.pagination
            fields.update(
                total=s.integer(ge=0, description="Total number of items"),
                limit=s.integer(ge=1, description="Items per page"),
                hasMore=s.boolean(description="Whether there are more items"),
                offset=_flagged(s.integer(ge=0, description="Current offset"), p.include_offset),
                page=_flagged(s.integer(ge=1, description="Current page number"), p.include_page),
                totalPages=_flagged(s.integer(ge=0, description="Total number of pages"), p.include_page),
                nextCursor=_flagged(s.string(description="Cursor for next page").nullable(), p.include_cursor),
                prevCursor=_flagged(s.string(description="Cursor for previous page").nullable(), p.include_cursor),
            )
        else:
            fields["total"] = s.integer(ge=0, description="Total number of items").optional()

        if self.sorting is not None:
            fields["sortBy"] = s.string(description="Field used for sorting").optional()
            fields["sortDirection"] = s.enum(["asc", "desc"], description="Sort direction applied").optional()
        if self.filtering is not None:
            fields["appliedFilters"] = s.record(description="Filters applied to the query").optional()
            fields["filterCount"] = s.integer(ge=0, description="Number of filters applied").optional()
        if self.search is not None:
            fields["searchQuery"] = s.string(description="Search query applied").optional()
            fields["searchFields"] = s.array(s.string(), description="Fields searched").optional()
        return ObjectSchema(fields)

    def output_schema(self, item: Any) -> ObjectSchema:
        return ObjectSchema({"items": s.array(as_schema(item)), "meta": self.meta_schema()})


def _flagged(schema: Schema, included: bool) -> Schema:
    return schema if included else schema.optional()


def query() -> QueryComposer:
    return QueryComposer()
