from __future__ import annotations

from typing import Any, Iterable, Optional

from routespec.builder.route import RouteBuilder
from routespec.domain.errors import ContractConfigError
from routespec.query.composer import QueryComposer
from routespec.query.filtering import FilteringConfig
from routespec.query.pagination import PaginationConfig
from routespec.query.search import SearchConfig
from routespec.query.sorting import SortingConfig
from routespec.schema import factory as s
from routespec.schema.nodes import ObjectSchema, Schema, as_schema

DEFAULT_MAX_BATCH = 100


class StandardOperations:
    """
    Factory of conventional CRUD-style route builders for one entity.

    Every method returns a RouteBuilder (not a built contract) so callers can
    keep adjusting metadata, errors or schemas before build().
    """

    def __init__(
        self,
        entity_schema: Any,
        entity_name: str,
        id_field: str = "id",
        id_schema: Any = None,
        timestamps: bool = True,
        soft_delete: bool = False,
    ) -> None:
        entity = as_schema(entity_schema)
        if not isinstance(entity, ObjectSchema):
            raise ContractConfigError("StandardOperations needs an object entity schema")
        if not entity_name:
            raise ContractConfigError("entity_name is required")

        self.entity = entity
        self.entity_name = entity_name
        self.id_field = id_field
        self.id_schema: Schema = as_schema(id_schema) if id_schema is not None else entity.shape.get(id_field, s.string())
        self.timestamps = timestamps
        self.soft_delete = soft_delete

    def __repr__(self) -> str:
        return f"StandardOperations({self.entity_name!r})"

    # helpers

    def _builder(self, method: str, summary: str, description: str, path: Optional[str] = None) -> RouteBuilder:
        return RouteBuilder(
            method,
            path,
            summary=summary,
            description=description,
            tags=(self.entity_name,),
            entity=self.entity,
        )

    def _system_fields(self, include_id: bool = True) -> list[str]:
        keys = [self.id_field] if include_id else []
        if self.timestamps:
            keys += ["createdAt", "updatedAt"]
        if self.soft_delete:
            keys.append("deletedAt")
        return keys

    def _without(self, keys: Iterable[str]) -> ObjectSchema:
        # Keys absent from the entity are skipped rather than rejected.
        present = [k for k in dict.fromkeys(keys) if k in self.entity.shape]
        return self.entity.omit(*present)

    def _id_template(self, suffix: str = "", id_field: Optional[str] = None, id_schema: Any = None):
        name = id_field or self.id_field
        schema = as_schema(id_schema) if id_schema is not None else self.id_schema
        return lambda p: f"/{p(name, schema)}{suffix}"

    # single-entity operations

    def read(self, id_field: Optional[str] = None, id_schema: Any = None) -> RouteBuilder:
        name = id_field or self.id_field
        return (
            self._builder("GET", f"Get {self.entity_name} by {name}", f"Retrieve a {self.entity_name} by its {name}")
            .input_builder.params(self._id_template("", id_field, id_schema))
            .output(self.entity)
        )

    def create(self, omit_fields: Iterable[str] = (), body: Any = None) -> RouteBuilder:
        body_schema = as_schema(body) if body is not None else self._without([*self._system_fields(), *omit_fields])
        return (
            self._builder("POST", f"Create a new {self.entity_name}", f"Create a new {self.entity_name} in the system", "/")
            .input_builder.body(body_schema)
            .output_builder.status(201, self.entity)
        )

    def update(self, omit_fields: Iterable[str] = (), body: Any = None, id_field: Optional[str] = None, id_schema: Any = None) -> RouteBuilder:
        omit_fields = list(omit_fields)
        if body is not None:
            body_schema = as_schema(body)
        elif omit_fields:
            body_schema = self._without([*self._system_fields(include_id=False), *omit_fields])
        else:
            body_schema = self.entity
        return (
            self._builder("PUT", f"Update an existing {self.entity_name}", f"Update an existing {self.entity_name} in the system")
            .configure_input(lambda c: c.params(self._id_template("", id_field, id_schema)).body(body_schema))
            .output(self.entity)
        )

    def patch(self, omit_fields: Iterable[str] = (), body: Any = None, id_field: Optional[str] = None, id_schema: Any = None) -> RouteBuilder:
        if body is not None:
            body_schema = as_schema(body)
        else:
            body_schema = self._without([*self._system_fields(), *omit_fields]).partial()
        return (
            self._builder("PATCH", f"Partially update {self.entity_name}", f"Update specific fields of {self.entity_name}")
            .configure_input(lambda c: c.params(self._id_template("", id_field, id_schema)).body(body_schema))
            .output(self.entity)
        )

    def delete(self, id_field: Optional[str] = None, id_schema: Any = None) -> RouteBuilder:
        name = id_field or self.id_field
        return (
            self._builder("DELETE", f"Delete {self.entity_name}", f"Delete a {self.entity_name} by {name}")
            .input_builder.params(self._id_template("", id_field, id_schema))
            .output(s.obj(success=s.boolean(), message=s.string().optional()))
        )

    def soft_delete_one(self, path_suffix: str = "/soft") -> RouteBuilder:
        return (
            self._builder(
                "DELETE",
                f"Soft delete {self.entity_name}",
                f"Mark {self.entity_name} as deleted without removing from database",
            )
            .input_builder.params(self._id_template(path_suffix))
            .output(s.obj(success=s.boolean(), message=s.string().optional()))
        )

    # collection operations

    def list(
        self,
        pagination: Optional[PaginationConfig] = None,
        sorting: Optional[SortingConfig] = None,
        filtering: Optional[FilteringConfig] = None,
        search: Optional[SearchConfig] = None,
    ) -> RouteBuilder:
        builder = self._builder("GET", f"List {self.entity_name}s", f"Retrieve a list of {self.entity_name}s", "/")
        if pagination is None and sorting is None and filtering is None and search is None:
            return builder.output(s.obj(items=s.array(self.entity)))

        composer = QueryComposer(pagination, sorting, filtering, search)
        return (
            builder.description(
                f"Retrieve a paginated list of {self.entity_name}s with optional filtering and sorting"
            )
            .input_builder.query(composer.input_schema())
            .output(composer.output_schema(self.entity))
        )

    def count(self) -> RouteBuilder:
        return (
            self._builder("GET", f"Count {self.entity_name}s", f"Get the total count of {self.entity_name}s", "/count")
            .input_builder.query(s.obj(filter=s.any_().optional()))
            .output(s.obj(count=s.integer(ge=0)))
        )

    def search(
        self,
        search_fields: Iterable[str] = (),
        pagination: Optional[PaginationConfig] = None,
    ) -> RouteBuilder:
        composer = QueryComposer().with_pagination(pagination or PaginationConfig(default_limit=20, max_limit=100))
        search_fields = tuple(search_fields)
        if search_fields:
            composer = composer.with_search(fields=search_fields, min_query_length=1, allow_field_selection=True)
        return (
            self._builder(
                "GET",
                f"Search {self.entity_name}s",
                f"Full-text search for {self.entity_name}s with pagination",
                "/search",
            )
            .input_builder.query(composer.input_schema())
            .output(composer.output_schema(self.entity))
        )

    def check(self, field_name: str, field_schema: Any = None) -> RouteBuilder:
        if field_schema is not None:
            schema = as_schema(field_schema)
        else:
            schema = self.entity.shape.get(field_name, s.string())
        return (
            self._builder(
                "GET",
                f"Check {self.entity_name} {field_name}",
                f"Check if a {self.entity_name} exists with the given {field_name}",
                f"/check/{field_name}",
            )
            .input_builder.query(ObjectSchema({field_name: schema}))
            .output(s.obj(exists=s.boolean()))
        )

    def exists(self, id_field: Optional[str] = None, id_schema: Any = None) -> RouteBuilder:
        name = id_field or self.id_field
        return (
            self._builder("GET", f"Check if {self.entity_name} exists", f"Check if a {self.entity_name} exists by {name}")
            .input_builder.params(self._id_template("/exists", id_field, id_schema))
            .output(s.obj(exists=s.boolean()))
        )

    def upsert(self, unique_field: Optional[str] = None, path: str = "/upsert") -> RouteBuilder:
        unique = unique_field or self.id_field
        return (
            self._builder("PUT", f"Upsert {self.entity_name}", f"Create or update {self.entity_name} by {unique}", path)
            .input_builder.body(self.entity)
            .output(s.obj(item=self.entity, created=s.boolean()))
        )

    def validate(self, omit_fields: Iterable[str] = (), body: Any = None) -> RouteBuilder:
        omit_fields = list(omit_fields)
        if body is not None:
            body_schema = as_schema(body)
        elif omit_fields:
            body_schema = self._without([*self._system_fields(), *omit_fields])
        else:
            body_schema = self.entity
        issue = s.obj(field=s.string(), message=s.string())
        return (
            self._builder(
                "POST",
                f"Validate {self.entity_name}",
                f"Validate {self.entity_name} data without persisting",
                "/validate",
            )
            .input_builder.body(body_schema)
            .output(s.obj(valid=s.boolean(), errors=s.array(issue).optional()))
        )

    # batch operations

    def _ids(self, max_batch_size: int) -> ObjectSchema:
        return s.obj(ids=s.array(self.id_schema, min_items=1, max_items=max_batch_size))

    def batch_create(
        self,
        max_batch_size: int = DEFAULT_MAX_BATCH,
        item: Any = None,
        omit_fields: Iterable[str] = (),
    ) -> RouteBuilder:
        item_schema = as_schema(item) if item is not None else self._without([*self._system_fields(), *omit_fields])
        failure = s.obj(index=s.integer(ge=0), error=s.string())
        return (
            self._builder(
                "POST",
                f"Batch create {self.entity_name}s",
                f"Create multiple {self.entity_name}s in a single request",
                "/batch",
            )
            .input_builder.body(s.obj(items=s.array(item_schema, min_items=1, max_items=max_batch_size)))
            .output(s.obj(created=s.array(self.entity), failed=s.array(failure)))
        )

    def batch_read(self, max_batch_size: int = DEFAULT_MAX_BATCH) -> RouteBuilder:
        return (
            self._builder(
                "POST",
                f"Batch read {self.entity_name}s",
                f"Get multiple {self.entity_name}s by their IDs in a single request",
                "/batch/read",
            )
            .input_builder.body(self._ids(max_batch_size))
            .output(s.obj(items=s.array(self.entity), notFound=s.array(s.string()).optional()))
        )

    def batch_update(self, max_batch_size: int = DEFAULT_MAX_BATCH) -> RouteBuilder:
        failure = s.obj(id=s.string(), error=s.string())
        return (
            self._builder(
                "PATCH",
                f"Batch update {self.entity_name}s",
                f"Update multiple {self.entity_name}s in a single request",
                "/batch",
            )
            .input_builder.body(s.obj(items=s.array(self.entity, min_items=1, max_items=max_batch_size)))
            .output(s.obj(items=s.array(self.entity), errors=s.array(failure).optional()))
        )

    def batch_upsert(self, max_batch_size: int = DEFAULT_MAX_BATCH, unique_field: Optional[str] = None) -> RouteBuilder:
        unique = unique_field or self.id_field
        failure = s.obj(index=s.integer(ge=0), error=s.string())
        return (
            self._builder(
                "PUT",
                f"Batch upsert {self.entity_name}s",
                f"Create or update multiple {self.entity_name}s by {unique}",
                "/batch/upsert",
            )
            .input_builder.body(s.obj(items=s.array(self.entity, min_items=1, max_items=max_batch_size)))
            .output(
                s.obj(
                    created=s.array(self.entity),
                    updated=s.array(self.entity),
                    errors=s.array(failure).optional(),
                )
            )
        )

    def batch_delete(self, max_batch_size: int = DEFAULT_MAX_BATCH) -> RouteBuilder:
        return (
            self._builder(
                "DELETE",
                f"Batch delete {self.entity_name}s",
                f"Delete multiple {self.entity_name}s by IDs",
                "/batch",
            )
            .input_builder.body(self._ids(max_batch_size))
            .output(s.obj(deleted=s.integer(ge=0), failed=s.array(s.string()).optional()))
        )

    def crud(self) -> dict[str, RouteBuilder]:
        return {
            "read": self.read(),
            "create": self.create(),
            "update": self.update(),
            "patch": self.patch(),
            "delete": self.delete(),
            "list": self.list(),
        }
