from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from routespec.domain.errors import ContractConfigError
from routespec.schema.nodes import Schema, TypeSchema, as_schema

_PLACEHOLDER_RE = re.compile(r"\{([^{}/]+)\}")


def placeholders(path: str) -> list[str]:
    """Names of `{name}` placeholders in a path, in order of appearance."""
    return _PLACEHOLDER_RE.findall(path)


@dataclass(frozen=True)
class PathParam:
    name: str
    schema: Schema

    def __str__(self) -> str:
        return "{" + self.name + "}"


class PathParamBuilder:
    """
    Handed to path template callbacks.

    `p("orgId", uuid())` declares a param and renders as `{orgId}`, so the
    callback can build the path with an f-string:

        lambda p: f"/orgs/{p('orgId', uuid())}/users/{p('userId')}"

    `p.orgId` / `p["orgId"]` reference a param declared earlier (for instance
    by a previous `params()` call) without redeclaring it. Any public
    attribute name resolves to a param, `p.path` included.
    """

    def __init__(self, existing: Optional[Mapping[str, Schema]] = None) -> None:
        self._existing = dict(existing or {})
        self._declared: dict[str, Schema] = {}

    def __call__(self, name: str, schema: Any = None) -> PathParam:
        if not name or "/" in name or "{" in name or "}" in name:
            raise ContractConfigError(f"Invalid path param name: {name!r}")
        resolved = TypeSchema(str) if schema is None else as_schema(schema)
        self._declared[name] = resolved
        return PathParam(name, resolved)

    def _ref(self, name: str) -> PathParam:
        if name in self._declared:
            return PathParam(name, self._declared[name])
        if name in self._existing:
            return PathParam(name, self._existing[name])
        raise ContractConfigError(f"Path param '{name}' is referenced before it is declared")

    def __getattr__(self, name: str) -> PathParam:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._ref(name)

    def __getitem__(self, name: str) -> PathParam:
        return self._ref(name)

    def _knows(self, name: str) -> bool:
        return name in self._declared or name in self._existing


def join_path(*segments: Any) -> str:
    """Concatenate static segments and PathParams into a path."""
    return "".join(str(s) for s in segments)


PathTemplateFn = Callable[[PathParamBuilder], Any]


def render_template(fn: PathTemplateFn, existing: Optional[Mapping[str, Schema]] = None) -> tuple[str, dict[str, Schema]]:
    """Run a template callback; returns the rendered path and the params it declared."""
    p = PathParamBuilder(existing)
    result = fn(p)
    if isinstance(result, PathParam):
        result = str(result)
    if not isinstance(result, str):
        raise ContractConfigError("Path template must return a string")

    # Params referenced via p.name that only exist upstream are not redeclared.
    unknown = [n for n in placeholders(result) if not p._knows(n)]
    if unknown:
        raise ContractConfigError(f"Path template uses undeclared param(s): {', '.join(unknown)}")
    return result, p._declared
