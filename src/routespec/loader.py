from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Iterator, Mapping

from routespec.builder.route import RouteBuilder
from routespec.domain.contract import Contract
from routespec.domain.errors import ContractConfigError
from routespec.standard.operations import StandardOperations

logger = logging.getLogger(__name__)


def _module_from_file(path: Path) -> Any:
    name = f"_routespec_target_{path.stem}"
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ContractConfigError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


def load_target(target: str) -> Any:
    """
    Resolve `module:attr` or `path/to/file.py:attr` to a Python object.

    Without `:attr` the whole module is returned and every contract-like
    attribute in it is collected.
    """
    ref, _, attr = target.partition(":")
    if ref.endswith(".py") or Path(ref).is_file():
        path = Path(ref).expanduser().resolve()
        if not path.exists():
            raise ContractConfigError(f"File does not exist: {path}")
        module = _module_from_file(path)
    else:
        module = importlib.import_module(ref)
    logger.info("loaded %s", module.__name__)

    obj: Any = module
    for part in filter(None, attr.split(".")):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ContractConfigError(f"{target!r} has no attribute {part!r}") from exc
    return obj


def _walk(prefix: str, obj: Any, depth: int) -> Iterator[tuple[str, Contract]]:
    if isinstance(obj, Contract):
        yield prefix, obj
    elif isinstance(obj, RouteBuilder):
        yield prefix, obj.build()
    elif isinstance(obj, StandardOperations):
        yield from _walk(prefix, obj.crud(), depth)
    elif depth > 0 and isinstance(obj, Mapping):
        for key, value in obj.items():
            yield from _walk(f"{prefix}.{key}" if prefix else str(key), value, depth - 1)
    elif depth > 0 and isinstance(obj, (list, tuple)):
        for index, value in enumerate(obj):
            yield from _walk(f"{prefix}[{index}]", value, depth - 1)


def collect_contracts(obj: Any, name: str = "", max_depth: int = 4) -> list[tuple[str, Contract]]:
    """
    Build every contract reachable from `obj`.

    Accepts contracts, route builders, StandardOperations (its crud() set),
    nested dicts/lists of those, or a module whose public attributes are any
    of the above.
    """
    if isinstance(obj, ModuleType):
        found: list[tuple[str, Contract]] = []
        for key, value in vars(obj).items():
            if key.startswith("_"):
                continue
            found.extend(_walk(key, value, max_depth))
        return found
    return list(_walk(name, obj, max_depth))
