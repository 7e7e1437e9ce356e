from __future__ import annotations

from typing import Any, Iterable, Optional

from routespec.builder.input import DetailedInput
from routespec.builder.output import DetailedOutput, SimpleOutput, UnionOutput
from routespec.domain.contract import Contract


def _input_dict(contract: Contract) -> dict[str, Any]:
    value = contract.input
    if isinstance(value, DetailedInput):
        return {
            "mode": "detailed",
            "params": value.params.json_schema(),
            "query": value.query.json_schema(),
            "body": value.body.json_schema(),
            "headers": value.headers.json_schema(),
        }
    return {"mode": "simple", "schema": value.json_schema()}


def _variant_dict(variant: DetailedOutput) -> dict[str, Any]:
    out: dict[str, Any] = {"status": variant.status}
    if variant.headers is not None:
        out["headers"] = variant.headers.json_schema()
    if variant.body is not None:
        out["body"] = variant.body.json_schema()
    return out


def _output_dict(contract: Contract) -> dict[str, Any]:
    value = contract.output
    if isinstance(value, SimpleOutput):
        return {"mode": "simple", "status": 200, "schema": value.value.json_schema()}
    if isinstance(value, DetailedOutput):
        return {"mode": "detailed", **_variant_dict(value)}
    if isinstance(value, UnionOutput):
        return {"mode": "union", "variants": [_variant_dict(v) for v in value.variants]}
    raise TypeError(f"Unknown output descriptor: {type(value).__name__}")


def describe_contract(contract: Contract, name: Optional[str] = None) -> dict[str, Any]:
    """JSON-serializable description of a built contract."""
    route = contract.route
    payload: dict[str, Any] = {
        "method": route.method,
        "path": route.path,
        "kind": contract.kind,
    }
    if name is not None:
        payload = {"name": name, **payload}
    for key in ("summary", "description", "deprecated"):
        value = getattr(route, key)
        if value is not None:
            payload[key] = value
    if route.tags:
        payload["tags"] = list(route.tags)

    payload["input"] = _input_dict(contract)
    payload["output"] = _output_dict(contract)
    if contract.errors:
        payload["errors"] = {
            code: {
                k: v
                for k, v in {
                    "message": entry.message,
                    "status": entry.status,
                    "data": entry.data.json_schema() if entry.data is not None else None,
                }.items()
                if v is not None
            }
            for code, entry in contract.errors.items()
        }
    return payload


def describe_contracts(items: Iterable[tuple[str, Contract]]) -> list[dict[str, Any]]:
    return [describe_contract(contract, name) for name, contract in items]
