import json
from pathlib import Path

import pytest

from routespec.builder.errors import error
from routespec.builder.output import OutputComposer
from routespec.builder.route import RouteBuilder
from routespec.domain.errors import ContractConfigError
from routespec.loader import collect_contracts, load_target
from routespec.render.describe import describe_contract, describe_contracts
from routespec.schema import factory as s
from routespec.standard.operations import StandardOperations


def test_describe_simple_contract():
    c = RouteBuilder("POST", "/users", summary="Create", tags=("users",)).input(s.obj(name=str)).build()
    d = describe_contract(c)
    assert d["method"] == "POST"
    assert d["path"] == "/users"
    assert d["kind"] == "mutation"
    assert d["summary"] == "Create"
    assert d["tags"] == ["users"]
    assert "name" not in d
    assert "errors" not in d
    assert d["input"]["mode"] == "simple"
    assert d["input"]["schema"]["required"] == ["name"]
    assert d["output"] == {"mode": "simple", "status": 200, "schema": {"type": "null"}}


def test_describe_detailed_input_and_union_output():
    c = (
        RouteBuilder("POST")
        .input_builder.params(lambda p: f"/jobs/{p('id')}")
        .output_builder.union([OutputComposer().status(202, s.obj(id=str)), OutputComposer().status(409)])
        .errors(error("CONFLICT", status=409, data={"holder": str}))
        .build()
    )
    d = describe_contract(c, "jobs")
    assert d["name"] == "jobs"
    assert d["input"]["mode"] == "detailed"
    assert d["input"]["params"]["required"] == ["id"]
    assert d["output"]["mode"] == "union"
    assert [v["status"] for v in d["output"]["variants"]] == [202, 409]
    assert "body" not in d["output"]["variants"][1]
    assert d["errors"]["CONFLICT"]["status"] == 409
    assert "message" not in d["errors"]["CONFLICT"]
    assert d["errors"]["CONFLICT"]["data"]["required"] == ["holder"]
    json.dumps(d)


def test_describe_contracts_keeps_names():
    items = [("a", RouteBuilder.health().build()), ("b", RouteBuilder.live().build())]
    assert [d["name"] for d in describe_contracts(items)] == ["a", "b"]


def test_collect_contracts_walks_nested_containers():
    ops = StandardOperations(s.obj(id=int, name=str), "tag")
    tree = {
        "health": RouteBuilder.health(),
        "built": RouteBuilder.live().build(),
        "tags": ops,
        "misc": [RouteBuilder.version(), "not a route"],
    }
    names = [name for name, _ in collect_contracts(tree)]
    assert names[:2] == ["health", "built"]
    assert "tags.read" in names
    assert "tags.list" in names
    assert "misc[0]" in names
    assert len(names) == 2 + 6 + 1


def test_collect_contracts_single_builder_uses_given_name():
    found = collect_contracts(RouteBuilder.health(), name="ping")
    assert [name for name, _ in found] == ["ping"]


def test_load_target_from_file(tmp_path: Path):
    path = tmp_path / "routes_for_loader.py"
    path.write_text(
        "from routespec.builder.route import RouteBuilder\n"
        "group = {'health': RouteBuilder.health()}\n",
        encoding="utf-8",
    )
    module = load_target(str(path))
    assert [n for n, _ in collect_contracts(module)] == ["group.health"]

    group = load_target(f"{path}:group")
    assert list(group) == ["health"]

    with pytest.raises(ContractConfigError, match="no attribute"):
        load_target(f"{path}:missing")


def test_load_target_from_module():
    ops_cls = load_target("routespec.standard.operations:StandardOperations")
    assert ops_cls is StandardOperations
