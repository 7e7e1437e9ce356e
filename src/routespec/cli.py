from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from routespec.domain.contract import Contract
from routespec.domain.errors import ContractConfigError
from routespec.loader import collect_contracts, load_target
from routespec.render.describe import describe_contract, describe_contracts

app = typer.Typer(no_args_is_help=True, add_completion=False)

contracts_app = typer.Typer(no_args_is_help=True)
app.add_typer(contracts_app, name="contracts")

console = Console()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log builder and loader activity"),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _load(target: str) -> list[tuple[str, Contract]]:
    try:
        found = collect_contracts(load_target(target), name=target.partition(":")[2])
    except (ContractConfigError, ImportError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    if not found:
        raise typer.BadParameter(f"No contracts found in {target}")
    return found


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


@contracts_app.command("list")
def contracts_list(
    target: str = typer.Argument(..., help="module:attr or path/to/file.py:attr"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/...)"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on route path"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    found = _load(target)
    if method:
        found = [(n, c) for n, c in found if c.route.method == method.upper()]
    if path_contains:
        found = [(n, c) for n, c in found if path_contains in c.route.path]

    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")
    if fmt == "json":
        typer.echo(_dump(describe_contracts(found)))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("KIND", no_wrap=True)
    table.add_column("OUTPUT", no_wrap=True)
    table.add_column("ERRORS")
    table.add_column("SUMMARY")

    for name, c in found:
        table.add_row(
            name,
            c.route.method,
            c.route.path,
            c.kind,
            type(c.output).__name__.replace("Output", "").lower(),
            ", ".join(c.errors),
            c.route.summary or "",
        )

    console.print(f"[bold]Contracts:[/bold] {len(found)}")
    console.print(table)


@contracts_app.command("export")
def contracts_export(
    target: str = typer.Argument(..., help="module:attr or path/to/file.py:attr"),
    out: Optional[str] = typer.Option(None, help="Output path (default: print to stdout)"),
) -> None:
    found = _load(target)
    text = _dump(describe_contracts(found))

    if out:
        out_path = Path(out).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        console.print(f"[bold green]Wrote[/bold green] {len(found)} contracts to: {out_path}")
    else:
        typer.echo(text)


@app.command()
def schema(
    target: str = typer.Argument(..., help="module:attr or path/to/file.py:attr"),
    name: Optional[str] = typer.Option(None, help="Contract name when the target holds several"),
    part: str = typer.Option("output", help="Which schema to print: input|output"),
) -> None:
    found = _load(target)
    if name is not None:
        found = [(n, c) for n, c in found if n == name]
        if not found:
            raise typer.BadParameter(f"No contract named {name!r}")
    if len(found) > 1:
        names = ", ".join(n for n, _ in found)
        raise typer.BadParameter(f"Several contracts found, pick one with --name: {names}")

    contract = found[0][1]
    if part == "input":
        typer.echo(_dump(contract.input_schema.json_schema()))
    elif part == "output":
        typer.echo(_dump(contract.output_schema.json_schema()))
    else:
        raise typer.BadParameter("part must be one of: input, output")


@app.command()
def describe(
    target: str = typer.Argument(..., help="module:attr or path/to/file.py:attr"),
) -> None:
    for name, contract in _load(target):
        typer.echo(_dump(describe_contract(contract, name)))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
