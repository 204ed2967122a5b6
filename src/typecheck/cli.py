"""typecheck CLI - check data files against declared types."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from typecheck import __version__
from typecheck.api import conforms
from typecheck.cli_utils import (
    EXIT_USER_ERROR,
    ensure_file,
    error,
    json_option,
    width_option,
    wire_config,
)
from typecheck.exceptions import (
    LoaderError,
    TypeCheckError,
    TypeExpansionError,
    UnresolvedReferenceError,
)
from typecheck.inspector import (
    InspectOptions,
    render_checker,
    render_definition,
    render_problem,
    render_value,
    summarize_problem,
)
from typecheck.loader import checker_from_data, load_registry
from typecheck.registry import TypeRegistry
from typecheck.result import Success
from typecheck.types import Checker

app = typer.Typer(
    name="typecheck",
    help="Runtime type checking - check values against declared types.",
    add_completion=False,
)

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _load_types(path: Path) -> TypeRegistry:
    ensure_file(path, "Types file")
    try:
        return load_registry(path)
    except LoaderError as e:
        error(str(e))


def _parse_yaml(text: str, what: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        error(f"Invalid {what}: {e}")


def _parse_checker(text: str, registry: TypeRegistry) -> Checker:
    """Parse TYPE: a type name from the types file or an inline YAML checker."""
    try:
        node = checker_from_data(_parse_yaml(text, "type"))
        registry.verify(node)
    except (LoaderError, UnresolvedReferenceError) as e:
        error(str(e))
    return node


def _json_default(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return repr(value)


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"typecheck version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Runtime type checking - check values against declared types."""


# -----------------------------------------------------------------------------
# Check Command
# -----------------------------------------------------------------------------


@app.command()
def check(
    types: Path = typer.Argument(..., help="YAML file with type definitions."),
    type_expr: str = typer.Argument(
        ..., metavar="TYPE", help="Type name or inline YAML checker, e.g. '{list: integer}'."
    ),
    value: str = typer.Argument(..., help="Value to check, as YAML (e.g. '[1, 2, 3]')."),
    width: int | None = width_option(),
    json_output: bool = json_option(),
) -> None:
    """Check a value against a type.

    Exits with code 1 if the value does not conform.
    """
    config = wire_config(width=width)
    options = InspectOptions.from_config(config)
    registry = _load_types(types)
    node = _parse_checker(type_expr, registry)
    data = _parse_yaml(value, "value")

    try:
        result = conforms(data, node, registry)
    except TypeCheckError as e:
        error(str(e))

    if isinstance(result, Success):
        if json_output:
            payload = {"conforms": True, "bindings": result.as_dict()}
            console.print_json(json.dumps(payload, default=_json_default))
        else:
            console.print(
                f"[green]OK:[/green] {escape(render_value(data, options))} conforms to "
                f"`{escape(render_checker(node, options))}`",
                highlight=False,
            )
        return

    problem = result.problem
    if json_output:
        payload = {
            "conforms": False,
            "reason": problem.leaf.reason,
            "summary": summarize_problem(problem, options),
            "details": render_problem(problem, options),
        }
        console.print_json(json.dumps(payload, default=_json_default))
    else:
        err_console.print(
            f"[red]FAIL:[/red] {escape(render_value(data, options))} does not conform to "
            f"`{escape(render_checker(node, options))}`",
            highlight=False,
        )
        err_console.print(render_problem(problem, options), markup=False, highlight=False)
    raise typer.Exit(code=EXIT_USER_ERROR)


# -----------------------------------------------------------------------------
# Show Command
# -----------------------------------------------------------------------------


@app.command()
def show(
    types: Path = typer.Argument(..., help="YAML file with type definitions."),
    type_expr: str = typer.Argument(..., metavar="TYPE", help="Type name or inline YAML checker."),
    expand: bool = typer.Option(
        False,
        "--expand",
        "-e",
        help="Inline every referenced type.",
    ),
    width: int | None = width_option(),
) -> None:
    """Pretty-print a type."""
    config = wire_config(width=width)
    options = InspectOptions.from_config(config)
    registry = _load_types(types)

    definition = registry.get(type_expr)
    if definition is not None and not expand:
        console.print(render_definition(definition, options), markup=False, highlight=False)
        return

    node = _parse_checker(type_expr, registry)
    if expand:
        try:
            node = registry.expand(node, max_depth=config.max_expansion_depth)
        except TypeExpansionError as e:
            error(str(e))

    console.print(render_checker(node, options), markup=False, highlight=False)


# -----------------------------------------------------------------------------
# List Command
# -----------------------------------------------------------------------------


@app.command("list")
def list_types(
    types: Path = typer.Argument(..., help="YAML file with type definitions."),
    json_output: bool = json_option(),
) -> None:
    """List the types defined in a types file."""
    registry = _load_types(types)
    definitions = registry.definitions()

    if json_output:
        payload = [
            {"name": d.name, "params": list(d.params), "visibility": d.visibility}
            for d in definitions
        ]
        console.print_json(json.dumps(payload))
        return

    if not definitions:
        console.print("No types defined.")
        return

    table = Table(title=f"Types in {types}")
    table.add_column("Name", style="cyan")
    table.add_column("Arity", justify="right")
    table.add_column("Visibility")
    for definition in definitions:
        table.add_row(definition.head, str(definition.arity), definition.visibility)
    console.print(table)


if __name__ == "__main__":
    app()
