"""Command-line utilities for the flow_jsonschema package."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from . import api, get_version
from .config import GeneratorConfig, load_config

app = typer.Typer(help="Generate JSON Schema validators from flow type exports")
console = Console()


def _resolve_config(config_path: Path | None, flow: str | None) -> GeneratorConfig:
    config = load_config(config_path) if config_path is not None else GeneratorConfig()
    if flow:
        config = config.model_copy(update={"flow_path": flow})
    return config


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", exists=True, readable=True, help="YAML/JSON generator settings."),
]
FlowOption = Annotated[str | None, typer.Option("--flow", help="Path to the flow binary.")]


@app.command()
def version() -> None:
    """Print the installed package version."""
    typer.echo(get_version())


@app.command()
def generate(
    paths: Annotated[
        list[Path] | None,
        typer.Argument(
            help="Flow-typed module (.js), then an optional destination "
            "(defaults to <input>_validator.py).",
            show_default=False,
        ),
    ] = None,
    config: ConfigOption = None,
    flow: FlowOption = None,
) -> None:
    """Write a validator module for every exported type of the input module."""
    if not paths or len(paths) > 2:
        typer.echo("Usage: flow-jsonschema generate <input path>")
        typer.echo("Usage: flow-jsonschema generate <input path> <output path>")
        raise typer.Exit(code=1)
    input_path, output_path = paths[0], (paths[1] if len(paths) == 2 else None)
    out = api.write_validator(input_path, output_path, config=_resolve_config(config, flow))
    console.print(f"[bold green]Validator written:[/] {out}")


@app.command()
def schema(
    input_path: Annotated[Path, typer.Argument(exists=True, readable=True)],
    out: Annotated[Path | None, typer.Option(help="Write the schema map here.")] = None,
    config: ConfigOption = None,
    flow: FlowOption = None,
) -> None:
    """Print (or write) the JSON Schema of every exported type."""
    registry = api.make_schema(input_path, config=_resolve_config(config, flow))
    text = api.dump_schemas(registry, out)
    if out is None:
        typer.echo(text)
        return
    table = Table(title=f"Types ({input_path})")
    table.add_column("Name")
    table.add_column("Defined in")
    table.add_column("Schema type")
    for entry in registry:
        table.add_row(entry.name, entry.source_path, str(entry.schema.get("type", "-")))
    console.print(table)
    console.print(f"[bold green]Schemas written:[/] {out}")


def main() -> None:
    """Entry point for `python -m flow_jsonschema.cli`."""
    app()


if __name__ == "__main__":
    main()
