"""Command-line interface for pickaxe code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pickaxe import __version__
from pickaxe.generator.classifier import is_unit
from pickaxe.generator.merge import MergeError
from pickaxe.generator.parser import SchemaError, load_dir
from pickaxe.generator.pipeline import TARGET_FILE, GeneratorConfig, generate

if TYPE_CHECKING:
    from pickaxe.generator.types import Schema

schema_dir_option = click.option(
    "--schema-dir",
    "-c",
    "schema_dir",
    default=".",
    envvar="PICKAXE_SCHEMA_DIR",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding protocol.json and mappings.json",
)


def _configure_logging(quiet: bool, verbose: bool) -> None:
    level = logging.WARNING if quiet else logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


@click.group()
@click.version_option(__version__, "--version", "-v", prog_name="Pickaxe")
def cli() -> None:
    """Pickaxe packet handler generator."""


@cli.command()
@schema_dir_option
@click.option(
    "--project-dir",
    "-o",
    "project_dir",
    default="..",
    envvar="PICKAXE_PROJECT_DIR",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Server project directory",
)
@click.option(
    "--target",
    "-t",
    default=str(TARGET_FILE),
    envvar="PICKAXE_TARGET",
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="File to merge generated code into, relative to the project directory",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Fail instead of warning when a handler body would move to another method",
)
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only report problems")
@click.option("--verbose", is_flag=True, default=False, help="Report every merged region")
def gen(
    schema_dir: Path, project_dir: Path, target: Path, strict: bool, quiet: bool, verbose: bool
) -> None:
    """Generate packet code into the server's packet handler."""
    _configure_logging(quiet, verbose)

    config = GeneratorConfig(
        schema_dir=schema_dir, project_dir=project_dir, target=target, strict=strict
    )
    try:
        generate(config)
    except (SchemaError, MergeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except FileNotFoundError as e:
        click.echo(f"Error: {e.filename} not found", err=True)
        sys.exit(1)


@cli.command()
@schema_dir_option
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(schema_dir: Path, output_json: bool) -> None:
    """Display the states and packets of a protocol schema."""
    _configure_logging(quiet=True, verbose=False)

    try:
        schema = load_dir(schema_dir)
    except SchemaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except FileNotFoundError as e:
        click.echo(f"Error: {e.filename} not found", err=True)
        sys.exit(1)

    if output_json:
        _output_json(schema)
    else:
        _output_plain(schema)


def _rows(schema: Schema) -> list[dict]:
    rows: list[dict] = []
    for state in schema.states:
        for direction, packets in (
            ("server_bound", state.server_bound or []),
            ("client_bound", state.client_bound or []),
        ):
            for packet in packets:
                rows.append(
                    {
                        "state": state.name,
                        "direction": direction,
                        "id": packet.id,
                        "name": packet.name,
                        "async": packet.is_async,
                        "unit": is_unit(packet),
                        "used_fields": len(packet.used_fields),
                        "fields": len(packet.fields),
                    }
                )
    return rows


def _output_json(schema: Schema) -> None:
    """Output schema info as JSON."""
    data = {
        "states": [state.name for state in schema.states],
        "packets": _rows(schema),
    }
    print(json.dumps(data, indent=2))


def _output_plain(schema: Schema) -> None:
    """Output schema info using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Packets[/bold cyan]")
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("State", style="white")
    table.add_column("Direction", style="dim")
    table.add_column("ID", style="green", justify="right")
    table.add_column("Name", style="white")
    table.add_column("Handling", style="yellow")
    table.add_column("Fields", justify="right")

    for row in _rows(schema):
        if row["direction"] == "client_bound":
            handling = ""
        else:
            handling = "async" if row["async"] else "sync"
        table.add_row(
            row["state"],
            row["direction"].replace("_", " "),
            f"{row['id']:#04x}",
            row["name"],
            handling,
            f"{row['used_fields']}/{row['fields']}",
        )

    console.print(table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
