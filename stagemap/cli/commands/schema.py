"""Schema command for exporting the JSON Schema of the map file format."""

from pathlib import Path
from typing import Annotated

import typer

from stagemap.cli.utils import handle_cli_errors
from stagemap.loader import FileReader
from stagemap.schema import map_json_schema


@handle_cli_errors("Failed to write schema")
def schema_command(
    ctx: typer.Context,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file path (default: stdout)"),
    ] = None,
):
    """Print the JSON Schema of map files, or write it to a YAML/JSON file."""
    cli_ctx = ctx.obj
    schema = map_json_schema()

    if output is None:
        cli_ctx.print_json(schema)
        return

    if not output.suffix:
        output = output.with_suffix(".json")
    FileReader.write_file(output, schema)
    cli_ctx.printer.show_success(f"Schema written to {output}")
