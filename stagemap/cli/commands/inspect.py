"""Inspect command for displaying the structure of a map."""

from pathlib import Path
from typing import Annotated

import typer

from stagemap.cli.utils import handle_cli_errors


@handle_cli_errors("Failed to inspect map")
def inspect_command(
    ctx: typer.Context,
    source: Annotated[Path, typer.Argument(help="Map file (YAML or JSON)")],
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format")] = False,
):
    """Show stages, neighbors, restrictions and islands of a map."""
    cli_ctx = ctx.obj
    cli_ctx.set_json_mode(json_output)

    definition = cli_ctx.load_map_or_exit(source)
    session = cli_ctx.build_session(definition, seed=0)
    name = definition.get("name", "") or source.stem

    if json_output:
        cli_ctx.print_json(cli_ctx.printer.describe_map(session.engine, name))
        return

    cli_ctx.printer.print_map_overview(session.engine, name)
