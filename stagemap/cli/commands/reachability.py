"""Reachability command for listing the stages connected to a start stage."""

from pathlib import Path
from typing import Annotated

import typer

from stagemap.cli.utils import handle_cli_errors
from stagemap.stages import compute_reachable_set, resolve_neighbors


@handle_cli_errors("Failed to compute reachability")
def reachability_command(
    ctx: typer.Context,
    source: Annotated[Path, typer.Argument(help="Map file (YAML or JSON)")],
    start: Annotated[
        list[str],
        typer.Option("--from", "-f", help="Start stage id (repeat for several)"),
    ],
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format")] = False,
):
    """Print every stage reachable from the given start stages."""
    cli_ctx = ctx.obj
    cli_ctx.set_json_mode(json_output)

    definition = cli_ctx.load_map_or_exit(source)
    adjacency = resolve_neighbors(definition["elements"])

    unknown = [stage_id for stage_id in start if stage_id not in adjacency]
    if unknown:
        message = f"Unknown stage id(s): {', '.join(unknown)}"
        if json_output:
            cli_ctx.print_json({"error": message})
        else:
            cli_ctx.print_error(message)
        raise typer.Exit(code=1)

    reachable = compute_reachable_set(adjacency, start)
    all_ids = list(adjacency)

    if json_output:
        cli_ctx.print_json(
            {
                "from": start,
                "reachable": [stage_id for stage_id in all_ids if stage_id in reachable],
                "unreachable": [stage_id for stage_id in all_ids if stage_id not in reachable],
            }
        )
        return

    cli_ctx.printer.print_reachable(start, reachable, all_ids)
