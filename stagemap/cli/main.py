"""stagemap CLI - Typer-based command line interface."""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from stagemap.cli.commands import (
    inspect_command,
    play_command,
    reachability_command,
    schema_command,
)
from stagemap.cli.utils import CLIContext

app = typer.Typer(
    name="stagemap",
    help="stagemap: stage progression engine for game maps",
    no_args_is_help=True,
)
console = Console()
# Diagnostics go to stderr so JSON output stays parseable
error_console = Console(stderr=True)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose output")
    ] = False,
):
    """
    stagemap CLI callback - sets up context for all commands.

    Commands access the shared CLIContext via ctx.obj.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=error_console, show_path=False)],
        )

    ctx.obj = CLIContext(console=console, verbose=verbose)


app.command(name="inspect")(inspect_command)
app.command(name="reachability")(reachability_command)
app.command(name="play")(play_command)
app.command(name="schema")(schema_command)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
