"""CLI commands module for stagemap."""

from stagemap.cli.commands.inspect import inspect_command
from stagemap.cli.commands.play import play_command
from stagemap.cli.commands.reachability import reachability_command
from stagemap.cli.commands.schema import schema_command

__all__ = [
    "inspect_command",
    "play_command",
    "reachability_command",
    "schema_command",
]
