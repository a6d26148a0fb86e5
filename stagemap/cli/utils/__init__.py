"""CLI utilities package.

This package provides utilities for CLI commands including:
- CLIContext: Context management for commands
- CliPrinter: Tables and JSON output
- Decorators: Error handling decorators
"""

from stagemap.cli.utils.context import CLIContext, Session
from stagemap.cli.utils.decorators import handle_cli_errors
from stagemap.cli.utils.printer import CliPrinter, describe_restrictions

__all__ = [
    "CLIContext",
    "Session",
    "CliPrinter",
    "describe_restrictions",
    "handle_cli_errors",
]
