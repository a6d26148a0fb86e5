"""Decorators for CLI error handling and consistent output formatting."""

from collections.abc import Callable
from functools import wraps

import typer

from stagemap.exceptions import StageMapError


def handle_cli_errors(error_message: str) -> Callable:
    """Decorator to handle stagemap errors with consistent formatting.

    Catches ``StageMapError`` raised by a command, prints it according to
    the json mode of the CLI context and exits with code 1.

    Args:
        error_message: Base error message template (can include {error} placeholder)

    Returns:
        Decorated function that handles errors consistently

    Example:
        ```python
        @handle_cli_errors("Failed to play script")
        def play_command(ctx: typer.Context, ...):
            script = load_script(path)
        ```
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            ctx = args[0] if args else kwargs.get("ctx")
            if not ctx or not hasattr(ctx, "obj"):
                return func(*args, **kwargs)

            cli_ctx = ctx.obj

            try:
                return func(*args, **kwargs)
            except typer.Exit:
                raise
            except StageMapError as e:
                if "{error}" in error_message:
                    formatted_message = error_message.format(error=e)
                else:
                    formatted_message = f"{error_message}: {e}"

                if getattr(cli_ctx, "json_mode", False):
                    cli_ctx.print_json(data={"error": formatted_message})
                else:
                    cli_ctx.print_error(formatted_message)

                raise typer.Exit(1) from e

        return wrapper

    return decorator
