"""Custom Click command with automatic help display on errors.

This module provides a custom Click Command class that shows the usage help
right after a syntax error, so a mistyped flag is never a dead end.
"""

import click


class TldrCommand(click.Command):
    """Click command that auto-displays help on usage errors."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        """Parse arguments, showing help when they are malformed."""
        try:
            return super().parse_args(ctx, args)
        except (
            click.exceptions.UsageError,
            click.exceptions.BadParameter,
            click.exceptions.MissingParameter,
        ) as e:
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(ctx.get_help())
            # Use ctx.exit() to properly handle Click's testing mode
            ctx.exit(e.exit_code)
            return []  # Explicit return for code clarity (never reached)
