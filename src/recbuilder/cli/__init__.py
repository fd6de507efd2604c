"""
recbuilder CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from rich.console import Console

from recbuilder import __version__
from recbuilder.cli import generate, inspect_cmd, schema
from recbuilder.core.config.env import load_layered_env

# Create the main Typer app
app = typer.Typer(
    name="recbuilder",
    help="Generate builder-pattern members for record classes",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main() -> None:
    """
    recbuilder - builder-pattern members for record classes.

    Mark a class with @builder and either let the decorator generate the
    members at import time, or write them into the source with
    `recbuilder generate`.
    """
    # Load .env files before any command reads RECBUILDER_* settings
    load_layered_env()


app.command(name="generate")(generate.main)
app.command(name="inspect")(inspect_cmd.main)
app.command(name="schema")(schema.main)


@app.command()
def version() -> None:
    """Show recbuilder version and exit."""
    console.print(f"recbuilder version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
